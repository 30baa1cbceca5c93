from __future__ import annotations

import unittest

from graphpad.actions import PlaceDot, PlaceLine, click_action_from_name
from graphpad.errors import ConstraintViolation, OverlapError, VerticalLineError
from graphpad.events import pointer_down, pointer_move, pointer_up
from graphpad.interaction import AwaitingLineEnd, AwaitingPiecewiseRelease, Dragging, FollowingLineStart, Idle
from graphpad.model import DataPoint
from graphpad.session import GraphSession


def px(x: float, y: float) -> tuple[float, float]:
    """Display position of a data point on the default 10x10 grid."""
    return (10.0 + 30.0 * x, 315.0 - 30.0 * y)


class InteractionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.errors: list[ConstraintViolation] = []
        self.session = GraphSession("canvas", "item-1", error_handler=self.errors.append)
        self.session.add_layer("L")

    def click(self, x: float, y: float) -> None:
        dx, dy = px(x, y)
        self.session.handle_event(pointer_down(dx, dy))
        self.session.handle_event(pointer_up(dx, dy))

    def drag(self, start: tuple[float, float], end: tuple[float, float]) -> None:
        self.session.handle_event(pointer_down(*px(*start)))
        self.session.handle_event(pointer_move(*px(*end)))
        self.session.advance(0.0)
        self.session.handle_event(pointer_up(*px(*end)))

    def snapshot(self) -> tuple:
        store = self.session.store
        return (
            [(p.id, p.layer, p.data, p.display, p.label) for p in store.all_points()],
            {name: [(line.id, line.start_id, line.end_id, line.kind) for line in lines] for name, lines in store.lines.items()},
            {name: list(ids) for name, ids in store.connections.items()},
            {name: list(ids) for name, ids in store.piecewise.items()},
            {name: list(ids) for name, ids in store.curves.items()},
            dict(store.regressions),
        )

    def data(self, layer: str = "L") -> list[DataPoint]:
        return [p.data for p in self.session.all_points(layer)]


class DotPlacementTests(InteractionTestCase):
    def test_click_places_snapped_dot(self) -> None:
        self.session.enable_click_action("L", "dot")
        self.session.handle_event(pointer_down(43.0, 281.0))
        self.assertEqual(self.data(), [DataPoint(1, 1)])
        self.assertEqual(self.session.all_points("L")[0].display.x, 40.0)

    def test_place_then_undo_restores_previous_state(self) -> None:
        self.session.enable_click_action("L", "dot")
        self.click(2, 2)
        kept = self.session.all_points("L")[0]
        before = self.snapshot()
        self.click(5, 5)
        self.assertEqual(len(self.session.all_points()), 2)
        self.assertTrue(self.session.undo())
        self.assertEqual(self.snapshot(), before)
        self.assertIs(self.session.all_points("L")[0], kept)

    def test_click_outside_grid_band_is_ignored(self) -> None:
        self.session.enable_click_action("L", "dot")
        self.session.handle_event(pointer_down(400.0, 400.0))
        self.assertEqual(self.session.all_points(), [])

    def test_point_limit_refuses_further_placements(self) -> None:
        self.session.enable_click_action("L", "dot")
        self.session.set_point_limit("L", 2)
        for x in (1, 3, 5):
            self.click(x, 1)
        self.assertEqual(self.data(), [DataPoint(1, 1), DataPoint(3, 1)])

    def test_no_click_action_means_no_placement(self) -> None:
        self.click(1, 1)
        self.assertEqual(self.session.all_points(), [])

    def test_typed_click_action_is_accepted(self) -> None:
        self.session.enable_click_action("L", PlaceDot("L"))
        self.click(4, 4)
        self.assertEqual(self.data(), [DataPoint(4, 4)])

    def test_click_action_names_build_variants(self) -> None:
        action = click_action_from_name("L", "line", "segment", False, "A")
        self.assertEqual(action, PlaceLine("L", kind="SEGMENT", allow_multiple=False, label="A"))
        with self.assertRaises(ValueError):
            click_action_from_name("L", "spiral")

    def test_unknown_click_action_type_rejected(self) -> None:
        with self.assertRaises(TypeError):
            self.session.controller.run_click_action(object(), self.session.mapper.to_display(DataPoint(1, 1)))  # type: ignore[arg-type]


class DragTests(InteractionTestCase):
    def test_drag_moves_point_and_logs_undo(self) -> None:
        self.session.add_data("L", [(1, 1)])
        point = self.session.all_points("L")[0]
        self.session.handle_event(pointer_down(*px(1, 1)))
        self.assertIsInstance(self.session.state, Dragging)
        self.assertTrue(point.highlighted)
        self.assertFalse(self.session.ticker.paused)

        self.session.handle_event(pointer_move(*px(3, 3)))
        self.assertTrue(self.session.advance(0.0))
        self.assertEqual(point.data, DataPoint(3, 3))

        self.session.handle_event(pointer_up(*px(3, 3)))
        self.assertIsInstance(self.session.state, Idle)
        self.assertTrue(self.session.ticker.paused)
        self.assertFalse(point.highlighted)
        self.assertEqual(len(self.session.undo_log), 1)

        self.session.undo()
        self.assertEqual(point.data, DataPoint(1, 1))

    def test_ticker_idle_between_drags(self) -> None:
        self.assertTrue(self.session.ticker.paused)
        self.assertFalse(self.session.advance(1.0))

    def test_click_without_move_is_not_logged(self) -> None:
        self.session.add_data("L", [(2, 2)])
        self.click(2, 2)
        self.assertEqual(len(self.session.undo_log), 0)

    def test_drag_onto_other_point_reverts(self) -> None:
        self.session.add_data("L", [(1, 1), (3, 3)])
        point = self.session.all_points("L")[0]
        self.drag((1, 1), (3, 3))
        self.assertEqual(point.data, DataPoint(1, 1))
        self.assertEqual(len(self.session.all_points("L")), 2)
        self.assertEqual(len(self.errors), 1)
        self.assertIsInstance(self.errors[0], OverlapError)
        self.assertEqual(self.errors[0].point_id, point.id)
        self.assertEqual(len(self.session.undo_log), 0)

    def test_drag_across_function_constraint_reverts(self) -> None:
        self.session.enable_click_action("L", "piecewise")
        self.click(1, 1)
        self.click(3, 2)
        self.session.disable_click_action()
        moved = self.session.all_points("L")[1]
        self.drag((3, 2), (1, 4))
        self.assertEqual(moved.data, DataPoint(3, 2))
        self.assertIsInstance(self.errors[-1], VerticalLineError)

    def test_persistent_layer_points_are_not_draggable(self) -> None:
        self.session.add_layer("axes", [(5, 5)], persist=True)
        self.session.handle_event(pointer_down(*px(5, 5)))
        self.assertIsInstance(self.session.state, Idle)


class PiecewiseTests(InteractionTestCase):
    def test_vertex_joins_chain_on_release(self) -> None:
        self.session.enable_click_action("L", "piecewise")
        self.session.handle_event(pointer_down(*px(1, 1)))
        self.assertIsInstance(self.session.state, AwaitingPiecewiseRelease)
        self.assertEqual(self.session.store.piecewise["L"], [])
        self.session.handle_event(pointer_up(*px(1, 1)))
        point = self.session.all_points("L")[0]
        self.assertEqual(self.session.store.piecewise["L"], [point.id])

    def test_same_x_vertex_is_rejected(self) -> None:
        self.session.enable_click_action("L", "piecewise")
        self.click(1, 1)
        self.click(1, 3)
        self.assertEqual(len(self.session.store.piecewise["L"]), 1)
        self.assertEqual(self.data(), [DataPoint(1, 1)])
        self.assertIsInstance(self.errors[0], VerticalLineError)
        self.click(2, 3)
        self.assertEqual(len(self.session.store.piecewise["L"]), 2)

    def test_undo_removes_vertex_from_chain(self) -> None:
        self.session.enable_click_action("L", "piecewise")
        self.click(1, 1)
        before = self.snapshot()
        self.click(2, 4)
        self.session.undo()
        self.assertEqual(self.snapshot(), before)


class CurveTests(InteractionTestCase):
    def test_each_click_rebuilds_curve(self) -> None:
        self.session.enable_click_action("L", "curve")
        for x, y in ((1, 1), (2, 3), (4, 2)):
            self.click(x, y)
        ids = [p.id for p in self.session.all_points("L")]
        self.assertEqual(self.session.store.curves["L"], ids)

    def test_curve_click_undoes_as_one_step(self) -> None:
        self.session.enable_click_action("L", "curve")
        self.click(1, 1)
        self.click(2, 3)
        before = self.snapshot()
        self.click(4, 2)
        self.session.undo()
        self.assertEqual(self.snapshot(), before)
        self.assertEqual(len(self.session.store.curves["L"]), 2)

    def test_curve_vertex_on_used_x_is_rejected(self) -> None:
        self.session.enable_click_action("L", "curve")
        self.click(1, 1)
        self.click(2, 3)
        self.click(2, 6)
        self.assertEqual(len(self.session.all_points("L")), 2)
        self.assertIsInstance(self.errors[0], VerticalLineError)


class ConnectedTests(InteractionTestCase):
    def test_label_moves_to_newest_point(self) -> None:
        self.session.enable_click_action("L", "connected", "f(x)")
        for x, y in ((1, 1), (2, 2), (3, 1)):
            self.click(x, y)
        points = self.session.all_points("L")
        self.assertEqual(self.session.store.connections["L"], [p.id for p in points])
        self.assertEqual([p.label for p in points], [None, None, "f(x)"])

        self.session.undo()
        points = self.session.all_points("L")
        self.assertEqual(len(self.session.store.connections["L"]), 2)
        self.assertEqual([p.label for p in points], [None, "f(x)"])


class LinePlacementTests(InteractionTestCase):
    def test_click_to_click_line(self) -> None:
        self.session.enable_click_action("L", "line", "segment", True, "A")
        self.click(1, 1)
        self.assertIsInstance(self.session.state, AwaitingLineEnd)
        line = self.session.store.lines["L"][0]
        self.assertTrue(line.hidden)
        self.click(4, 2)
        self.assertIsInstance(self.session.state, Idle)
        self.assertFalse(line.hidden)
        start = self.session.point_by_id(line.start_id)
        end = self.session.point_by_id(line.end_id)
        self.assertEqual((start.data, end.data), (DataPoint(1, 1), DataPoint(4, 2)))
        self.assertEqual(end.label, "A")

    def test_undo_removes_line_and_endpoints(self) -> None:
        self.session.enable_click_action("L", "line")
        before = self.snapshot()
        self.click(1, 1)
        self.click(4, 2)
        self.session.undo()
        self.assertEqual(self.snapshot(), before)

    def test_single_line_mode_clears_layer(self) -> None:
        self.session.enable_click_action("L", "line", "segment", False)
        self.click(1, 1)
        self.click(4, 2)
        self.click(2, 5)
        self.click(6, 6)
        self.assertEqual(len(self.session.store.lines["L"]), 1)
        self.assertEqual(self.data(), [DataPoint(2, 5), DataPoint(6, 6)])

    def test_extended_line_label_uses_unregistered_anchor(self) -> None:
        self.session.enable_click_action("L", "line", "extended", True, "y=x")
        self.click(1, 1)
        self.click(3, 3)
        line = self.session.store.lines["L"][0]
        self.assertIsNotNone(line.label_anchor)
        self.assertNotIn(line.label_anchor, self.session.all_points())
        scene = self.session.draw_layer("L")
        self.assertEqual([label.text for label in scene.labels], ["y=x"])

    def test_switching_action_abandons_line(self) -> None:
        self.session.enable_click_action("L", "line")
        self.click(1, 1)
        self.session.enable_click_action("L", "dot")
        self.assertIsInstance(self.session.state, Idle)
        self.assertTrue(self.session.store.lines["L"][0].hidden)
        self.click(7, 7)
        self.assertTrue(self.session.store.lines["L"][0].hidden)

    def test_line_endpoint_overlap_is_optional(self) -> None:
        near_existing = (px(4, 2)[0] + 13.0, px(4, 2)[1])
        for checked, expected_lines_visible in ((False, True), (True, False)):
            errors: list[ConstraintViolation] = []
            session = GraphSession("c", check_line_endpoint_overlap=checked, error_handler=errors.append)
            session.add_layer("L", [(4, 2)])
            session.enable_click_action("L", "line", "segment")
            session.handle_event(pointer_down(*px(1, 1)))
            session.handle_event(pointer_down(*near_existing))
            line = session.store.lines["L"][0]
            self.assertEqual(not line.hidden, expected_lines_visible)
            self.assertEqual(len(errors), 1 if checked else 0)

    def test_animated_line_follows_pointer_then_drags_end(self) -> None:
        self.session.handle_event(pointer_move(*px(1, 1)))
        line = self.session.add_line("L", "g")
        self.assertIsInstance(self.session.state, FollowingLineStart)
        start = self.session.point_by_id(line.start_id)
        end = self.session.point_by_id(line.end_id)

        self.session.handle_event(pointer_move(*px(2, 2)))
        self.assertEqual(start.data, DataPoint(2, 2))
        self.session.handle_event(pointer_up(*px(2, 2)))
        self.assertIsInstance(self.session.state, Dragging)
        self.assertFalse(line.hidden)

        self.session.handle_event(pointer_move(*px(5, 4)))
        self.session.advance(0.0)
        self.assertEqual(end.data, DataPoint(5, 4))
        self.session.handle_event(pointer_up(*px(5, 4)))
        self.assertIsInstance(self.session.state, Idle)
        self.assertEqual(start.data, DataPoint(2, 2))
        self.assertEqual(len(self.session.undo_log), 1)

    def test_animated_click_line_drags_end_after_click(self) -> None:
        self.session.enable_click_action("L", PlaceLine("L", kind="SEGMENT", animated=True))
        self.click(1, 1)
        self.assertIsInstance(self.session.state, Dragging)
        self.session.handle_event(pointer_move(*px(4, 3)))
        self.session.advance(0.0)
        self.session.handle_event(pointer_up(*px(4, 3)))
        self.assertIsInstance(self.session.state, Idle)
        (line,) = self.session.store.lines["L"]
        self.assertEqual(line.kind, "SEGMENT")
        self.assertFalse(line.hidden)
        self.assertEqual(self.session.point_by_id(line.start_id).data, DataPoint(1, 1))
        self.assertEqual(self.session.point_by_id(line.end_id).data, DataPoint(4, 3))

    def test_animated_segment_waits_for_idle(self) -> None:
        self.session.add_segment("L")
        self.assertIsNone(self.session.add_segment("L"))


if __name__ == "__main__":
    unittest.main()
