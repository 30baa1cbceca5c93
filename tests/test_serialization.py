from __future__ import annotations

import unittest

from graphpad.errors import SessionFormatError
from graphpad.events import pointer_down, pointer_up
from graphpad.model import DataPoint
from graphpad.serialization import FIELD_COUNT, SEPARATOR, dump_session, parse_session
from graphpad.session import GraphSession


def click(session: GraphSession, x: float, y: float) -> None:
    position = (10.0 + 30.0 * x, 315.0 - 30.0 * y)
    session.handle_event(pointer_down(*position))
    session.handle_event(pointer_up(*position))


def add_layers(session: GraphSession) -> None:
    session.add_layer("axes", [(0, 0)], persist=True)
    session.add_layer("L")
    session.add_layer("P")
    session.add_layer("C", style={"color": "#0000FF"})


def build_session() -> GraphSession:
    session = GraphSession("canvas", "item-7", style={"unitsWide": 12, "title": "speed"})
    add_layers(session)
    session.add_data("L", [(1, 1), (2, 2), (DataPoint(4, 4), DataPoint(6, 7), "SEGMENT")])
    session.add_curve("L")
    session.enable_click_action("P", "piecewise")
    click(session, 1, 3)
    click(session, 3, 6)
    session.enable_click_action("C", "connected")
    click(session, 5, 5)
    click(session, 7, 2)
    session.disable_click_action()
    session.add_label("L", DataPoint(2, 2), "peak")
    return session


def snapshot(session: GraphSession) -> dict[str, object]:
    store = session.store
    names = [layer.name for layer in store.layers() if not layer.persist]
    return {
        "points": sorted(
            (p.id, p.layer, p.data, p.label) for p in store.all_points() if p.layer in names
        ),
        "lines": [(line.start_id, line.end_id, line.kind, line.layer) for name in names for line in store.lines[name]],
        "piecewise": {name: list(store.piecewise[name]) for name in names},
        "connections": {name: list(store.connections[name]) for name in names},
        "curves": {name: list(store.curves[name]) for name in names},
    }


class SessionStringTests(unittest.TestCase):
    def test_round_trip_into_fresh_session(self) -> None:
        original = build_session()
        text = original.get_data()

        fresh = GraphSession("canvas", "item-7")
        add_layers(fresh)
        fresh.set_data(text)

        self.assertEqual(snapshot(fresh), snapshot(original))
        self.assertEqual(fresh.store.piecewise["P"], original.store.piecewise["P"])
        self.assertEqual(len(fresh.store.curves["L"]), 4)

    def test_field_layout(self) -> None:
        text = build_session().get_data()
        parts = text.split(SEPARATOR)
        self.assertEqual(len(parts), FIELD_COUNT)
        self.assertEqual(parts[:2], ["canvas", "item-7"])
        self.assertNotIn(" ", parts[4])

    def test_restore_rebuilds_layers_and_style(self) -> None:
        original = build_session()
        restored = GraphSession.restore(original.get_data())
        self.assertEqual(restored.surface_id, "canvas")
        self.assertEqual(restored.item_id, "item-7")
        self.assertEqual(restored.style, original.style)
        self.assertEqual([layer.name for layer in restored.store.layers()], ["axes", "L", "P", "C"])
        self.assertTrue(restored.store.layer("axes").persist)
        self.assertEqual(restored.store.layer("C").style.color, "#0000FF")
        self.assertEqual(snapshot(restored), snapshot(original))

    def test_persistent_layer_points_are_not_restored(self) -> None:
        restored = GraphSession.restore(build_session().get_data())
        self.assertEqual(restored.all_points("axes"), [])

    def test_separator_inside_label_survives(self) -> None:
        session = GraphSession("canvas")
        session.add_layer("L", [(3, 3)])
        session.add_label("L", DataPoint(3, 3), "a~b")
        text = session.get_data()
        self.assertEqual(text.count(SEPARATOR), FIELD_COUNT - 1)
        restored = GraphSession.restore(text)
        (point,) = restored.all_points("L")
        self.assertEqual(point.label, "a~b")

    def test_abandoned_line_is_not_saved(self) -> None:
        session = GraphSession("canvas")
        session.add_layer("L", [(5, 5)])
        session.enable_click_action("L", "line", "segment")
        click(session, 2, 2)
        session.disable_click_action()
        self.assertEqual(len(session.all_points("L")), 3)

        restored = GraphSession.restore(session.get_data())
        self.assertEqual([p.data for p in restored.all_points("L")], [DataPoint(5, 5)])
        self.assertEqual(restored.store.lines["L"], [])
        self.assertEqual(restored.surface.scenes["L"].segments, ())

    def test_ids_keep_increasing_after_load(self) -> None:
        original = build_session()
        restored = GraphSession.restore(original.get_data())
        highest = max(p.id for p in restored.all_points())
        self.assertGreater(restored.store.allocate_id(), highest)

    def test_regressions_are_not_serialized(self) -> None:
        original = build_session()
        original.add_regression("L", "P", "linear")
        restored = GraphSession.restore(original.get_data())
        self.assertIsNone(restored.store.regressions.get("P"))

    def test_points_on_unknown_layer_are_skipped(self) -> None:
        text = build_session().get_data()
        target = GraphSession("canvas")
        target.add_layer("L")
        with self.assertLogs("graphpad.serialization", level="WARNING"):
            target.set_data(text)
        self.assertEqual({p.layer for p in target.all_points()}, {"L"})
        self.assertEqual(len(target.store.lines["L"]), 1)

    def test_separator_in_item_id_is_rejected(self) -> None:
        session = GraphSession("canvas", "a~b")
        with self.assertRaises(SessionFormatError):
            dump_session(session)


class ParseSessionTests(unittest.TestCase):
    def test_wrong_field_count(self) -> None:
        with self.assertRaisesRegex(SessionFormatError, "9 fields"):
            parse_session("a~b")

    def test_invalid_json(self) -> None:
        with self.assertRaises(SessionFormatError):
            parse_session("a~b~{~[]~[]~[]~[]~[]~[]")

    def test_wrong_field_types(self) -> None:
        with self.assertRaises(SessionFormatError):
            parse_session("a~b~[]~[]~[]~[]~[]~[]~[]")
        with self.assertRaises(SessionFormatError):
            parse_session('a~b~{}~{"layerName":"L"}~[]~[]~[]~[]~[]')
        with self.assertRaises(SessionFormatError):
            parse_session('a~b~{}~[{"persist":true}]~[]~[]~[]~[]~[]')

    def test_format_error_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            parse_session(42)  # type: ignore[arg-type]

    def test_null_grid_style_is_empty(self) -> None:
        record = parse_session("a~b~null~[]~[]~[]~[]~[]~[]")
        self.assertEqual(record.grid_style, {})
        self.assertEqual(record.layers, [])

    def test_malformed_point_record(self) -> None:
        session = GraphSession("a")
        session.add_layer("L")
        with self.assertRaises(SessionFormatError):
            session.set_data('a~~{}~[]~[[1,2]]~[]~[]~[]~[]')


if __name__ == "__main__":
    unittest.main()
