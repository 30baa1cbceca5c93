from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Protocol, TypeAlias

from graphpad.actions import ClickAction, PlaceConnected, PlaceCurve, PlaceDot, PlaceLine, PlacePiecewise
from graphpad.coordinates import CoordinateMapper
from graphpad.errors import ConstraintViolation, OverlapError, VerticalLineError
from graphpad.events import PointerEvent
from graphpad.geometry import distance
from graphpad.model import DisplayPoint, LineKind, PlottedLine, PlottedPoint
from graphpad.store import PlotStore
from graphpad.ticker import DragTicker
from graphpad.undo import ConnectedPointAdded, CurveAdded, LineAdded, PiecewisePointAdded, PointAdded, PointMoved, UndoLog


LOGGER = logging.getLogger(__name__)

HIT_TOLERANCE_PX = 4.0


class InteractionHost(Protocol):
    """Redraw and reporting hooks the controller calls back into."""

    def draw_layer(self, name: str) -> object:
        ...

    def draw_layers(self) -> None:
        ...

    def move_to_top(self, name: str) -> None:
        ...

    def clear_layer(self, name: str) -> None:
        ...

    def report(self, error: ConstraintViolation) -> None:
        ...


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    point: PlottedPoint
    origin: DisplayPoint
    log: bool = True


@dataclass(frozen=True)
class FollowingLineStart:
    line: PlottedLine


@dataclass(frozen=True)
class AwaitingLineEnd:
    line: PlottedLine


@dataclass(frozen=True)
class AwaitingPiecewiseRelease:
    point: PlottedPoint


InteractionState: TypeAlias = Idle | Dragging | FollowingLineStart | AwaitingLineEnd | AwaitingPiecewiseRelease


class InteractionController:
    """Routes pointer events to the handler of the current interaction state.

    Placement, drag and constraint rules live here; the host owns rendering
    and decides how constraint violations reach the user.
    """

    def __init__(
        self,
        store: PlotStore,
        mapper: CoordinateMapper,
        undo_log: UndoLog,
        ticker: DragTicker,
        host: InteractionHost,
        *,
        check_line_endpoint_overlap: bool = False,
    ) -> None:
        self._store = store
        self._mapper = mapper
        self._log = undo_log
        self._ticker = ticker
        self._host = host
        self.check_line_endpoint_overlap = check_line_endpoint_overlap
        self.state: InteractionState = Idle()
        self.click_action: ClickAction | None = None
        self.point_limit: tuple[str, int] | None = None
        self.pointer: DisplayPoint | None = None

    # event routing

    def handle(self, event: PointerEvent) -> None:
        self.pointer = event.position
        try:
            if event.event_type == "pointer_down":
                self._on_down(event.position)
            elif event.event_type == "pointer_move":
                self._on_move(event.position)
            elif event.event_type == "pointer_up":
                self._on_up(event.position)
            else:
                raise ValueError(f"unsupported pointer event: {event.event_type}")
        except ConstraintViolation as exc:
            self._host.report(exc)

    def _on_down(self, position: DisplayPoint) -> None:
        state = self.state
        if isinstance(state, Idle):
            self._idle_down(position)
        elif isinstance(state, AwaitingLineEnd):
            self._finish_click_line(state.line, position)

    def _on_move(self, position: DisplayPoint) -> None:
        state = self.state
        if isinstance(state, FollowingLineStart):
            start = self._store.point(state.line.start_id)
            if start is not None:
                start.move_to_display(position, self._mapper)
                self._host.draw_layer(state.line.layer)

    def _on_up(self, position: DisplayPoint) -> None:
        state = self.state
        if isinstance(state, Dragging):
            self._stop_drag(state, position)
        elif isinstance(state, FollowingLineStart):
            self._complete_animated_line(state.line, position)
        elif isinstance(state, AwaitingPiecewiseRelease):
            self.state = Idle()
            point = state.point
            if self._store.point(point.id) is not None:
                self._store.piecewise[point.layer].append(point.id)
            self._host.draw_layers()

    def _idle_down(self, position: DisplayPoint) -> None:
        if not self._mapper.is_on_grid(position):
            return
        hit = self.hit_test(position)
        if hit is not None:
            self.start_drag(hit, log=True)
            return
        action = self.click_action
        if action is None:
            return
        if not self._store.has_layer(action.layer):
            LOGGER.debug("click action ignored: unknown layer %s", action.layer)
            return
        if self.over_point_limit():
            LOGGER.debug("placement refused: point limit reached on %s", self.point_limit)
            return
        self.run_click_action(action, position)

    # click actions

    def set_click_action(self, action: ClickAction | None) -> None:
        if isinstance(self.state, (AwaitingLineEnd, FollowingLineStart)):
            # The half-placed line stays hidden and uncommitted.
            self.state = Idle()
        self.click_action = action

    def run_click_action(self, action: ClickAction, position: DisplayPoint) -> None:
        if isinstance(action, PlaceDot):
            self.place_dot(action.layer, position)
        elif isinstance(action, PlaceLine):
            if action.animated:
                if not action.allow_multiple:
                    self._host.clear_layer(action.layer)
                self.pointer = position
                self.begin_animated_line(action.layer, action.kind, action.label)
            else:
                self.begin_click_line(action, position)
        elif isinstance(action, PlaceConnected):
            self.place_connected(action.layer, position, action.label)
        elif isinstance(action, PlacePiecewise):
            self.place_piecewise(action.layer, position)
        elif isinstance(action, PlaceCurve):
            self.place_curve_vertex(action.layer, position)
        else:
            raise TypeError(f"Unsupported click action: {type(action).__name__}")

    def over_point_limit(self) -> bool:
        if self.point_limit is None:
            return False
        layer, limit = self.point_limit
        return self._store.point_count(layer) >= limit

    # hit testing and constraints

    def hit_test(self, position: DisplayPoint) -> PlottedPoint | None:
        """Most recently added movable point under ``position``."""
        hit: PlottedPoint | None = None
        for point in self._store:
            layer = self._store.layer(point.layer)
            if layer is None or layer.persist:
                continue
            if not point.movable or point.hidden:
                continue
            if distance(point.display, position) < layer.style.size + HIT_TOLERANCE_PX:
                hit = point
        return hit

    def overlaps(self, point: PlottedPoint) -> bool:
        """Whether a standalone dot sits on another dot of its layer."""
        dots = self._store.dots(point.layer)
        if all(dot.id != point.id for dot in dots):
            return False
        size = self._layer_size(point.layer)
        return any(dot.id != point.id and distance(dot.display, point.display) < size for dot in dots)

    def vertical_line_conflict(self, layer: str, display: DisplayPoint, exclude_id: int | None = None) -> bool:
        """Whether a piecewise or curve member of ``layer`` shares this x."""
        size = self._layer_size(layer)
        members = self._store.piecewise.get(layer, []) + self._store.curves.get(layer, [])
        for point in self._store.resolve(members):
            if point.id == exclude_id:
                continue
            if abs(point.display.x - display.x) < size:
                return True
        return False

    def _endpoint_overlaps(self, layer: str, display: DisplayPoint, exclude: tuple[int, ...]) -> bool:
        size = self._layer_size(layer)
        return any(
            p.id not in exclude and not p.hidden and distance(p.display, display) < size
            for p in self._store.points_on(layer)
        )

    def _layer_size(self, name: str) -> float:
        layer = self._store.layer(name)
        return layer.style.size if layer is not None else 0.0

    # drag

    def start_drag(self, point: PlottedPoint, log: bool = True) -> None:
        point.highlighted = True
        self.state = Dragging(point=point, origin=point.display, log=log)
        self._ticker.add_listener(self._drag_tick)
        self._ticker.resume()

    def _drag_tick(self) -> None:
        state = self.state
        if not isinstance(state, Dragging) or self.pointer is None:
            return
        state.point.move_to_display(self.pointer, self._mapper)
        self._host.draw_layers()

    def _stop_drag(self, state: Dragging, position: DisplayPoint) -> None:
        point = state.point
        point.move_to_display(position, self._mapper)
        violations: list[ConstraintViolation] = []
        if self.overlaps(point):
            violations.append(OverlapError(point.id))
            point.move_to_display(state.origin, self._mapper)
        if self.vertical_line_conflict(point.layer, point.display, exclude_id=point.id):
            violations.append(VerticalLineError(point.id))
            point.move_to_display(state.origin, self._mapper)

        # A click without movement is not an undoable move.
        if state.log and point.display != state.origin:
            self._log.record(PointMoved(point.id, state.origin))

        self._ticker.remove_listener(self._drag_tick)
        self._ticker.pause()
        point.highlighted = False
        self.state = Idle()
        self._host.draw_layers()
        for violation in violations:
            self._host.report(violation)

    # placement

    def new_point(self, layer: str, display: DisplayPoint) -> PlottedPoint:
        data, snapped = self._mapper.display_pair(display)
        return PlottedPoint(id=self._store.allocate_id(), layer=layer, data=data, display=snapped)

    def place_dot(self, layer: str, position: DisplayPoint) -> PlottedPoint:
        point = self._store.add_point(self.new_point(layer, position))
        self._host.draw_layers()
        self._log.record(PointAdded(point.id))
        return point

    def create_line(self, layer: str, kind: LineKind, label: str | None, position: DisplayPoint) -> PlottedLine:
        """Register a hidden line and its two hidden endpoints at ``position``."""

        start = self._store.add_point(self.new_point(layer, position))
        end = self._store.add_point(self.new_point(layer, position))
        start.hidden = end.hidden = True
        line = PlottedLine(
            id=self._store.allocate_id(),
            layer=layer,
            start_id=start.id,
            end_id=end.id,
            kind=kind,
            hidden=True,
        )
        self._store.add_line(line)
        if label:
            if kind == "EXTENDED":
                anchor = self.new_point(layer, position)
                anchor.movable = False
                anchor.label = label
                line.label_anchor = anchor
            else:
                end.label = label
        self._log.record(LineAdded(line.id, layer))
        return line

    def begin_click_line(self, action: PlaceLine, position: DisplayPoint) -> PlottedLine:
        if not action.allow_multiple:
            self._host.clear_layer(action.layer)
        line = self.create_line(action.layer, action.kind, action.label, position)
        start = self._store.point(line.start_id)
        if start is not None:
            start.move_to_display(position, self._mapper)
            start.hidden = False
        self._host.move_to_top(action.layer)
        self._host.draw_layer(action.layer)
        self.state = AwaitingLineEnd(line)
        return line

    def _finish_click_line(self, line: PlottedLine, position: DisplayPoint) -> None:
        if not self._mapper.is_on_grid(position):
            return
        if self.hit_test(position) is not None:
            return
        end = self._store.point(line.end_id)
        if end is None:
            self.state = Idle()
            return
        if self.check_line_endpoint_overlap:
            _, snapped = self._mapper.display_pair(position)
            if self._endpoint_overlaps(line.layer, snapped, (line.start_id, line.end_id)):
                raise OverlapError(end.id)
        end.move_to_display(position, self._mapper)
        end.hidden = False
        line.hidden = False
        self.state = Idle()
        self._host.draw_layer(line.layer)

    def begin_animated_line(self, layer: str, kind: LineKind, label: str | None = None) -> PlottedLine | None:
        """Start a line whose first endpoint follows the pointer until release."""

        if not isinstance(self.state, Idle):
            return None
        position = self.pointer
        if position is None:
            ox, oy = self._mapper.grid.origin
            position = DisplayPoint(ox, oy)
        line = self.create_line(layer, kind, label, position)
        start = self._store.point(line.start_id)
        if start is not None:
            start.hidden = False
        self._host.move_to_top(layer)
        self._host.draw_layer(layer)
        self.state = FollowingLineStart(line)
        return line

    def _complete_animated_line(self, line: PlottedLine, position: DisplayPoint) -> None:
        start = self._store.point(line.start_id)
        end = self._store.point(line.end_id)
        if start is None or end is None:
            self.state = Idle()
            return
        start.move_to_display(position, self._mapper)
        if self.check_line_endpoint_overlap and self._endpoint_overlaps(
            line.layer, start.display, (line.start_id, line.end_id)
        ):
            raise OverlapError(start.id)
        end.move_to_display(position, self._mapper)
        end.hidden = False
        line.hidden = False
        self.start_drag(end, log=False)

    def place_connected(self, layer: str, position: DisplayPoint, label: str | None = None) -> PlottedPoint:
        chain = self._store.connections[layer]
        point = self.new_point(layer, position)
        if label:
            if not chain:
                point.label = label
            else:
                last = self._store.point(chain[-1])
                if last is not None:
                    point.label = last.label
                    last.label = None
        self._store.add_point(point)
        chain.append(point.id)
        self._log.record(ConnectedPointAdded(point.id))
        self._host.draw_layers()
        return point

    def place_piecewise(self, layer: str, position: DisplayPoint) -> PlottedPoint:
        _, snapped = self._mapper.display_pair(position)
        if self.vertical_line_conflict(layer, snapped):
            raise VerticalLineError()
        point = self.new_point(layer, position)
        self._log.record(PiecewisePointAdded(point.id))
        self._store.add_point(point)
        # Joins the chain once the pointer is released.
        self.state = AwaitingPiecewiseRelease(point)
        return point

    def place_curve_vertex(self, layer: str, position: DisplayPoint) -> PlottedPoint:
        _, snapped = self._mapper.display_pair(position)
        if self.vertical_line_conflict(layer, snapped):
            raise VerticalLineError()
        with self._log.transaction():
            point = self.place_dot(layer, position)
            self.rebuild_curve(layer)
        return point

    def rebuild_curve(self, layer: str) -> None:
        """Run the curve of ``layer`` through all of its unique points."""
        previous = tuple(self._store.curves[layer])
        self._store.curves[layer] = [p.id for p in self._store.unique_data_points(layer)]
        self._log.record(CurveAdded(layer, previous))
        self._host.draw_layer(layer)

    def reset(self) -> None:
        """Drop any in-progress gesture and the click action."""
        if isinstance(self.state, Dragging):
            self.state.point.highlighted = False
        self._ticker.remove_listener(self._drag_tick)
        self._ticker.pause()
        self.state = Idle()
        self.click_action = None
