from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Sequence

from graphpad import serialization
from graphpad.actions import ClickAction, click_action_from_name
from graphpad.coordinates import CoordinateMapper
from graphpad.errors import ConstraintViolation
from graphpad.events import PointerEvent
from graphpad.geometry import extrapolate
from graphpad.grid import GraphStyle, GridParameters
from graphpad.interaction import InteractionController, InteractionState
from graphpad.model import (
    DEFAULT_LAYER_STYLE,
    LINE_KINDS,
    DataPoint,
    DisplayPoint,
    Layer,
    LayerStyle,
    PlottedLine,
    PlottedPoint,
    merge_layer_style,
)
from graphpad.regression import REGRESSION_KINDS, RegressionResult, compute_regression
from graphpad.scene import LayerScene, RecordingSurface, RenderSurface, TextLabel, build_layer_scene
from graphpad.store import PlotStore, RegressionSpec
from graphpad.ticker import DragTicker
from graphpad.undo import (
    ConnectedPointAdded,
    CurveAdded,
    LineAdded,
    PiecewisePointAdded,
    PointAdded,
    PointMoved,
    RegressionAdded,
    UndoAction,
    UndoLog,
)


LOGGER = logging.getLogger(__name__)

ErrorHandler = Callable[[ConstraintViolation], None]


class GraphSession:
    """One interactive graph: layers, points, gestures and undo history.

    All mutation happens synchronously inside ``handle_event`` / ``advance``
    or the explicit operations below; every change ends with a redraw request
    to ``surface``.
    """

    def __init__(
        self,
        surface_id: str,
        item_id: str = "",
        style: GraphStyle | Mapping[str, Any] | None = None,
        surface: RenderSurface | None = None,
        check_line_endpoint_overlap: bool = False,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        if style is None or isinstance(style, Mapping):
            style = GraphStyle.from_mapping(style)
        self.surface_id = str(surface_id)
        self.item_id = str(item_id)
        self.style = style
        self.surface: RenderSurface = surface if surface is not None else RecordingSurface()
        self.store = PlotStore()
        self.mapper = CoordinateMapper(style.grid, style.snap)
        self.undo_log = UndoLog()
        self.ticker = DragTicker()
        self.controller = InteractionController(
            self.store,
            self.mapper,
            self.undo_log,
            self.ticker,
            self,
            check_line_endpoint_overlap=check_line_endpoint_overlap,
        )
        self._error_handler = error_handler
        self._closed = False

    @classmethod
    def restore(cls, text: str, **kwargs: Any) -> "GraphSession":
        """Rebuild a session, its layers and its content from a session string."""

        record = serialization.parse_session(text)
        session = cls(record.surface_id, record.item_id, style=GraphStyle.from_mapping(record.grid_style), **kwargs)
        for layer in record.layers:
            session.add_layer(layer.name, persist=layer.persist, style=layer.style)
        serialization.apply_record(session, record)
        return session

    @property
    def grid(self) -> GridParameters:
        return self.style.grid

    @property
    def state(self) -> InteractionState:
        return self.controller.state

    @property
    def click_action(self) -> ClickAction | None:
        return self.controller.click_action

    @property
    def closed(self) -> bool:
        return self._closed

    # layers

    def add_layer(
        self,
        name: str,
        items: Iterable[Any] | None = None,
        persist: bool = False,
        style: LayerStyle | Mapping[str, Any] | None = None,
    ) -> Layer:
        existing = self.store.layer(name)
        if existing is not None:
            return existing
        if isinstance(style, LayerStyle):
            layer_style = style
        else:
            layer_style = merge_layer_style(DEFAULT_LAYER_STYLE, style)
        layer = self.store.add_layer(Layer(name=name, style=layer_style, persist=bool(persist)))
        if items:
            self.add_data(name, items)
        return layer

    def add_data(self, layer: str, items: Iterable[Any]) -> None:
        """Bulk load points and ``(start, end, kind)`` lines into ``layer``."""

        if not self._known(layer):
            return
        for item in items:
            if _is_line_record(item):
                start_data, end_data, kind = item
                kind = str(kind).upper()
                if kind not in LINE_KINDS:
                    raise ValueError(f"unknown line kind: {item[2]}")
                start = self._register(layer, _as_data_point(start_data))
                end = self._register(layer, _as_data_point(end_data))
                self.store.add_line(
                    PlottedLine(
                        id=self.store.allocate_id(),
                        layer=layer,
                        start_id=start.id,
                        end_id=end.id,
                        kind=kind,  # type: ignore[arg-type]
                    )
                )
            else:
                self._register(layer, _as_data_point(item))
        self.draw_layer(layer)

    def _register(self, layer: str, data: DataPoint) -> PlottedPoint:
        data, display = self.mapper.point_pair(data)
        return self.store.add_point(PlottedPoint(id=self.store.allocate_id(), layer=layer, data=data, display=display))

    def delete_layer(self, name: str) -> None:
        if not self._known(name):
            return
        self.clear_layer(name)
        self.store.remove_layer(name)
        self.surface.remove_layer(name)
        point_limit = self.controller.point_limit
        if point_limit is not None and point_limit[0] == name:
            self.controller.point_limit = None

    def clear_layer(self, name: str) -> None:
        if not self._known(name):
            return
        if self.store.clear_layer(name):
            self.draw_layer(name)

    def draw_layer(self, name: str) -> LayerScene | None:
        scene = build_layer_scene(self.store, self.mapper, name)
        if scene is None:
            LOGGER.debug("draw skipped: unknown layer %s", name)
            return None
        self.surface.draw_layer(scene)
        return scene

    def draw_layers(self) -> None:
        """Redraw every non-persistent layer."""
        for layer in self.store.layers():
            if not layer.persist:
                self.draw_layer(layer.name)

    def move_to_top(self, name: str) -> None:
        if not self._known(name):
            return
        self.store.raise_layer(name)
        self.surface.raise_layer(name)

    def top_layer(self) -> Layer | None:
        return self.store.top_layer()

    # click actions and placements

    def enable_click_action(self, layer: str, action: ClickAction | str = "dot", *args: object) -> ClickAction | None:
        if not self._known(layer):
            return None
        if isinstance(action, str):
            action = click_action_from_name(layer, action, *args)
        self.move_to_top(layer)
        self.draw_layer(layer)
        self.controller.set_click_action(action)
        return action

    def disable_click_action(self) -> None:
        self.controller.set_click_action(None)

    def add_line(self, layer: str, label: str | None = None) -> PlottedLine | None:
        """Start an extended line that follows the pointer until it is dropped."""
        if not self._known(layer):
            return None
        return self.controller.begin_animated_line(layer, "EXTENDED", label)

    def add_segment(self, layer: str, label: str | None = None) -> PlottedLine | None:
        if not self._known(layer):
            return None
        return self.controller.begin_animated_line(layer, "SEGMENT", label)

    def add_curve(self, layer: str) -> None:
        if not self._known(layer):
            return
        self.controller.rebuild_curve(layer)

    def add_regression(self, source_layer: str, target_layer: str, kind: str) -> None:
        kind = str(kind).lower()
        if kind not in REGRESSION_KINDS:
            raise ValueError(f"unknown regression kind: {kind}")
        if not self._known(source_layer) or not self._known(target_layer):
            return
        previous = self.store.regressions[target_layer]
        self.store.regressions[target_layer] = RegressionSpec(source_layer, kind)
        self.undo_log.record(RegressionAdded(target_layer, previous))
        self.draw_layer(target_layer)

    def regression_samples(self, layer: str) -> RegressionResult | None:
        """Fit the regression declared on ``layer`` against its live source points."""

        spec = self.store.regressions.get(layer)
        if spec is None or not self.store.has_layer(spec.source_layer):
            return None
        points = [p.data for p in self.store.unique_data_points(spec.source_layer)]
        if len(points) < 2:
            return None
        return compute_regression(points, spec.kind, self.mapper)

    def set_point_limit(self, layer: str, limit: int) -> None:
        found = self.store.layer(layer)
        if found is None or found.persist:
            LOGGER.debug("point limit ignored for layer %s", layer)
            return
        self.controller.point_limit = (layer, int(limit))

    # labels and text

    def add_label(self, layer: str, point: PlottedPoint | DataPoint | int, text: str) -> PlottedPoint | None:
        if not self._known(layer):
            return None
        target = self._find_point(point)
        if target is None:
            LOGGER.debug("label ignored: no point matches %s", point)
            return None
        target.label = str(text)
        self.draw_layer(layer)
        return target

    def remove_label(self, point: PlottedPoint | int) -> None:
        target = self._find_point(point)
        if target is None or target.label is None:
            return
        target.label = None
        self.draw_layer(target.layer)

    def custom_text(self, text: str, layer: str, position: DisplayPoint | tuple[float, float]) -> TextLabel | None:
        """Draw free text at a surface position in the font of ``layer``."""
        found = self.store.layer(layer)
        if found is None:
            return None
        at = position if isinstance(position, DisplayPoint) else DisplayPoint(float(position[0]), float(position[1]))
        style = found.style
        label = TextLabel(text=str(text), at=at, font=style.font, font_size=style.font_size, color=style.font_color)
        self.surface.draw_text(label)
        return label

    def _find_point(self, point: PlottedPoint | DataPoint | int) -> PlottedPoint | None:
        if isinstance(point, PlottedPoint):
            return point
        if isinstance(point, DataPoint):
            for candidate in self.store:
                if candidate.data == point:
                    return candidate
            return None
        if isinstance(point, int):
            return self.store.point(point)
        raise TypeError(f"Unsupported point reference: {type(point).__name__}")

    # queries

    def extrapolate_line(self, line: PlottedLine) -> tuple[PlottedPoint, PlottedPoint] | None:
        """Unsnapped endpoints of ``line`` stretched to the grid border.

        Coincident endpoints return the line's own endpoints unchanged.
        """

        start = self.store.point(line.start_id)
        end = self.store.point(line.end_id)
        if start is None or end is None:
            return None
        chord = extrapolate(start.display, end.display, self.grid.bounds)
        if chord is None:
            return (start, end)
        out = []
        for display in chord:
            data, snapped = self.mapper.display_pair(display, snap=False)
            out.append(PlottedPoint(id=0, layer=line.layer, data=data, display=snapped, movable=False))
        return (out[0], out[1])

    def all_points(self, layer: str | None = None) -> list[PlottedPoint]:
        return self.store.all_points(layer)

    def dots(self, layer: str | None = None) -> list[PlottedPoint]:
        return self.store.dots(layer)

    def unique_data_points(self, layer: str) -> list[PlottedPoint]:
        return self.store.unique_data_points(layer)

    def point_by_id(self, point_id: int) -> PlottedPoint | None:
        return self.store.point(point_id)

    # input

    def handle_event(self, event: PointerEvent) -> None:
        if self._closed:
            return
        self.controller.handle(event)

    def advance(self, now: float) -> bool:
        """Drive the drag ticker; returns whether a drag tick fired."""
        if self._closed:
            return False
        return self.ticker.advance(now)

    def report(self, error: ConstraintViolation) -> None:
        if self._error_handler is not None:
            self._error_handler(error)
            return
        LOGGER.warning("%s", error)

    # history

    def undo(self) -> bool:
        group = self.undo_log.pop()
        if group is None:
            return False
        for action in reversed(group):
            self._revert(action)
        self.draw_layers()
        return True

    def _revert(self, action: UndoAction) -> None:
        store = self.store
        if isinstance(action, PointAdded):
            self._remove_dot(action.point_id)
        elif isinstance(action, PointMoved):
            point = store.point(action.point_id)
            if point is not None:
                point.move_to_display(action.previous, self.mapper)
        elif isinstance(action, LineAdded):
            line = store.remove_line(action.line_id)
            if line is not None:
                self._remove_dot(line.start_id)
                self._remove_dot(line.end_id)
                line.label_anchor = None
        elif isinstance(action, PiecewisePointAdded):
            self._remove_dot(action.point_id)
        elif isinstance(action, ConnectedPointAdded):
            point = store.point(action.point_id)
            if point is not None:
                chain = store.connections[point.layer]
                if action.point_id in chain:
                    chain.remove(action.point_id)
                if point.label is not None and chain:
                    # The label returns to the new end of the chain.
                    last = store.point(chain[-1])
                    if last is not None:
                        last.label = point.label
                        point.label = None
            self._remove_dot(action.point_id)
        elif isinstance(action, CurveAdded):
            if store.has_layer(action.layer):
                store.curves[action.layer] = [pid for pid in action.previous if store.point(pid) is not None]
        elif isinstance(action, RegressionAdded):
            if store.has_layer(action.layer):
                store.regressions[action.layer] = action.previous
        else:
            raise TypeError(f"Unsupported undo action: {type(action).__name__}")

    def _remove_dot(self, point_id: int) -> None:
        point = self.store.remove_point(point_id)
        if point is not None:
            point.label = None

    def start_over(self) -> None:
        """Remove all non-persistent content and forget the undo history."""
        self.controller.reset()
        for layer in self.store.layers():
            self.store.clear_layer(layer.name)
        self.draw_layers()
        self.undo_log.clear()

    def close(self) -> None:
        self.controller.reset()
        self.ticker.pause()
        self.store.clear()
        self.undo_log.clear()
        self._closed = True

    # session string

    def get_data(self) -> str:
        return serialization.dump_session(self)

    def set_data(self, text: str) -> None:
        serialization.load_session(self, text)

    def _known(self, name: str) -> bool:
        if self.store.has_layer(name):
            return True
        LOGGER.debug("ignored reference to unknown layer %s", name)
        return False


def _is_line_record(item: Any) -> bool:
    return isinstance(item, Sequence) and not isinstance(item, str) and len(item) == 3


def _as_data_point(value: Any) -> DataPoint:
    if isinstance(value, DataPoint):
        return value
    if isinstance(value, Mapping):
        return DataPoint(float(value["x"]), float(value["y"]))
    if isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 2:
        return DataPoint(float(value[0]), float(value[1]))
    raise TypeError(f"Unsupported data point: {value!r}")
