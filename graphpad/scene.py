from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from graphpad.coordinates import CoordinateMapper
from graphpad.curves import smooth_curve
from graphpad.geometry import display_sort_key, extrapolate, sort_data_points
from graphpad.model import DisplayPoint, LayerStyle, LineKind, PlottedLine, PlottedPoint
from graphpad.regression import RegressionResult, compute_regression
from graphpad.store import PlotStore


HIGHLIGHT_EXTEND = 10.0
LABEL_SPACING = 5.0


@dataclass(frozen=True)
class Segment:
    start: DisplayPoint
    end: DisplayPoint
    kind: LineKind


@dataclass(frozen=True)
class Marker:
    point_id: int
    at: DisplayPoint
    highlighted: bool = False


@dataclass(frozen=True)
class TextLabel:
    text: str
    at: DisplayPoint
    font: str = "Arial"
    font_size: float = 12.0
    color: str = "#000000"


@dataclass(frozen=True)
class LayerScene:
    """Everything a surface needs to draw one layer, in draw order."""

    layer: str
    style: LayerStyle
    segments: tuple[Segment, ...] = ()
    markers: tuple[Marker, ...] = ()
    labels: tuple[TextLabel, ...] = ()
    regression: RegressionResult | None = None


class RenderSurface(Protocol):
    def draw_layer(self, scene: LayerScene) -> None:
        ...

    def remove_layer(self, name: str) -> None:
        ...

    def raise_layer(self, name: str) -> None:
        ...

    def draw_text(self, label: TextLabel) -> None:
        ...


@dataclass
class RecordingSurface:
    """Headless surface that keeps the latest scene of every layer."""

    scenes: dict[str, LayerScene] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)
    texts: list[TextLabel] = field(default_factory=list)
    draw_count: int = 0

    def draw_layer(self, scene: LayerScene) -> None:
        self.scenes[scene.layer] = scene
        if scene.layer not in self.order:
            self.order.append(scene.layer)
        self.draw_count += 1

    def remove_layer(self, name: str) -> None:
        self.scenes.pop(name, None)
        if name in self.order:
            self.order.remove(name)

    def raise_layer(self, name: str) -> None:
        if name in self.order:
            self.order.remove(name)
        self.order.append(name)

    def draw_text(self, label: TextLabel) -> None:
        self.texts.append(label)

    def clear(self) -> None:
        self.scenes.clear()
        self.order.clear()
        self.texts.clear()


def chain_segments(points: list[PlottedPoint], kind: LineKind) -> list[Segment]:
    return [Segment(a.display, b.display, kind) for a, b in zip(points, points[1:])]


def curve_segments(samples: list[DisplayPoint]) -> list[Segment]:
    return [Segment(a, b, "CURVE") for a, b in zip(samples, samples[1:])]


def curve_display_samples(store: PlotStore, mapper: CoordinateMapper, layer: str) -> list[DisplayPoint]:
    knots = sort_data_points(p.data for p in store.resolve(store.curves.get(layer, [])))
    if len(knots) < 2:
        return []
    return [mapper.to_display(p, snap=False) for p in smooth_curve(knots)]


def extended_line_label(
    line: PlottedLine,
    chord: tuple[DisplayPoint, DisplayPoint],
    style: LayerStyle,
    mapper: CoordinateMapper,
) -> TextLabel | None:
    anchor = line.label_anchor
    if anchor is None or anchor.label is None:
        return None
    first, second = chord
    at = first if first.x > second.x else second
    _, top, _, _ = mapper.grid.bounds
    if at.y == top:
        # Keep a label on the top border outside of the grid.
        at = DisplayPoint(at.x, top - style.font_size - LABEL_SPACING)
    anchor.display = at
    anchor.data = mapper.to_data(at, snap=False)
    return TextLabel(
        text=anchor.label,
        at=DisplayPoint(at.x + LABEL_SPACING, at.y + LABEL_SPACING),
        font=style.font,
        font_size=style.font_size,
        color=style.font_color,
    )


def build_layer_scene(store: PlotStore, mapper: CoordinateMapper, name: str) -> LayerScene | None:
    layer = store.layer(name)
    if layer is None:
        return None
    style = layer.style
    segments: list[Segment] = []
    labels: list[TextLabel] = []
    line_point_ids: set[int] = set()

    for line in store.lines[name]:
        line_point_ids.update((line.start_id, line.end_id))
        if line.hidden:
            continue
        start = store.point(line.start_id)
        end = store.point(line.end_id)
        if start is None or end is None:
            continue
        if line.kind == "EXTENDED":
            chord = extrapolate(start.display, end.display, mapper.grid.bounds)
            if chord is None:
                chord = (start.display, end.display)
            segments.append(Segment(chord[0], chord[1], "EXTENDED"))
            label = extended_line_label(line, chord, style, mapper)
            if label is not None:
                labels.append(label)
        else:
            segments.append(Segment(start.display, end.display, line.kind))

    segments.extend(chain_segments(store.resolve(store.connections[name]), "CONNECTED"))
    piecewise = sorted(store.resolve(store.piecewise[name]), key=display_sort_key)
    segments.extend(chain_segments(piecewise, "PIECEWISE"))
    segments.extend(curve_segments(curve_display_samples(store, mapper, name)))

    regression = None
    spec = store.regressions.get(name)
    if spec is not None and store.has_layer(spec.source_layer):
        source = [p.data for p in store.unique_data_points(spec.source_layer)]
        if len(source) > 1:
            regression = compute_regression(source, spec.kind, mapper)
            if regression is not None:
                segments.extend(curve_segments(regression.display))

    markers: list[Marker] = []
    for point in store.points_on(name):
        if point.hidden:
            continue
        if style.no_dots and point.id in line_point_ids:
            continue
        markers.append(Marker(point.id, point.display, point.highlighted))
        if point.label is not None:
            labels.append(
                TextLabel(
                    text=point.label,
                    at=DisplayPoint(
                        point.display.x + (style.size + HIGHLIGHT_EXTEND) / 2.0,
                        point.display.y - style.size / 2.0,
                    ),
                    font=style.font,
                    font_size=style.font_size,
                    color=style.font_color,
                )
            )

    return LayerScene(
        layer=name,
        style=style,
        segments=tuple(segments),
        markers=tuple(markers),
        labels=tuple(labels),
        regression=regression,
    )
