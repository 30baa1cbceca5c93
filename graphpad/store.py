from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from graphpad.model import Layer, PlottedLine, PlottedPoint


@dataclass(frozen=True)
class RegressionSpec:
    source_layer: str
    kind: str


class PlotStore:
    """Point arena plus the per-layer line, chain and curve collections of one session."""

    def __init__(self) -> None:
        self._layers: dict[str, Layer] = {}
        self._z_order: list[str] = []
        self._points: dict[int, PlottedPoint] = {}
        self.lines: dict[str, list[PlottedLine]] = {}
        self.connections: dict[str, list[int]] = {}
        self.piecewise: dict[str, list[int]] = {}
        self.curves: dict[str, list[int]] = {}
        self.regressions: dict[str, RegressionSpec | None] = {}
        self._next_id = 1

    # layers

    def add_layer(self, layer: Layer) -> Layer:
        existing = self._layers.get(layer.name)
        if existing is not None:
            return existing
        self._layers[layer.name] = layer
        self._z_order.append(layer.name)
        self.lines[layer.name] = []
        self.connections[layer.name] = []
        self.piecewise[layer.name] = []
        self.curves[layer.name] = []
        self.regressions[layer.name] = None
        return layer

    def remove_layer(self, name: str) -> None:
        if name not in self._layers:
            return
        for point in self.points_on(name):
            del self._points[point.id]
        del self._layers[name]
        self._z_order.remove(name)
        for collection in (self.lines, self.connections, self.piecewise, self.curves, self.regressions):
            collection.pop(name, None)

    def layer(self, name: str) -> Layer | None:
        return self._layers.get(name)

    def has_layer(self, name: str) -> bool:
        return name in self._layers

    def layers(self) -> list[Layer]:
        """Layers bottom to top."""
        return [self._layers[name] for name in self._z_order]

    def raise_layer(self, name: str) -> None:
        if name not in self._layers:
            return
        self._z_order.remove(name)
        self._z_order.append(name)

    def top_layer(self) -> Layer | None:
        if not self._z_order:
            return None
        return self._layers[self._z_order[-1]]

    def clear_layer_collections(self, name: str) -> None:
        self.lines[name] = []
        self.connections[name] = []
        self.piecewise[name] = []
        self.curves[name] = []
        self.regressions[name] = None

    def clear_layer(self, name: str) -> bool:
        """Drop every point and collection of a non-persistent layer."""
        layer = self._layers.get(name)
        if layer is None or layer.persist:
            return False
        for point in self.points_on(name):
            del self._points[point.id]
        self.clear_layer_collections(name)
        return True

    # points

    def allocate_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def reserve_id(self, value: int) -> None:
        """Keep newly allocated ids clear of an externally assigned one."""
        if value >= self._next_id:
            self._next_id = value + 1

    def add_point(self, point: PlottedPoint) -> PlottedPoint:
        if point.id in self._points:
            raise ValueError(f"duplicate point id: {point.id}")
        self.reserve_id(point.id)
        self._points[point.id] = point
        return point

    def remove_point(self, point_id: int) -> PlottedPoint | None:
        point = self._points.pop(point_id, None)
        if point is None:
            return None
        for collection in (self.connections, self.piecewise, self.curves):
            members = collection.get(point.layer)
            if members and point_id in members:
                collection[point.layer] = [pid for pid in members if pid != point_id]
        return point

    def point(self, point_id: int) -> PlottedPoint | None:
        return self._points.get(point_id)

    def resolve(self, point_ids: Iterable[int]) -> list[PlottedPoint]:
        out: list[PlottedPoint] = []
        for pid in point_ids:
            point = self._points.get(pid)
            if point is not None:
                out.append(point)
        return out

    def all_points(self, layer: str | None = None) -> list[PlottedPoint]:
        """Registered points in insertion order, optionally filtered by layer."""
        if layer is None:
            return list(self._points.values())
        return [p for p in self._points.values() if p.layer == layer]

    def points_on(self, layer: str) -> list[PlottedPoint]:
        return self.all_points(layer)

    def __iter__(self) -> Iterator[PlottedPoint]:
        return iter(list(self._points.values()))

    def __len__(self) -> int:
        return len(self._points)

    def point_count(self, layer: str) -> int:
        return sum(1 for p in self._points.values() if p.layer == layer)

    def structured_point_ids(self) -> set[int]:
        """Ids of points that belong to a line, a chain or a curve on any layer."""
        ids: set[int] = set()
        for name in self._z_order:
            for line in self.lines[name]:
                ids.add(line.start_id)
                ids.add(line.end_id)
            if len(self.connections[name]) > 1:
                ids.update(self.connections[name])
            if len(self.piecewise[name]) > 1:
                ids.update(self.piecewise[name])
            if len(self.curves[name]) > 2:
                ids.update(self.curves[name])
        return ids

    def dots(self, layer: str | None = None) -> list[PlottedPoint]:
        """Points that are not part of any line, chain or curve."""
        structured = self.structured_point_ids()
        return [p for p in self.all_points(layer) if p.id not in structured]

    def unique_data_points(self, layer: str) -> list[PlottedPoint]:
        seen: set[tuple[float, float]] = set()
        out: list[PlottedPoint] = []
        for point in self.all_points(layer):
            key = (point.data.x, point.data.y)
            if key in seen:
                continue
            seen.add(key)
            out.append(point)
        return out

    def line(self, line_id: int) -> PlottedLine | None:
        for lines in self.lines.values():
            for line in lines:
                if line.id == line_id:
                    return line
        return None

    def add_line(self, line: PlottedLine) -> PlottedLine:
        self.reserve_id(line.id)
        self.lines[line.layer].append(line)
        return line

    def remove_line(self, line_id: int) -> PlottedLine | None:
        """Detach a line from its layer; its endpoints stay registered."""
        for lines in self.lines.values():
            for index, line in enumerate(lines):
                if line.id == line_id:
                    del lines[index]
                    return line
        return None

    def clear(self) -> None:
        self._layers.clear()
        self._z_order.clear()
        self._points.clear()
        for collection in (self.lines, self.connections, self.piecewise, self.curves, self.regressions):
            collection.clear()
