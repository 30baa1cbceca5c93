"""Session string: the single-line transport format hosts store and hand back.

Nine fields joined by ``~``::

    surface id ~ item id ~ grid style ~ layers ~ points ~ lines ~ piecewise ~ connections ~ curves

Every field after the two ids is compact JSON. Points travel as display
positions and lines and chains refer to points by id, so points are always
restored first. Regressions are not part of the format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from typing import TYPE_CHECKING, Any, Mapping

from graphpad.errors import SessionFormatError
from graphpad.model import LINE_KINDS, DisplayPoint, PlottedLine, PlottedPoint

if TYPE_CHECKING:
    from graphpad.session import GraphSession


LOGGER = logging.getLogger(__name__)

SEPARATOR = "~"
FIELD_COUNT = 9


@dataclass(frozen=True)
class LayerRecord:
    name: str
    persist: bool = False
    style: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SessionRecord:
    surface_id: str
    item_id: str
    grid_style: Mapping[str, Any]
    layers: list[LayerRecord]
    points: list[Any]
    lines: list[Any]
    piecewise: list[Any]
    connections: list[Any]
    curves: list[Any]


def _encode(value: Any) -> str:
    # `~` can only occur inside JSON strings, where the escape is equivalent.
    return json.dumps(value, separators=(",", ":")).replace(SEPARATOR, "\\u007e")


def _chain_records(collection: Mapping[str, list[int]], layer_names: list[str]) -> list[dict[str, Any]]:
    return [{"layerName": name, "pointIDs": list(collection.get(name, []))} for name in layer_names]


def dump_session(session: "GraphSession") -> str:
    for label, value in (("surface id", session.surface_id), ("item id", session.item_id)):
        if SEPARATOR in value:
            raise SessionFormatError(f"{label} may not contain `{SEPARATOR}`: {value!r}")
    store = session.store
    layers = store.layers()
    layer_names = [layer.name for layer in layers]

    # Hidden lines are unfinished placements; they and their endpoints are dropped.
    unfinished: set[int] = set()
    lines = []
    for name in layer_names:
        for line in store.lines[name]:
            if line.hidden:
                unfinished.update((line.start_id, line.end_id))
                continue
            lines.append([line.start_id, line.end_id, line.kind, line.layer])
    points = [
        [[p.display.x, p.display.y], p.layer, p.id, p.label]
        for p in store.all_points()
        if p.id not in unfinished
    ]
    fields = [
        session.surface_id,
        session.item_id,
        _encode(session.style.to_mapping()),
        _encode(
            [
                {"layerName": layer.name, "persist": layer.persist, "styleObj": layer.style.to_mapping()}
                for layer in layers
            ]
        ),
        _encode(points),
        _encode(lines),
        _encode(_chain_records(store.piecewise, layer_names)),
        _encode(_chain_records(store.connections, layer_names)),
        _encode(_chain_records(store.curves, layer_names)),
    ]
    return SEPARATOR.join(fields)


def parse_session(text: str) -> SessionRecord:
    if not isinstance(text, str):
        raise SessionFormatError(f"session data must be a string, got {type(text).__name__}")
    parts = text.split(SEPARATOR)
    if len(parts) != FIELD_COUNT:
        raise SessionFormatError(f"session data must have {FIELD_COUNT} fields, got {len(parts)}")
    try:
        decoded = [json.loads(part) for part in parts[2:]]
    except json.JSONDecodeError as exc:
        raise SessionFormatError(f"session field is not valid JSON: {exc}") from exc

    grid_style, layers, points, lines, piecewise, connections, curves = decoded
    if grid_style is None:
        grid_style = {}
    if not isinstance(grid_style, dict):
        raise SessionFormatError("grid style must be a JSON object")
    for label, value in (
        ("layers", layers),
        ("points", points),
        ("lines", lines),
        ("piecewise", piecewise),
        ("connections", connections),
        ("curves", curves),
    ):
        if not isinstance(value, list):
            raise SessionFormatError(f"`{label}` must be a JSON list")

    layer_records: list[LayerRecord] = []
    for raw in layers:
        if not isinstance(raw, dict) or not isinstance(raw.get("layerName"), str):
            raise SessionFormatError(f"invalid layer record: {raw!r}")
        style = raw.get("styleObj") or {}
        if not isinstance(style, dict):
            raise SessionFormatError(f"invalid layer style: {style!r}")
        layer_records.append(LayerRecord(raw["layerName"], bool(raw.get("persist", False)), style))

    return SessionRecord(
        surface_id=parts[0],
        item_id=parts[1],
        grid_style=grid_style,
        layers=layer_records,
        points=points,
        lines=lines,
        piecewise=piecewise,
        connections=connections,
        curves=curves,
    )


def load_session(session: "GraphSession", text: str) -> None:
    """Restore points, lines and chains into a session whose layers already exist."""
    apply_record(session, parse_session(text))


def apply_record(session: "GraphSession", record: SessionRecord) -> None:
    store = session.store
    mapper = session.mapper

    for raw in record.points:
        try:
            position, layer_name, point_id, label = raw
            display = _display_point(position)
            point_id = int(point_id)
        except (TypeError, ValueError, KeyError) as exc:
            raise SessionFormatError(f"invalid point record: {raw!r}") from exc
        layer = store.layer(layer_name)
        if layer is None:
            LOGGER.warning("skipping point %s on unknown layer %s", point_id, layer_name)
            continue
        if layer.persist:
            continue
        if store.point(point_id) is not None:
            LOGGER.warning("skipping point %s: id already in use", point_id)
            continue
        data, snapped = mapper.display_pair(display)
        store.add_point(
            PlottedPoint(
                id=point_id,
                layer=layer_name,
                data=data,
                display=snapped,
                label=str(label) if label else None,
            )
        )

    for raw in record.lines:
        try:
            start_id, end_id, kind, layer_name = raw
            start_id = int(start_id)
            end_id = int(end_id)
        except (TypeError, ValueError) as exc:
            raise SessionFormatError(f"invalid line record: {raw!r}") from exc
        layer = store.layer(layer_name)
        if layer is None or layer.persist:
            continue
        if kind not in LINE_KINDS:
            LOGGER.warning("skipping line with unknown kind %r", kind)
            continue
        if store.point(start_id) is None or store.point(end_id) is None:
            LOGGER.warning("skipping line %s-%s: endpoint not restored", start_id, end_id)
            continue
        store.add_line(
            PlottedLine(id=store.allocate_id(), layer=layer_name, start_id=start_id, end_id=end_id, kind=kind)
        )

    for collection, records in (
        (store.piecewise, record.piecewise),
        (store.connections, record.connections),
        (store.curves, record.curves),
    ):
        for raw in records:
            if not isinstance(raw, dict) or not isinstance(raw.get("pointIDs"), list):
                raise SessionFormatError(f"invalid chain record: {raw!r}")
            layer = store.layer(raw.get("layerName"))
            if layer is None or layer.persist:
                continue
            try:
                point_ids = [int(pid) for pid in raw["pointIDs"]]
            except (TypeError, ValueError) as exc:
                raise SessionFormatError(f"invalid chain record: {raw!r}") from exc
            ids: list[int] = []
            for pid in point_ids:
                if store.point(pid) is None:
                    LOGGER.warning("dropping unknown point %s from %s", pid, layer.name)
                    continue
                ids.append(pid)
            collection[layer.name] = ids

    session.draw_layers()


def _display_point(raw: Any) -> DisplayPoint:
    if isinstance(raw, dict):
        return DisplayPoint(float(raw["x"]), float(raw["y"]))
    x, y = raw
    return DisplayPoint(float(x), float(y))
