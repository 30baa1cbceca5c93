from graphpad.actions import PlaceConnected, PlaceCurve, PlaceDot, PlaceLine, PlacePiecewise, click_action_from_name
from graphpad.coordinates import CoordinateMapper
from graphpad.errors import ConstraintViolation, GraphpadError, OverlapError, SessionFormatError, VerticalLineError
from graphpad.events import PointerEvent, pointer_down, pointer_move, pointer_up
from graphpad.grid import GraphStyle, GridParameters, SnapSettings, load_graph_style
from graphpad.model import DataPoint, DisplayPoint, Layer, LayerStyle, PlottedLine, PlottedPoint
from graphpad.scene import LayerScene, RecordingSurface, RenderSurface
from graphpad.session import GraphSession

__all__ = [
    "ConstraintViolation",
    "CoordinateMapper",
    "DataPoint",
    "DisplayPoint",
    "GraphSession",
    "GraphStyle",
    "GraphpadError",
    "GridParameters",
    "Layer",
    "LayerScene",
    "LayerStyle",
    "OverlapError",
    "PlaceConnected",
    "PlaceCurve",
    "PlaceDot",
    "PlaceLine",
    "PlacePiecewise",
    "PlottedLine",
    "PlottedPoint",
    "PointerEvent",
    "RecordingSurface",
    "RenderSurface",
    "SessionFormatError",
    "SnapSettings",
    "VerticalLineError",
    "click_action_from_name",
    "load_graph_style",
    "pointer_down",
    "pointer_move",
    "pointer_up",
]
