"""Data models for map rendering and analysis."""

from .topology import ArcRef, Feature, GeometryType, TopoGeometry, Topology, TopoTransform
from .render_request import (
    Choropleth,
    ChoroplethBreak,
    DataRow,
    Geography,
    LegendPosition,
    RenderRequest,
    RenderType,
)
from .analyse import AnalyseRequest, AnalyseResponse, Message, MessageLevel
from .svg_request import SVGFragment, SVGRequest

__all__ = [
    "ArcRef",
    "Feature",
    "GeometryType",
    "TopoGeometry",
    "Topology",
    "TopoTransform",
    "Choropleth",
    "ChoroplethBreak",
    "DataRow",
    "Geography",
    "LegendPosition",
    "RenderRequest",
    "RenderType",
    "AnalyseRequest",
    "AnalyseResponse",
    "Message",
    "MessageLevel",
    "SVGFragment",
    "SVGRequest",
]
