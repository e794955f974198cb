"""Map rendering and data analysis services."""

from .topology_service import TopologyService
from .projection_service import ProjectionService
from .png_service import PNGConversionError, PNGConverter
from .svg_service import MapRenderer
from .html_service import render_html
from .classification_service import ClassificationResult, ClassificationService
from .analyse_service import AnalyseError, analyse

__all__ = [
    "TopologyService",
    "ProjectionService",
    "PNGConversionError",
    "PNGConverter",
    "MapRenderer",
    "render_html",
    "ClassificationResult",
    "ClassificationService",
    "AnalyseError",
    "analyse",
]
