"""Per-render working state."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from .render_request import RenderRequest
from .topology import Feature

if TYPE_CHECKING:
    from ..services.choropleth_service import BreakInfo
    from ..services.projection_service import ProjectionService


@dataclass
class SVGRequest:
    """A render request plus the expensive values derived from it.

    Built once by ``prepare_svg_request`` and owned by a single render call.
    """

    request: RenderRequest
    features: list[Feature] = field(default_factory=list)
    projection: Optional["ProjectionService"] = None
    view_box_width: float = 0.0
    view_box_height: float = 0.0
    breaks: list["BreakInfo"] = field(default_factory=list)
    reference_pos: float = 0.0
    vertical_legend_width: float = 0.0
    vertical_key_offset: float = 0.0
    responsive_size: bool = False

    @property
    def has_geometry(self) -> bool:
        return self.projection is not None and len(self.features) > 0


@dataclass
class SVGFragment:
    """The pieces of an svg element, before it is emitted as svg or as an image."""

    attributes: str
    content: str
    width: float
    height: float

    def to_svg(self) -> str:
        return f"<svg {self.attributes}>{self.content}</svg>"
