"""Render request models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import get_config
from .topology import Topology


class RenderType(str, Enum):
    """Output format of a rendered map."""

    SVG = "svg"
    PNG = "png"


class LegendPosition(str, Enum):
    """Position of a legend relative to the map."""

    BEFORE = "before"
    AFTER = "after"
    NONE = "none"


class Geography(BaseModel):
    """The topology to draw plus the properties holding region ids and names."""

    model_config = ConfigDict(frozen=True)

    topojson: Optional[Topology] = None
    id_property: str = ""
    name_property: str = ""


class DataRow(BaseModel):
    """A single value for a region."""

    model_config = ConfigDict(frozen=True)

    id: str
    value: float

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        # numeric ids in json are matched as strings
        if isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        return value


class ChoroplethBreak(BaseModel):
    """The lowest value that is drawn with a given colour."""

    model_config = ConfigDict(frozen=True)

    lower_bound: float
    color: str


class Choropleth(BaseModel):
    """Details required to colour the regions and draw the legends."""

    model_config = ConfigDict(frozen=True)

    reference_value: float = 0.0
    reference_value_text: str = ""
    value_prefix: str = ""
    value_suffix: str = ""
    breaks: list[ChoroplethBreak] = Field(default_factory=list)
    upper_bound: float = 0.0
    horizontal_legend_position: LegendPosition = LegendPosition.NONE
    vertical_legend_position: LegendPosition = LegendPosition.NONE

    @field_validator("horizontal_legend_position", "vertical_legend_position", mode="before")
    @classmethod
    def default_position(cls, value):
        if value is None or value == "":
            return LegendPosition.NONE
        return value

    @field_validator("breaks")
    @classmethod
    def distinct_lower_bounds(cls, value):
        bounds = [b.lower_bound for b in value]
        if len(set(bounds)) != len(bounds):
            raise ValueError("break lower bounds must be distinct")
        return value

    @property
    def has_horizontal_legend(self) -> bool:
        return self.horizontal_legend_position in (LegendPosition.BEFORE, LegendPosition.AFTER)

    @property
    def has_vertical_legend(self) -> bool:
        return self.vertical_legend_position in (LegendPosition.BEFORE, LegendPosition.AFTER)


class RenderRequest(BaseModel):
    """A definition of a map that should be rendered.

    The request is immutable; values derived from it during rendering are
    held in a separate per-call ``SVGRequest``.
    """

    model_config = ConfigDict(frozen=True)

    filename: str = Field(..., min_length=1, description="Unique id of the map, used to prefix element ids")
    title: str = ""
    subtitle: str = ""
    source: str = ""
    source_link: str = ""
    licence: str = ""
    footnotes: list[str] = Field(default_factory=list)
    geography: Geography
    data: list[DataRow] = Field(default_factory=list)
    choropleth: Optional[Choropleth] = None
    width: float = Field(default=0.0, ge=0, description="Fixed width of the map viewBox")
    min_width: float = Field(default=0.0, ge=0, description="Minimum width in a responsive design")
    max_width: float = Field(default=0.0, ge=0, description="Maximum width in a responsive design")
    include_fallback_png: bool = False
    font_size: int = Field(
        default_factory=lambda: get_config().default_font_size,
        gt=0,
        description="Font size used when laying out legends",
    )

    @property
    def has_breaks(self) -> bool:
        return self.choropleth is not None and len(self.choropleth.breaks) > 0

    @property
    def has_horizontal_legend(self) -> bool:
        return self.choropleth is not None and self.choropleth.has_horizontal_legend

    @property
    def has_vertical_legend(self) -> bool:
        return self.choropleth is not None and self.choropleth.has_vertical_legend

    @property
    def responsive_size(self) -> bool:
        """True when the svg should scale with the page rather than use a fixed size."""
        return self.min_width > 0 and self.max_width > 0
