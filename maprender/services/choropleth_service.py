"""Choropleth colouring: assigning a colour and title to every region."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..models.render_request import Choropleth, ChoroplethBreak, DataRow, RenderRequest
from ..models.topology import Feature

logger = logging.getLogger(__name__)

# Class assigned to every map region
REGION_CLASS_NAME = "mapRegion"

# Appended to the title of a region that has no data
MISSING_DATA_TEXT = "data unavailable"


@dataclass(frozen=True)
class ValueAndColour:
    """A data value and the colour of the class it falls in."""

    value: float
    colour: str


@dataclass
class BreakInfo:
    """A class of the choropleth with both bounds and its share of the legend."""

    lower_bound: float
    upper_bound: float
    relative_size: float
    colour: str


def format_value(value: float) -> str:
    """Format a number for display, without trailing zeros."""
    value = float(value)
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return f"{value:.12g}"


def sort_breaks(breaks: list[ChoroplethBreak], ascending: bool = True) -> list[ChoroplethBreak]:
    """Return a copy of the breaks sorted by lower bound."""
    return sorted(breaks, key=lambda b: b.lower_bound, reverse=not ascending)


def get_colour(value: float, breaks_descending: list[ChoroplethBreak]) -> str:
    """Colour for a value, given breaks sorted highest first.

    A value equal to a lower bound belongs to that break's class. Values below
    every lower bound get the colour of the lowest break.
    """
    for b in breaks_descending:
        if value >= b.lower_bound:
            return b.color
    return breaks_descending[-1].color


def map_data_to_colour(
    data: list[DataRow],
    choropleth: Choropleth,
    prefix: str,
) -> dict[str, ValueAndColour]:
    """Map each (prefixed) data row id to its value and colour."""
    breaks = sort_breaks(choropleth.breaks, ascending=False)
    return {
        prefix + row.id: ValueAndColour(value=row.value, colour=get_colour(row.value, breaks))
        for row in data
    }


def id_prefix(request: RenderRequest) -> str:
    """Prefix for all element ids of a map, so several maps can share a page."""
    return request.filename


def set_feature_ids(features: list[Feature], id_property: str, prefix: str) -> None:
    """Set each feature's id from its id property (or existing id), with a prefix."""
    for feature in features:
        value = feature.properties.get(id_property)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = format_value(value)
        if isinstance(value, str) and value:
            feature.id = prefix + value
        elif feature.id:
            feature.id = prefix + feature.id


def append_property(feature: Feature, name: str, value: str) -> None:
    """Set a property, keeping any existing value after the new one."""
    original = feature.properties.get(name)
    if original is not None:
        value = f"{value} {original}"
    feature.properties[name] = value


def set_class_property(features: list[Feature], class_name: str = REGION_CLASS_NAME) -> None:
    for feature in features:
        append_property(feature, "class", class_name)


def missing_data_style(prefix: str) -> str:
    return f"fill: url(#{prefix}-nodata);"


def set_choropleth_colours_and_titles(features: list[Feature], request: RenderRequest) -> None:
    """Assign a fill style and a title to every feature.

    Regions with a matching data row are filled with the colour of their
    class and titled with their value; the rest get the missing-data pattern.
    """
    choropleth = request.choropleth
    if choropleth is None or not choropleth.breaks or not request.data:
        return

    prefix = id_prefix(request)
    name_property = request.geography.name_property
    data_map = map_data_to_colour(request.data, choropleth, prefix + "-")
    missing_style = missing_data_style(prefix)

    matched = 0
    for feature in features:
        title: Any = feature.properties.get(name_property, "")
        vc = data_map.get(feature.id) if feature.id is not None else None
        if vc is not None:
            matched += 1
            style = f"fill: {vc.colour};"
            value_text = f"{choropleth.value_prefix}{format_value(vc.value)}{choropleth.value_suffix}"
            title = f"{title} {value_text}"
        else:
            style = missing_style
            title = f"{title} {MISSING_DATA_TEXT}"
        feature.properties[name_property] = title
        append_property(feature, "style", style)

    logger.debug("Coloured %d of %d regions", matched, len(features))


def get_sorted_break_info(request: RenderRequest) -> tuple[list[BreakInfo], float]:
    """Derive both bounds and the relative size of every class.

    The lower bound of the first class is the lower of the first break and the
    lowest data value. The upper bound of the last class is the choropleth's
    upper bound, or the highest data value if no usable upper bound is given.

    Returns:
        The classes sorted ascending, and the relative position (0..1) of the
        reference value along the legend.
    """
    choropleth = request.choropleth
    if choropleth is None or not choropleth.breaks:
        return [], 0.0

    breaks = sort_breaks(choropleth.breaks, ascending=True)
    values = [row.value for row in request.data]
    last_lower = breaks[-1].lower_bound

    min_value = min(min(values), breaks[0].lower_bound) if values else breaks[0].lower_bound
    max_value = choropleth.upper_bound
    if max_value < last_lower:
        max_value = max(values) if values else last_lower
    max_value = max(max_value, last_lower)
    total_range = max_value - min_value

    info = []
    for i, b in enumerate(breaks):
        lower = min_value if i == 0 else b.lower_bound
        upper = breaks[i + 1].lower_bound if i < len(breaks) - 1 else max_value
        info.append(BreakInfo(lower_bound=lower, upper_bound=upper, relative_size=0.0, colour=b.color))

    if total_range > 0:
        for b in info:
            b.relative_size = (b.upper_bound - b.lower_bound) / total_range
        reference_pos = (choropleth.reference_value - min_value) / total_range
    else:
        for b in info:
            b.relative_size = 1.0 / len(info)
        reference_pos = 0.0

    return info, reference_pos


def get_title_text(choropleth: Optional[Choropleth]) -> str:
    """Legend title: the value prefix and suffix."""
    if choropleth is None:
        return ""
    return f"{choropleth.value_prefix} {choropleth.value_suffix}".strip()
