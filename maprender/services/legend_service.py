"""Layout and markup of the horizontal and vertical choropleth legends.

All layout decisions rely on approximate text widths. Wherever text might
still not fit, it is given an explicit ``textLength`` so the browser squashes
it instead of letting it spill outside the svg.
"""

import logging
from dataclasses import dataclass
from html import escape
from typing import Optional

from ..models.render_request import RenderRequest
from ..models.svg_request import SVGFragment, SVGRequest
from .choropleth_service import (
    MISSING_DATA_TEXT,
    BreakInfo,
    format_value,
    get_title_text,
    id_prefix,
)
from .text_metrics import get_approximate_text_width

logger = logging.getLogger(__name__)

# Share of the map width used by the horizontal key when everything fits
HORIZONTAL_KEY_FRACTION = 0.9
# viewBox height of the horizontal legend
HORIZONTAL_LEGEND_HEIGHT = 90.0
# Share of the map height used by the vertical key
VERTICAL_KEY_FRACTION = 0.8
# Space taken by the colour bar and tick lines of the vertical key
VERTICAL_BAR_WIDTH = 38.0
VERTICAL_LEGEND_PADDING = 10.0
# Width of the missing-data swatch plus the gap before its label
SWATCH_WIDTH = 12.0
# Gap between the reference tick and its text, in em
REFERENCE_TEXT_GAP_EM = 0.1

MISSING_DATA_PATTERN = (
    '<pattern id="{id}-nodata" width="20" height="20" patternUnits="userSpaceOnUse">'
    '<g fill="#6D6E72">'
    '<polygon points="00 00 02 00 00 02 00 00"></polygon>'
    '<polygon points="04 00 06 00 00 06 00 04"></polygon>'
    '<polygon points="08 00 10 00 00 10 00 08"></polygon>'
    '<polygon points="12 00 14 00 00 14 00 12"></polygon>'
    '<polygon points="16 00 18 00 00 18 00 16"></polygon>'
    '<polygon points="20 00 20 02 02 20 00 20"></polygon>'
    '<polygon points="20 04 20 06 06 20 04 20"></polygon>'
    '<polygon points="20 08 20 10 10 20 08 20"></polygon>'
    '<polygon points="20 12 20 14 14 20 12 20"></polygon>'
    '<polygon points="20 16 20 18 18 20 16 20"></polygon>'
    "</g>"
    "</pattern>"
)


def missing_data_pattern(pattern_id: str) -> str:
    """The hatched fill pattern used for regions without data."""
    return MISSING_DATA_PATTERN.format(id=pattern_id)


def _f(value: float) -> str:
    return f"{value:.2f}"


def _text_length(length: float) -> str:
    return f' textLength="{max(int(length), 0)}" lengthAdjust="spacingAndGlyphs"'


# ----------------------------------------------------------------------
# Reference text
# ----------------------------------------------------------------------


@dataclass
class ReferenceText:
    """The reference value and label, split by which is longer."""

    long_text: str
    long_len: float
    short_text: str
    short_len: float


def get_reference_text(request: RenderRequest) -> ReferenceText:
    choropleth = request.choropleth
    label = choropleth.reference_value_text
    value = format_value(choropleth.reference_value)
    label_len = get_approximate_text_width(label, request.font_size)
    value_len = get_approximate_text_width(value, request.font_size)
    if label_len > value_len:
        return ReferenceText(label, label_len, value, value_len)
    return ReferenceText(value, value_len, label, label_len)


def has_reference(request: RenderRequest) -> bool:
    return request.choropleth is not None and len(request.choropleth.reference_value_text) > 0


# ----------------------------------------------------------------------
# Horizontal layout
# ----------------------------------------------------------------------


@dataclass
class HorizontalKeyInfo:
    """Geometry of the horizontal key.

    ``key_x`` and ``key_width`` place the colour bar inside an svg of width
    ``svg_width``. The remaining fields describe the text that may hang over
    either end of the bar, so the extent of all text can be checked. The
    reference text lengths include the gap between the tick and the text.
    """

    svg_width: float
    key_width: float
    key_x: float
    reference_pos: float = 0.0
    lower_label_half: float = 0.0
    upper_label_half: float = 0.0
    show_reference: bool = False
    reference_text_left: str = ""
    reference_text_left_len: float = 0.0
    reference_text_right: str = ""
    reference_text_right_len: float = 0.0
    reference_gap: float = 0.0

    @property
    def reference_x(self) -> float:
        """Position of the reference tick relative to the start of the key."""
        return self.key_width * self.reference_pos

    def reference_left_room(self) -> float:
        """Space between the left edge of the svg and the reference tick."""
        return max(self.key_x + self.reference_x, 0.0)

    def reference_right_room(self) -> float:
        """Space between the reference tick and the right edge of the svg."""
        return max(self.svg_width - self.key_x - self.reference_x, 0.0)

    def text_left_edge(self) -> float:
        """Leftmost extent of any text, in svg coordinates."""
        edge = self.key_x - self.lower_label_half
        if self.show_reference:
            edge = min(edge, self.key_x + self.reference_x - self.reference_text_left_len)
        return edge

    def text_right_edge(self) -> float:
        """Rightmost extent of any text, in svg coordinates."""
        edge = self.key_x + self.key_width + self.upper_label_half
        if self.show_reference:
            edge = max(edge, self.key_x + self.reference_x + self.reference_text_right_len)
        return edge

    def left_overflow(self) -> float:
        return max(0.0, -self.text_left_edge())

    def right_overflow(self) -> float:
        return max(0.0, self.text_right_edge() - self.svg_width)


def _overhang(info: HorizontalKeyInfo, key_width: float) -> tuple[float, float]:
    """Space needed left and right of a key of the given width."""
    left = info.lower_label_half
    right = info.upper_label_half
    if info.show_reference:
        ref_x = key_width * info.reference_pos
        left = max(left, info.reference_text_left_len - ref_x)
        right = max(right, ref_x + info.reference_text_right_len - key_width)
    return left, right


def _fit_key_width(info: HorizontalKeyInfo, max_width: float) -> Optional[float]:
    """Widest key (up to ``max_width``) whose text fits inside the svg.

    The total extent ``w + left(w) + right(w)`` never decreases as the key
    widens, so the answer is the largest root of ``extent(w) == svg_width``
    over the linear pieces of the overhang functions. Returns None when no
    key width lets the reference text fit.
    """
    svg_width = info.svg_width
    a, b = info.lower_label_half, info.upper_label_half
    p = info.reference_pos

    def fits(width: float) -> bool:
        left, right = _overhang(info, width)
        return width >= 0 and width + left + right <= svg_width + 1e-9

    candidates = [svg_width - a - b]
    if info.show_reference:
        big_l, big_r = info.reference_text_left_len, info.reference_text_right_len
        if p < 1:
            candidates.append((svg_width - big_l - b) / (1 - p))
        if p > 0:
            candidates.append((svg_width - a - big_r) / p)

    valid = [min(c, max_width) for c in candidates if fits(min(c, max_width))]
    if valid:
        return max(valid)
    return None


def get_horizontal_key_info(svg_width: float, svg_request: SVGRequest) -> HorizontalKeyInfo:
    """Lay out the horizontal key.

    The key starts at 90% of the svg width, centred. The longer of the
    reference value and reference label goes on the side of the reference
    tick with more room. If any text would extend past the svg, the key is
    narrowed and shifted until it all fits.
    """
    request = svg_request.request
    breaks = svg_request.breaks
    font_size = request.font_size

    key_width = svg_width * HORIZONTAL_KEY_FRACTION
    info = HorizontalKeyInfo(
        svg_width=svg_width,
        key_width=key_width,
        key_x=(svg_width - key_width) / 2,
        reference_pos=svg_request.reference_pos,
        lower_label_half=get_approximate_text_width(format_value(breaks[0].lower_bound), font_size) / 2,
        upper_label_half=get_approximate_text_width(format_value(breaks[-1].upper_bound), font_size) / 2,
    )

    if has_reference(request):
        ref = get_reference_text(request)
        gap = font_size * REFERENCE_TEXT_GAP_EM
        info.show_reference = True
        info.reference_gap = gap
        if svg_request.reference_pos >= 0.5:
            info.reference_text_left, info.reference_text_left_len = ref.long_text, ref.long_len + gap
            info.reference_text_right, info.reference_text_right_len = ref.short_text, ref.short_len + gap
        else:
            info.reference_text_left, info.reference_text_left_len = ref.short_text, ref.short_len + gap
            info.reference_text_right, info.reference_text_right_len = ref.long_text, ref.long_len + gap

    left, right = _overhang(info, key_width)
    if key_width + left + right > svg_width:
        fitted = _fit_key_width(info, key_width)
        if fitted is None:
            # the reference text is squashed instead; only the end labels are fitted
            logger.debug("Reference text cannot fit in legend of width %.1f", svg_width)
            fitted = min(max(svg_width - info.lower_label_half - info.upper_label_half, 0.0), key_width)
            left, right = info.lower_label_half, info.upper_label_half
        else:
            left, right = _overhang(info, fitted)
        info.key_width = fitted

    # keep the key centred where possible, otherwise shift it just enough
    centred = (svg_width - info.key_width) / 2
    key_x = min(max(centred, left), max(svg_width - info.key_width - right, left))
    # the colour bar itself is always inside the svg
    info.key_x = min(max(key_x, 0.0), max(svg_width - info.key_width, 0.0))
    return info


# ----------------------------------------------------------------------
# Vertical layout
# ----------------------------------------------------------------------


def get_vertical_tick_text_width(request: RenderRequest, breaks: list[BreakInfo]) -> tuple[float, float]:
    """Total width of the tick labels on both sides of the vertical key.

    Returns:
        The width (including the colour bar and tick lines), and the offset of
        the key from the centre of the legend.
    """
    font_size = request.font_size
    max_tick = 0.0
    for b in breaks:
        max_tick = max(
            max_tick,
            get_approximate_text_width(format_value(b.lower_bound), font_size),
            get_approximate_text_width(format_value(b.upper_bound), font_size),
        )
    ref_width = 0.0
    if has_reference(request):
        ref = get_reference_text(request)
        ref_width = ref.long_len
    return max_tick + ref_width + VERTICAL_BAR_WIDTH, max_tick - ref_width


def get_vertical_legend_width(request: RenderRequest, breaks: list[BreakInfo]) -> tuple[float, float]:
    """Width needed by the vertical legend, and the key offset."""
    font_size = request.font_size
    missing_width = get_approximate_text_width(MISSING_DATA_TEXT, font_size) + SWATCH_WIDTH
    title_width = get_approximate_text_width(get_title_text(request.choropleth), font_size)
    tick_width, offset = get_vertical_tick_text_width(request, breaks)
    return max(missing_width, title_width, tick_width) + VERTICAL_LEGEND_PADDING, offset


# ----------------------------------------------------------------------
# Markup
# ----------------------------------------------------------------------


def get_key_class(request: RenderRequest, key_type: str) -> str:
    """Class of a legend svg, with an extra class when both legends are drawn."""
    key_class = f"map_key_{key_type}"
    if request.has_horizontal_legend and request.has_vertical_legend:
        key_class = f"{key_class} {key_class}_both"
    return key_class


def _svg_attributes(svg_id: str, key_class: str, width: float, height: float, responsive: bool) -> str:
    attributes = f'id="{escape(svg_id)}" class="{key_class}" viewBox="0 0 {width:.0f} {height:.0f}"'
    if not responsive:
        attributes += f' width="{width:.0f}" height="{height:.0f}"'
    return attributes


def write_key_missing_pattern(parts: list[str], pattern_id: str, x: float, y: float, font_size: int) -> None:
    """A small square filled with the missing-data pattern, with its label."""
    text_len = get_approximate_text_width(MISSING_DATA_TEXT, font_size)
    parts.append(f'<g class="missingPattern" transform="translate({_f(x)}, {_f(y)})">')
    parts.append(
        '<rect class="keyColour" height="8" width="8" '
        f'style="stroke-width: 0.8; stroke: black; fill: url(#{escape(pattern_id)}-nodata);"></rect>'
    )
    parts.append(
        '<text x="12" dy=".55em" style="text-anchor: start; fill: DimGrey;" class="keyText"'
        f"{_text_length(text_len)}>{MISSING_DATA_TEXT}</text>"
    )
    parts.append("</g>")


def write_horizontal_key_title(parts: list[str], request: RenderRequest, svg_width: float) -> None:
    """The legend title, squashed if it is wider than the svg."""
    title = get_title_text(request.choropleth)
    adjust = ""
    if get_approximate_text_width(title, request.font_size) >= svg_width:
        adjust = _text_length(svg_width - 2)
    parts.append(
        f'<text x="{_f(svg_width / 2)}" y="6" dy=".5em" style="text-anchor: middle;" '
        f'class="keyText"{adjust}>{escape(title)}</text>'
    )


def write_horizontal_key_tick(parts: list[str], x: float, value: float) -> None:
    parts.append(f'<g class="map__tick" transform="translate({_f(x)}, 0)">')
    parts.append('<line x2="0" y2="15" style="stroke-width: 1; stroke: Black;"></line>')
    parts.append(
        '<text x="0" y="18" dy=".74em" style="text-anchor: middle;" '
        f'class="keyText">{format_value(value)}</text>'
    )
    parts.append("</g>")


def write_horizontal_key_ref_tick(parts: list[str], info: HorizontalKeyInfo) -> None:
    """The reference tick with its value and label on either side."""
    x = info.reference_x
    parts.append(f'<g class="map__tick" transform="translate({_f(x)}, 0)">')
    parts.append('<line x2="0" y1="8" y2="45" style="stroke-width: 1; stroke: DimGrey;"></line>')

    adjust = ""
    room = info.reference_left_room()
    if info.reference_text_left_len > room:
        adjust = _text_length(room - info.reference_gap)
    parts.append(
        '<text x="0" y="33" dx="-0.1em" dy=".74em" style="text-anchor: end; fill: DimGrey;" '
        f'class="keyText"{adjust}>{escape(info.reference_text_left)}</text>'
    )
    adjust = ""
    room = info.reference_right_room()
    if info.reference_text_right_len > room:
        adjust = _text_length(room - info.reference_gap)
    parts.append(
        '<text x="0" y="33" dx="0.1em" dy=".74em" style="text-anchor: start; fill: DimGrey;" '
        f'class="keyText"{adjust}>{escape(info.reference_text_right)}</text>'
    )
    parts.append("</g>")


def render_horizontal_key(svg_request: SVGRequest) -> Optional[SVGFragment]:
    """Build the horizontal legend, or None if there is nothing to draw."""
    if not svg_request.has_geometry or not svg_request.breaks:
        return None

    request = svg_request.request
    svg_width = svg_request.view_box_width
    info = get_horizontal_key_info(svg_width, svg_request)
    prefix = id_prefix(request)
    pattern_id = f"{prefix}-horizontal"
    breaks = svg_request.breaks

    parts = ["<defs>", missing_data_pattern(escape(pattern_id)), "</defs>"]
    parts.append(f'<g id="{escape(prefix)}-legend-horizontal-container">')
    write_horizontal_key_title(parts, request, svg_width)
    parts.append(f'<g id="{escape(prefix)}-legend-horizontal-key" transform="translate({_f(info.key_x)}, 20)">')

    ticks: list[str] = []
    left = 0.0
    for b in breaks:
        width = b.relative_size * info.key_width
        parts.append(
            f'<rect class="keyColour" height="8" width="{_f(width)}" x="{_f(left)}" '
            f'style="stroke-width: 0.5; stroke: black; fill: {escape(b.colour)};"></rect>'
        )
        write_horizontal_key_tick(ticks, left, b.lower_bound)
        left += width
    write_horizontal_key_tick(ticks, left, breaks[-1].upper_bound)
    if info.show_reference:
        write_horizontal_key_ref_tick(ticks, info)
    parts.extend(ticks)

    write_key_missing_pattern(parts, pattern_id, 0.0, 55.0, request.font_size)
    parts.append("</g></g>")

    attributes = _svg_attributes(
        f"{prefix}-legend-horizontal-svg",
        get_key_class(request, "horizontal"),
        svg_width,
        HORIZONTAL_LEGEND_HEIGHT,
        svg_request.responsive_size,
    )
    return SVGFragment(attributes, "".join(parts), svg_width, HORIZONTAL_LEGEND_HEIGHT)


def write_vertical_legend_title(parts: list[str], request: RenderRequest, key_width: float, svg_height: float) -> None:
    title = get_title_text(request.choropleth)
    text_len = get_approximate_text_width(title, request.font_size)
    adjust = _text_length(text_len) if title else ""
    parts.append(
        f'<text x="{_f(key_width / 2)}" y="{_f(svg_height * 0.05)}" dy=".5em" style="text-anchor: middle;" '
        f'class="keyText"{adjust}>{escape(title)}</text>'
    )


def write_vertical_key_tick(parts: list[str], y: float, value: float) -> None:
    parts.append(f'<g class="map__tick" transform="translate(0, {_f(y)})">')
    parts.append('<line x1="8" x2="-15" style="stroke-width: 1; stroke: Black;"></line>')
    parts.append(
        '<text x="-18" y="0" dy="0.32em" style="text-anchor: end;" '
        f'class="keyText">{format_value(value)}</text>'
    )
    parts.append("</g>")


def write_vertical_key_ref_tick(parts: list[str], y: float, request: RenderRequest) -> None:
    text = request.choropleth.reference_value_text
    value = format_value(request.choropleth.reference_value)
    text_len = get_approximate_text_width(text, request.font_size)
    parts.append(f'<g class="map__tick" transform="translate(0, {_f(y)})">')
    parts.append('<line x2="45" x1="8" style="stroke-width: 1; stroke: DimGrey;"></line>')
    parts.append(
        '<text x="18" dy="-.32em" style="text-anchor: start; fill: DimGrey;" '
        f'class="keyText"{_text_length(text_len)}>{escape(text)}</text>'
    )
    parts.append(
        '<text x="18" dy="1em" style="text-anchor: start; fill: DimGrey;" '
        f'class="keyText">{value}</text>'
    )
    parts.append("</g>")


def render_vertical_key(svg_request: SVGRequest) -> Optional[SVGFragment]:
    """Build the vertical legend, or None if there is nothing to draw."""
    if not svg_request.has_geometry or not svg_request.breaks:
        return None

    request = svg_request.request
    svg_height = svg_request.view_box_height
    key_height = svg_height * VERTICAL_KEY_FRACTION
    key_width = svg_request.vertical_legend_width
    offset = svg_request.vertical_key_offset
    prefix = id_prefix(request)
    pattern_id = f"{prefix}-vertical"
    breaks = svg_request.breaks

    parts = ["<defs>", missing_data_pattern(escape(pattern_id)), "</defs>"]
    parts.append(f'<g id="{escape(prefix)}-legend-vertical-container">')
    write_vertical_legend_title(parts, request, key_width, svg_height)
    parts.append(
        f'<g id="{escape(prefix)}-legend-vertical-key" '
        f'transform="translate({_f((key_width + offset) / 2)}, {_f(svg_height * 0.1)})">'
    )

    # classes stack upwards from the bottom of the key
    ticks: list[str] = []
    position = 0.0
    for b in breaks:
        height = b.relative_size * key_height
        bottom = key_height - position
        parts.append(
            f'<rect class="keyColour" height="{_f(height)}" width="8" y="{_f(bottom - height)}" '
            f'style="stroke-width: 0.5; stroke: black; fill: {escape(b.colour)};"></rect>'
        )
        write_vertical_key_tick(ticks, bottom, b.lower_bound)
        position += height
    write_vertical_key_tick(ticks, key_height - position, breaks[-1].upper_bound)
    if has_reference(request):
        write_vertical_key_ref_tick(ticks, key_height - key_height * svg_request.reference_pos, request)
    parts.extend(ticks)
    parts.append("</g>")

    # the swatch sits centred below the key, clear of the lowest tick label
    swatch_width = get_approximate_text_width(MISSING_DATA_TEXT, request.font_size) + SWATCH_WIDTH
    write_key_missing_pattern(parts, pattern_id, (key_width - swatch_width) / 2, svg_height * 0.95, request.font_size)
    parts.append("</g>")

    attributes = _svg_attributes(
        f"{prefix}-legend-vertical-svg",
        get_key_class(request, "vertical"),
        key_width,
        svg_height,
        svg_request.responsive_size,
    )
    return SVGFragment(attributes, "".join(parts), key_width, svg_height)
