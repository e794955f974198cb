"""Assembly of the html figure that wraps a rendered map."""

import logging
from html import escape

from ..models.render_request import LegendPosition, RenderRequest, RenderType
from .svg_service import MapRenderer

logger = logging.getLogger(__name__)


def _escape_multiline(text: str) -> str:
    return "<br/>".join(escape(line) for line in text.split("\n"))


def render_caption(request: RenderRequest) -> str:
    if not request.title and not request.subtitle:
        return ""
    subtitle = ""
    if request.subtitle:
        subtitle = f'<span class="map__subtitle">{escape(request.subtitle)}</span>'
    return f'<figcaption class="map__caption">{escape(request.title)}{subtitle}</figcaption>'


def render_footer(request: RenderRequest) -> str:
    """Source, licence and numbered footnotes."""
    parts = ['<footer class="figure__footer">']
    if request.source:
        source = escape(request.source)
        if request.source_link:
            source = f'<a href="{escape(request.source_link)}">{source}</a>'
        parts.append(f'<p class="figure__source">Source: {source}</p>')
    if request.licence:
        parts.append(f'<p class="figure__licence">{escape(request.licence)}</p>')
    if request.footnotes:
        parts.append('<p class="figure__notes">Notes</p>')
        parts.append('<ol class="figure__footnotes">')
        for i, note in enumerate(request.footnotes, start=1):
            note_id = f"map-{escape(request.filename)}-note-{i}"
            parts.append(
                f'<li id="{note_id}" class="figure__footnote-item">{_escape_multiline(note)}</li>'
            )
        parts.append("</ol>")
    parts.append("</footer>")
    return "".join(parts)


def render_responsive_style(request: RenderRequest) -> str:
    """Size limits for a responsive figure, and the switch between legends.

    Above the switch width the vertical legend is shown; below it the
    horizontal one.
    """
    if not request.responsive_size:
        return ""
    prefix = escape(request.filename)
    rules = [
        f"#{prefix}-map {{min-width: {request.min_width:.0f}px; max-width: {request.max_width:.0f}px;}}"
    ]
    if request.has_horizontal_legend and request.has_vertical_legend:
        switch = request.width if request.width > 0 else (request.min_width + request.max_width) / 2
        rules.append(f"@media (max-width: {switch:.0f}px) {{#{prefix}-legend-vertical {{display: none;}}}}")
        rules.append(f"@media (min-width: {switch + 1:.0f}px) {{#{prefix}-legend-horizontal {{display: none;}}}}")
    return f"<style>{' '.join(rules)}</style>"


def _legend_div(request: RenderRequest, orientation: str, markup: str) -> str:
    return (
        f'<div class="map_key map_key__{orientation}" id="{escape(request.filename)}-legend-{orientation}">'
        f"{markup}</div>"
    )


def render_html(request: RenderRequest, renderer: MapRenderer, render_type: RenderType = RenderType.SVG) -> str:
    """Render the complete html figure for a request.

    Args:
        request: The render request.
        renderer: Renderer holding the (optional) png converter.
        render_type: Whether images should be svg or png.

    Returns:
        An html fragment whose root element is a ``<figure>``.
    """
    svg_request = renderer.prepare(request)
    map_markup = renderer.render_svg(svg_request, render_type)

    before: list[str] = []
    after: list[str] = []
    choropleth = request.choropleth
    if choropleth is not None:
        if request.has_horizontal_legend:
            legend = _legend_div(request, "horizontal", renderer.render_horizontal_key(svg_request, render_type))
            (before if choropleth.horizontal_legend_position == LegendPosition.BEFORE else after).append(legend)
        if request.has_vertical_legend:
            legend = _legend_div(request, "vertical", renderer.render_vertical_key(svg_request, render_type))
            (before if choropleth.vertical_legend_position == LegendPosition.BEFORE else after).append(legend)

    prefix = escape(request.filename)
    parts = [f'<figure class="figure" id="{prefix}-map">']
    parts.append(render_responsive_style(request))
    parts.append(render_caption(request))
    parts.extend(before)
    parts.append(f'<div class="map" id="{prefix}-map-container">{map_markup}</div>')
    parts.extend(after)
    parts.append(render_footer(request))
    parts.append("</figure>")

    logger.info(
        "Rendered %s map '%s' with %d regions",
        render_type.value,
        request.filename,
        len(svg_request.features),
    )
    return "".join(parts)
