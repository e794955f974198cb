"""Rendering of choropleth maps and their legends as svg."""

import logging
from html import escape
from typing import Optional

from ..models.render_request import RenderRequest, RenderType
from ..models.svg_request import SVGFragment, SVGRequest
from . import legend_service
from .choropleth_service import (
    REGION_CLASS_NAME,
    get_sorted_break_info,
    id_prefix,
    set_choropleth_colours_and_titles,
    set_class_property,
    set_feature_ids,
)
from .png_service import PNGConversionError, PNGConverter
from .projection_service import DEFAULT_WIDTH, ProjectionService, resolve_width, to_path
from .topology_service import TopologyService

logger = logging.getLogger(__name__)


def prepare_svg_request(request: RenderRequest, default_width: float = DEFAULT_WIDTH) -> SVGRequest:
    """Decode, size and classify a request once, ahead of rendering.

    Args:
        request: The render request.
        default_width: Width used when the request gives no sizing at all.

    Returns:
        A new SVGRequest owned by the caller.
    """
    svg_request = SVGRequest(request=request, responsive_size=request.responsive_size)

    topology_service = TopologyService()
    features = topology_service.decode(request.geography.topojson)
    bounds = topology_service.bounds(features)
    if bounds is not None:
        width = resolve_width(request.width, request.min_width, request.max_width, default_width)
        projection = ProjectionService(bounds, width)
        svg_request.features = features
        svg_request.projection = projection
        svg_request.view_box_width = projection.width
        svg_request.view_box_height = projection.height

    if request.has_breaks:
        svg_request.breaks, svg_request.reference_pos = get_sorted_break_info(request)
        svg_request.vertical_legend_width, svg_request.vertical_key_offset = (
            legend_service.get_vertical_legend_width(request, svg_request.breaks)
        )

    return svg_request


def map_id(request: RenderRequest) -> str:
    return f"{id_prefix(request)}-map"


class MapRenderer:
    """Renders the map and legend svgs for a request.

    The png converter is fixed when the renderer is created. Without one,
    png output and png fallbacks are never produced and svg is returned.
    """

    def __init__(self, png_converter: Optional[PNGConverter] = None, default_width: float = DEFAULT_WIDTH):
        self.png_converter = png_converter
        self.default_width = default_width

    def prepare(self, request: RenderRequest) -> SVGRequest:
        return prepare_svg_request(request, self.default_width)

    # ------------------------------------------------------------------
    # Output format
    # ------------------------------------------------------------------

    def finish(self, fragment: SVGFragment, request: RenderRequest, render_type: RenderType) -> str:
        """Emit a fragment as svg, svg with png fallback, or a png image."""
        converter = self.png_converter
        if converter is None:
            return fragment.to_svg()
        try:
            if render_type == RenderType.PNG:
                return converter.render_png_image(fragment)
            if request.include_fallback_png:
                return converter.include_fallback_image(fragment)
        except PNGConversionError as e:
            logger.warning("PNG conversion failed for %s, using svg: %s", request.filename, e)
        return fragment.to_svg()

    # ------------------------------------------------------------------
    # Map
    # ------------------------------------------------------------------

    def build_map(self, svg_request: SVGRequest) -> Optional[SVGFragment]:
        """Build the map svg fragment, or None if there is no geometry."""
        if not svg_request.has_geometry:
            return None

        request = svg_request.request
        prefix = id_prefix(request)
        features = svg_request.features
        name_property = request.geography.name_property

        set_feature_ids(features, request.geography.id_property, prefix + "-")
        set_class_property(features, REGION_CLASS_NAME)
        set_choropleth_colours_and_titles(features, request)

        width, height = svg_request.view_box_width, svg_request.view_box_height
        parts = ["<defs>", legend_service.missing_data_pattern(escape(prefix)), "</defs>"]
        for feature in features:
            path = to_path(svg_request.projection.project(feature.geometry))
            if not path:
                continue
            attributes = []
            if feature.id:
                attributes.append(f'id="{escape(feature.id)}"')
            for name in ("class", "style"):
                value = feature.properties.get(name)
                if value:
                    attributes.append(f'{name}="{escape(str(value))}"')
            attributes.append(f'd="{path}"')
            title = feature.properties.get(name_property)
            title_markup = f"<title>{escape(str(title))}</title>" if title not in (None, "") else ""
            parts.append(f"<path {' '.join(attributes)}>{title_markup}</path>")

        svg_attributes = f'id="{escape(map_id(request))}-svg" viewBox="0 0 {width:.0f} {height:.0f}"'
        if not svg_request.responsive_size:
            svg_attributes += f' width="{width:.0f}" height="{height:.0f}"'
        return SVGFragment(svg_attributes, "".join(parts), width, height)

    def render_svg(self, svg_request: SVGRequest, render_type: RenderType = RenderType.SVG) -> str:
        """Render the map, returning an empty string when there is no geometry."""
        fragment = self.build_map(svg_request)
        if fragment is None:
            return ""
        return self.finish(fragment, svg_request.request, render_type)

    # ------------------------------------------------------------------
    # Legends
    # ------------------------------------------------------------------

    def render_horizontal_key(self, svg_request: SVGRequest, render_type: RenderType = RenderType.SVG) -> str:
        fragment = legend_service.render_horizontal_key(svg_request)
        if fragment is None:
            return ""
        return self.finish(fragment, svg_request.request, render_type)

    def render_vertical_key(self, svg_request: SVGRequest, render_type: RenderType = RenderType.SVG) -> str:
        fragment = legend_service.render_vertical_key(svg_request)
        if fragment is None:
            return ""
        return self.finish(fragment, svg_request.request, render_type)
