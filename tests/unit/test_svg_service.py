"""Tests for maprender.services.svg_service."""

from unittest.mock import MagicMock

import pytest

from maprender.models.render_request import RenderRequest, RenderType
from maprender.services.png_service import PNGConversionError, PNGConverter
from maprender.services.projection_service import ProjectionService
from maprender.services.svg_service import MapRenderer, map_id, prepare_svg_request


@pytest.fixture
def renderer():
    return MapRenderer()


class TestPrepareSvgRequest:
    def test_view_box(self, render_request):
        svg_request = prepare_svg_request(render_request)
        assert svg_request.view_box_width == 400
        assert svg_request.view_box_height == pytest.approx(
            ProjectionService.height_for_width((-1.0, 50.0, 1.0, 51.0), 400)
        )
        assert len(svg_request.features) == 2
        assert svg_request.has_geometry

    def test_breaks(self, render_request):
        svg_request = prepare_svg_request(render_request)
        assert len(svg_request.breaks) == 2
        assert svg_request.reference_pos == pytest.approx(0.625)
        assert svg_request.vertical_legend_width > 0

    def test_default_width(self, render_request_dict):
        render_request_dict["width"] = 0
        request = RenderRequest.model_validate(render_request_dict)
        assert prepare_svg_request(request).view_box_width == 400
        assert prepare_svg_request(request, default_width=250).view_box_width == 250

    def test_no_topology(self, render_request_dict):
        render_request_dict["geography"]["topojson"] = None
        svg_request = prepare_svg_request(RenderRequest.model_validate(render_request_dict))
        assert not svg_request.has_geometry
        assert svg_request.view_box_width == 0

    def test_request_is_not_modified(self, render_request):
        before = render_request.model_dump()
        MapRenderer().render_svg(prepare_svg_request(render_request))
        assert render_request.model_dump() == before


class TestRenderSvg:
    def test_svg_element(self, renderer, render_request):
        svg = renderer.render_svg(renderer.prepare(render_request))
        assert svg.startswith('<svg id="testmap-map-svg" viewBox="0 0 400 ')
        assert ' width="400"' in svg
        assert svg.endswith("</svg>")

    def test_regions(self, renderer, render_request):
        svg = renderer.render_svg(renderer.prepare(render_request))
        assert svg.count("<path ") == 2
        assert 'id="testmap-E01"' in svg
        assert 'class="mapRegion"' in svg
        assert 'style="fill: red;"' in svg
        assert "<title>Alpha 10%</title>" in svg
        assert "<title>Beta 30%</title>" in svg

    def test_missing_data_pattern(self, renderer, render_request_dict):
        render_request_dict["data"] = [{"id": "E01", "value": 10}]
        svg = renderer.render_svg(renderer.prepare(RenderRequest.model_validate(render_request_dict)))
        assert '<pattern id="testmap-nodata"' in svg
        assert 'style="fill: url(#testmap-nodata);"' in svg

    def test_without_choropleth(self, renderer, render_request_dict):
        render_request_dict["choropleth"] = None
        svg = renderer.render_svg(renderer.prepare(RenderRequest.model_validate(render_request_dict)))
        assert "style=" not in svg
        assert "<title>Alpha</title>" in svg

    def test_responsive(self, renderer, render_request_dict):
        render_request_dict.update(width=0, min_width=300, max_width=500)
        svg = renderer.render_svg(renderer.prepare(RenderRequest.model_validate(render_request_dict)))
        assert 'viewBox="0 0 400 ' in svg
        assert ' width="' not in svg.split(">", 1)[0]

    def test_no_geometry(self, renderer, render_request_dict):
        render_request_dict["geography"]["topojson"] = None
        request = RenderRequest.model_validate(render_request_dict)
        assert renderer.render_svg(renderer.prepare(request)) == ""
        assert renderer.render_horizontal_key(renderer.prepare(request)) == ""

    def test_repeatable(self, renderer, render_request):
        first = renderer.render_svg(renderer.prepare(render_request))
        second = renderer.render_svg(renderer.prepare(render_request))
        assert first == second

    def test_map_id(self, render_request):
        assert map_id(render_request) == "testmap-map"


class TestOutputFormat:
    def test_png_without_converter_is_svg(self, renderer, render_request):
        svg = renderer.render_svg(renderer.prepare(render_request), RenderType.PNG)
        assert svg.startswith("<svg ")

    def test_png_uses_converter(self, render_request):
        converter = MagicMock(spec=PNGConverter)
        converter.render_png_image.return_value = "<img/>"
        renderer = MapRenderer(converter)
        assert renderer.render_svg(renderer.prepare(render_request), RenderType.PNG) == "<img/>"

    def test_fallback_requested(self, render_request_dict):
        render_request_dict["include_fallback_png"] = True
        converter = MagicMock(spec=PNGConverter)
        converter.include_fallback_image.return_value = "<svg><switch/></svg>"
        renderer = MapRenderer(converter)
        request = RenderRequest.model_validate(render_request_dict)
        assert renderer.render_svg(renderer.prepare(request)) == "<svg><switch/></svg>"

    def test_svg_without_fallback_ignores_converter(self, render_request):
        converter = MagicMock(spec=PNGConverter)
        renderer = MapRenderer(converter)
        svg = renderer.render_svg(renderer.prepare(render_request))
        assert svg.startswith("<svg ")
        converter.include_fallback_image.assert_not_called()

    def test_conversion_failure_falls_back_to_svg(self, render_request):
        converter = MagicMock(spec=PNGConverter)
        converter.render_png_image.side_effect = PNGConversionError("boom")
        renderer = MapRenderer(converter)
        svg = renderer.render_svg(renderer.prepare(render_request), RenderType.PNG)
        assert svg.startswith('<svg id="testmap-map-svg"')
