"""Tests for maprender.models.render_request."""

import pytest
from pydantic import ValidationError

from maprender.models.render_request import (
    Choropleth,
    DataRow,
    LegendPosition,
    RenderRequest,
)


class TestDataRow:
    def test_integer_id(self):
        assert DataRow(id=5, value=1).id == "5"

    def test_integral_float_id(self):
        assert DataRow(id=5.0, value=1).id == "5"

    def test_string_id(self):
        assert DataRow(id="E01", value=1.5).value == 1.5


class TestChoropleth:
    def test_legend_positions(self):
        choropleth = Choropleth(horizontal_legend_position="before", vertical_legend_position="")
        assert choropleth.horizontal_legend_position == LegendPosition.BEFORE
        assert choropleth.vertical_legend_position == LegendPosition.NONE
        assert choropleth.has_horizontal_legend
        assert not choropleth.has_vertical_legend

    def test_unknown_position(self):
        with pytest.raises(ValidationError):
            Choropleth(horizontal_legend_position="sideways")

    def test_duplicate_lower_bounds(self):
        with pytest.raises(ValidationError, match="distinct"):
            Choropleth(breaks=[{"lower_bound": 1, "color": "red"}, {"lower_bound": 1, "color": "blue"}])

    def test_break_color_key(self):
        choropleth = Choropleth(breaks=[{"lower_bound": 0, "color": "#fff"}])
        assert choropleth.breaks[0].color == "#fff"


class TestRenderRequest:
    def test_from_json(self, render_request):
        assert render_request.filename == "testmap"
        assert render_request.font_size == 14
        assert render_request.has_breaks
        assert render_request.has_horizontal_legend
        assert render_request.has_vertical_legend
        assert not render_request.include_fallback_png

    def test_filename_required(self, render_request_dict):
        del render_request_dict["filename"]
        with pytest.raises(ValidationError):
            RenderRequest.model_validate(render_request_dict)

    def test_filename_not_empty(self, render_request_dict):
        render_request_dict["filename"] = ""
        with pytest.raises(ValidationError):
            RenderRequest.model_validate(render_request_dict)

    def test_geography_required(self, render_request_dict):
        del render_request_dict["geography"]
        with pytest.raises(ValidationError):
            RenderRequest.model_validate(render_request_dict)

    def test_responsive_size(self, render_request_dict):
        render_request_dict.update(min_width=300, max_width=500)
        assert RenderRequest.model_validate(render_request_dict).responsive_size

    def test_min_width_alone_is_not_responsive(self, render_request_dict):
        render_request_dict.update(min_width=300)
        assert not RenderRequest.model_validate(render_request_dict).responsive_size

    def test_immutable(self, render_request):
        with pytest.raises(ValidationError):
            render_request.title = "changed"

    def test_no_breaks(self, render_request_dict):
        render_request_dict["choropleth"] = None
        request = RenderRequest.model_validate(render_request_dict)
        assert not request.has_breaks
        assert not request.has_horizontal_legend
