"""Shared test fixtures."""

import copy

import pytest
from PIL import Image

from maprender.models.render_request import RenderRequest
from maprender.models.topology import Topology

# Two unit squares side by side (lon -1..1, lat 50..51) sharing the arc at lon 0.
# Arc 0 is the shared edge, drawn forwards by region A and reversed by region B.
TWO_SQUARES_TOPOJSON = {
    "type": "Topology",
    "transform": {"scale": [0.001, 0.001], "translate": [-1.0, 50.0]},
    "arcs": [
        [[1000, 0], [0, 1000]],
        [[1000, 1000], [-1000, 0], [0, -1000], [1000, 0]],
        [[1000, 0], [1000, 0], [0, 1000], [-1000, 0]],
    ],
    "objects": {
        "regions": {
            "type": "GeometryCollection",
            "geometries": [
                {
                    "type": "Polygon",
                    "id": "A",
                    "arcs": [[0, 1]],
                    "properties": {"code": "E01", "name": "Alpha"},
                },
                {
                    "type": "Polygon",
                    "id": "B",
                    "arcs": [[2, -1]],
                    "properties": {"code": "E02", "name": "Beta"},
                },
            ],
        }
    },
}


@pytest.fixture
def topology_dict():
    """Raw topojson for two adjacent squares."""
    return copy.deepcopy(TWO_SQUARES_TOPOJSON)


@pytest.fixture
def topology(topology_dict):
    return Topology.model_validate(topology_dict)


@pytest.fixture
def render_request_dict(topology_dict):
    """A complete render request with data for both regions and two legends."""
    return {
        "filename": "testmap",
        "title": "Test map",
        "subtitle": "Two squares",
        "source": "Office for Tests",
        "source_link": "https://example.com/source",
        "licence": "Open licence",
        "footnotes": ["First note", "Second\nnote"],
        "geography": {
            "topojson": topology_dict,
            "id_property": "code",
            "name_property": "name",
        },
        "data": [
            {"id": "E01", "value": 10},
            {"id": "E02", "value": 30},
        ],
        "choropleth": {
            "reference_value": 25,
            "reference_value_text": "England",
            "value_suffix": "%",
            "breaks": [
                {"lower_bound": 20, "color": "blue"},
                {"lower_bound": 0, "color": "red"},
            ],
            "upper_bound": 40,
            "horizontal_legend_position": "before",
            "vertical_legend_position": "after",
        },
        "width": 400,
    }


@pytest.fixture
def render_request(render_request_dict):
    return RenderRequest.model_validate(render_request_dict)


@pytest.fixture
def png_file(tmp_path):
    """A small png image on disk."""
    path = tmp_path / "fixture.png"
    Image.new("RGBA", (8, 8), (255, 0, 0, 255)).save(path)
    return path


@pytest.fixture
def copy_png_command(png_file):
    """A png conversion command that copies a fixed png to the output path."""
    return ["cp", str(png_file), "{png}"]
