"""Tests for CLI commands: render, analyse, info."""

import json

import pytest
from click.testing import CliRunner

import maprender.config as config_module
from maprender.cli import main


@pytest.fixture
def runner(monkeypatch):
    for name in ("MAPRENDER_CONFIG", "MAPRENDER_PNG_COMMAND", "MAPRENDER_PNG_TIMEOUT", "MAPRENDER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    config_module._config = None
    yield CliRunner()
    config_module._config = None


@pytest.fixture
def request_file(tmp_path, render_request_dict):
    path = tmp_path / "request.json"
    path.write_text(json.dumps(render_request_dict))
    return str(path)


@pytest.fixture
def analyse_file(tmp_path, topology_dict):
    path = tmp_path / "analyse.json"
    path.write_text(json.dumps({
        "geography": {"topojson": topology_dict, "id_property": "code"},
        "csv": "code,value\nE01,1\nE02,2\nE03,3\n",
        "id_index": 0,
        "value_index": 1,
        "has_header_row": True,
    }))
    return str(path)


@pytest.fixture
def topojson_file(tmp_path, topology_dict):
    path = tmp_path / "regions.json"
    path.write_text(json.dumps(topology_dict))
    return str(path)


# ---------------------------------------------------------------------------
# render command
# ---------------------------------------------------------------------------

class TestRenderCommand:
    def test_prints_html(self, runner, request_file):
        result = runner.invoke(main, ["render", request_file])
        assert result.exit_code == 0, result.output
        assert '<figure class="figure" id="testmap-map">' in result.output

    def test_writes_file(self, runner, request_file, tmp_path):
        output = tmp_path / "map.html"
        result = runner.invoke(main, ["render", request_file, "-o", str(output)])
        assert result.exit_code == 0, result.output
        assert output.read_text().startswith("<figure")
        assert "Saved" in result.output

    def test_png_without_command_warns(self, runner, request_file):
        result = runner.invoke(main, ["render", request_file, "--type", "png"])
        assert result.exit_code == 0, result.output
        assert "No png command configured" in result.output
        assert '<svg id="testmap-map-svg"' in result.output

    def test_png_with_command(self, runner, request_file, monkeypatch, png_file):
        monkeypatch.setenv("MAPRENDER_PNG_COMMAND", f"cp {png_file} {{png}}")
        result = runner.invoke(main, ["render", request_file, "--type", "png"])
        assert result.exit_code == 0, result.output
        assert "data:image/png;base64," in result.output

    def test_invalid_request(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"title": "no filename"}))
        result = runner.invoke(main, ["render", str(path)])
        assert result.exit_code == 1
        assert "Invalid RenderRequest" in result.output

    def test_unknown_type(self, runner, request_file):
        result = runner.invoke(main, ["render", request_file, "--type", "gif"])
        assert result.exit_code != 0

    def test_missing_file(self, runner):
        result = runner.invoke(main, ["render", "does-not-exist.json"])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# analyse command
# ---------------------------------------------------------------------------

class TestAnalyseCommand:
    def test_table(self, runner, analyse_file):
        result = runner.invoke(main, ["analyse", analyse_file])
        assert result.exit_code == 0, result.output
        assert "Natural breaks" in result.output
        assert "Unable to calculate breaks" in result.output

    def test_writes_json(self, runner, analyse_file, tmp_path):
        output = tmp_path / "breaks.json"
        result = runner.invoke(main, ["analyse", analyse_file, "-o", str(output)])
        assert result.exit_code == 0, result.output
        response = json.loads(output.read_text())
        assert response["breaks"][1] == [2.0, 3.0]
        assert response["min_value"] == 1.0

    def test_bad_column(self, runner, tmp_path, topology_dict):
        path = tmp_path / "analyse.json"
        path.write_text(json.dumps({
            "geography": {"topojson": topology_dict},
            "csv": "E01,1\n",
            "id_index": 0,
            "value_index": 3,
        }))
        result = runner.invoke(main, ["analyse", str(path)])
        assert result.exit_code == 1
        assert "out of range" in result.output


# ---------------------------------------------------------------------------
# info command
# ---------------------------------------------------------------------------

class TestInfoCommand:
    def test_summary(self, runner, topojson_file):
        result = runner.invoke(main, ["info", topojson_file])
        assert result.exit_code == 0, result.output
        assert "regions" in result.output
        assert "GeometryCollection" in result.output
        assert "Regions: 2" in result.output
        assert "Arcs: 3" in result.output
