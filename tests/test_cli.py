"""Tests for pageoverlay.cli — CLI command smoke tests."""

import json

import fitz
import pytest
from click.testing import CliRunner

import pageoverlay.config as config
from pageoverlay.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def default_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("PAGEOVERLAY_RENDER_SCALE", "")
    monkeypatch.setenv("PAGEOVERLAY_PREVIEWS", "")
    monkeypatch.setattr(config, "CONFIG_DIR", tmp_path / "config")
    monkeypatch.setattr(config, "PERSISTENT_ENV", tmp_path / "config" / ".env")


class TestHelp:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "overlay" in result.output.lower()

    @pytest.mark.parametrize("command", ["render", "list", "markers", "preview"])
    def test_command_help(self, runner, command):
        result = runner.invoke(cli, [command, "--help"])
        assert result.exit_code == 0
        assert "RESPONSE" in result.output

    def test_unknown_kind_rejected(self, runner, sample_pdf, sample_response_file):
        result = runner.invoke(cli, ["list", str(sample_pdf), str(sample_response_file), "-k", "poem"])
        assert result.exit_code != 0


class TestRender:
    def test_writes_viewer(self, runner, sample_pdf, sample_response_file, tmp_path):
        out = tmp_path / "viewer.html"
        result = runner.invoke(cli, ["render", str(sample_pdf), str(sample_response_file), "-o", str(out)])
        assert result.exit_code == 0, result.output
        html = out.read_text(encoding="utf-8")
        assert 'id="page-2"' in html
        assert 'href="#reference-b1"' in html
        assert "3 resolved, 2 unresolved" in result.output
        assert "Previews: 3" in result.output

    def test_default_output_path(self, runner, sample_pdf, sample_response_file):
        result = runner.invoke(cli, ["render", str(sample_pdf), str(sample_response_file)])
        assert result.exit_code == 0, result.output
        assert sample_pdf.with_suffix(".overlay.html").exists()

    def test_no_previews(self, runner, sample_pdf, sample_response_file, tmp_path):
        out = tmp_path / "viewer.html"
        result = runner.invoke(cli, ["render", str(sample_pdf), str(sample_response_file),
                                     "-o", str(out), "--no-previews"])
        assert result.exit_code == 0
        assert "Previews: 0" in result.output
        assert 'class="preview"' not in out.read_text(encoding="utf-8")

    def test_malformed_response(self, runner, sample_pdf, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"refBibs": []}))
        out = tmp_path / "viewer.html"
        result = runner.invoke(cli, ["render", str(sample_pdf), str(bad), "-o", str(out)])
        assert result.exit_code == 1
        assert "Error" in result.output
        assert not out.exists()

    def test_invalid_json(self, runner, sample_pdf, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        result = runner.invoke(cli, ["render", str(sample_pdf), str(bad)])
        assert result.exit_code == 1


class TestList:
    def test_lists_all(self, runner, sample_pdf, sample_response_file):
        result = runner.invoke(cli, ["list", str(sample_pdf), str(sample_response_file)])
        assert result.exit_code == 0, result.output
        assert "Page 1" in result.output
        assert "Page 2" in result.output
        assert "13 overlay(s)" in result.output

    def test_filter_markers_only(self, runner, sample_pdf, sample_response_file):
        result = runner.invoke(cli, ["list", str(sample_pdf), str(sample_response_file),
                                     "-k", "reference", "--no-bodies"])
        assert result.exit_code == 0
        assert "2 overlay(s)" in result.output
        assert "unresolved" in result.output

    def test_empty_kind(self, runner, sample_pdf, sample_response_file):
        result = runner.invoke(cli, ["list", str(sample_pdf), str(sample_response_file), "-k", "table"])
        assert result.exit_code == 0
        assert "No table overlays." in result.output


class TestMarkers:
    def test_report(self, runner, sample_pdf, sample_response_file):
        result = runner.invoke(cli, ["markers", str(sample_pdf), str(sample_response_file)])
        assert result.exit_code == 0, result.output
        assert "figure 1/2 resolved" in result.output
        assert "reference 1/2 resolved" in result.output
        assert "table 0/0 resolved" in result.output


class TestPreview:
    def test_saves_png(self, runner, sample_pdf, sample_response_file, tmp_path):
        out = tmp_path / "b1.png"
        result = runner.invoke(cli, ["preview", str(sample_pdf), str(sample_response_file),
                                     "reference", "b1", "-o", str(out)])
        assert result.exit_code == 0, result.output
        pix = fitz.Pixmap(out.read_bytes())
        # Span of both b1 fragments, 60x62 units at 1.5x.
        assert (pix.width, pix.height) == (90, 93)

    def test_unknown_entity(self, runner, sample_pdf, sample_response_file, tmp_path):
        result = runner.invoke(cli, ["preview", str(sample_pdf), str(sample_response_file),
                                     "figure", "fig_9", "-o", str(tmp_path / "x.png")])
        assert result.exit_code == 1
        assert "No figure with id" in result.output


class TestEnv:
    def test_status(self, runner):
        result = runner.invoke(cli, ["env"])
        assert result.exit_code == 0
        assert "PAGEOVERLAY_RENDER_SCALE" in result.output
        assert "PAGEOVERLAY_PREVIEWS" in result.output

    def test_set(self, runner, tmp_path):
        result = runner.invoke(cli, ["env", "set", "PAGEOVERLAY_PREVIEWS", "0"])
        assert result.exit_code == 0
        assert "PAGEOVERLAY_PREVIEWS=0" in (tmp_path / "config" / ".env").read_text()

    def test_set_unknown(self, runner):
        result = runner.invoke(cli, ["env", "set", "NOPE", "1"])
        assert result.exit_code == 1
        assert "Unknown setting" in result.output
