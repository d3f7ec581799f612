"""Tests for pageoverlay.viewer — the HTML region sink."""

import pytest

from pageoverlay.models import OverlayDescriptor, OverlayStyle, PixelRect
from pageoverlay.session import process_response
from pageoverlay.viewer import AnchorNavigator, HtmlSink, anchor_name, data_url, style_css


@pytest.fixture
def rendered(sample_payload, surfaces):
    sink = HtmlSink(surfaces, surfaces.page_numbers(), title="paper.pdf")
    process_response(sample_payload, surfaces, navigator=AnchorNavigator(), sink=sink)
    return sink.render()


class TestHelpers:
    def test_anchor_name_is_per_kind(self):
        assert anchor_name("figure", "1") != anchor_name("table", "1")

    def test_data_url(self):
        assert data_url(b"abc") == "data:image/png;base64,YWJj"

    @pytest.mark.parametrize("style, expected", [
        (OverlayStyle("dotted", "red"), "border: 1px dotted red;"),
        (OverlayStyle("solid", "gray"), "border: 1px solid gray;"),
        (OverlayStyle("underline", "blue", 2), "border-bottom: 2px solid blue;"),
        (OverlayStyle("dotted-underline", "gray"), "border-bottom: 1px dotted gray;"),
    ])
    def test_style_css(self, style, expected):
        assert style_css(style) == expected


class TestHtmlSink:
    def test_document_structure(self, rendered):
        assert rendered.startswith("<!DOCTYPE html>")
        assert "<title>paper.pdf</title>" in rendered
        assert 'id="page-1"' in rendered
        assert 'id="page-2"' in rendered
        assert "page 2/2" in rendered

    def test_page_images_embedded(self, rendered):
        assert rendered.count('class="surface" src="data:image/png;base64,') == 2

    def test_entity_anchor_only_once(self, rendered):
        # fig_0 has three fragments: all tagged, one id.
        assert rendered.count('data-entity="figure-fig_0"') == 3
        assert rendered.count('id="figure-fig_0"') == 1

    def test_resolved_marker_links_to_target(self, rendered):
        assert 'href="#reference-b1"' in rendered
        assert 'href="#figure-fig_0"' in rendered
        assert 'href="#figure-fig_9"' not in rendered

    def test_reference_url(self, rendered):
        assert 'href="https://doi.org/10.1000/xyz" target="_blank"' in rendered

    def test_previews(self, rendered):
        assert rendered.count('<span class="preview">') == 3

    def test_region_geometry(self, rendered):
        # formula_1 body: (100, 300, 200, 20) at 1.5x
        assert "left: 150.00px; top: 450.00px; width: 300.00px; height: 30.00px;" in rendered

    def test_escapes_ids(self, surfaces):
        sink = HtmlSink(surfaces, [1])
        sink.append_region(OverlayDescriptor(
            page=1, pixel_rect=PixelRect(0, 0, 1, 1), kind="table", is_entity_body=True,
            style=OverlayStyle("dotted", "blue"), anchor_id='"><script>',
        ))
        html = sink.render()
        assert "<script>" not in html

    def test_pages_without_surface_are_skipped(self, surfaces):
        sink = HtmlSink(surfaces, [1, 2, 3])
        html = sink.render()
        assert 'id="page-3"' not in html

    def test_write(self, tmp_path, surfaces):
        sink = HtmlSink(surfaces, [1])
        path = sink.write(tmp_path / "out.html")
        assert path.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")


class TestAnchorNavigator:
    def test_records_scrolls(self):
        nav = AnchorNavigator()
        nav.scroll_to("b1")
        assert nav.visited == ["b1"]
