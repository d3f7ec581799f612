"""Standalone HTML viewer: page images with overlay regions on top.

The page is self-contained (images are embedded as base64 data URLs).
Markers that resolve link to the anchor of their target entity and show a
cropped preview of it on hover.
"""

from __future__ import annotations

import base64
import html
from collections import defaultdict
from pathlib import Path
from typing import Callable, Iterable

from pageoverlay.models import OverlayDescriptor, OverlayStyle, anchor_name
from pageoverlay.surface import SurfaceProvider

_CSS = """
body { font-family: sans-serif; background: #eee; margin: 0; padding: 1em; }
.page-label { text-align: center; margin-top: 1cm; color: #555; }
.page { position: relative; margin: 0 auto; border: 1px solid gray; background: white; }
.page img.surface { display: block; }
.overlay { display: block; position: absolute; box-sizing: border-box; }
.overlay .preview { display: none; position: absolute; bottom: 100%; left: 0;
  z-index: 10; padding: 4px; background: white; border: 1px solid #999;
  box-shadow: 0 2px 6px rgba(0, 0, 0, 0.3); }
.overlay .preview img { display: block; max-width: 600px; }
.overlay:hover .preview { display: block; }
"""


def data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


def style_css(style: OverlayStyle) -> str:
    if style.border == "underline":
        return f"border-bottom: {style.width}px solid {style.color};"
    if style.border == "dotted-underline":
        return f"border-bottom: {style.width}px dotted {style.color};"
    return f"border: {style.width}px {style.border} {style.color};"


class HtmlSink:
    """Region sink that writes an HTML document."""

    def __init__(self, surfaces: SurfaceProvider, page_numbers: Iterable[int], title: str = "Annotations"):
        self.surfaces = surfaces
        self.page_numbers = list(page_numbers)
        self.title = title
        self._regions: dict[int, list[OverlayDescriptor]] = defaultdict(list)
        self._clickable: set[int] = set()
        self._previews: dict[int, bytes] = {}

    def append_region(self, descriptor: OverlayDescriptor) -> None:
        self._regions[descriptor.page].append(descriptor)

    def attach_click(self, descriptor: OverlayDescriptor, handler: Callable[[], None]) -> None:
        # In a static page, scrolling to the target is an in-page link.
        self._clickable.add(id(descriptor))

    def attach_preview(self, descriptor: OverlayDescriptor, image: bytes) -> None:
        self._previews[id(descriptor)] = image

    def render(self) -> str:
        parts = [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8">',
            f"<title>{html.escape(self.title)}</title>",
            f"<style>{_CSS}</style>",
            "</head>",
            "<body>",
        ]
        seen_anchors: set[str] = set()
        total = len(self.page_numbers)
        for page_number in self.page_numbers:
            surface = self.surfaces.get_surface(page_number)
            if surface is None:
                continue
            parts.append(f'<div class="page-label">page {page_number}/{total}</div>')
            parts.append(
                f'<div class="page" id="page-{page_number}" '
                f'style="width: {surface.pixel_width}px; height: {surface.pixel_height}px;">'
            )
            parts.append(f'<img class="surface" src="{data_url(surface.to_png())}" alt="page {page_number}">')
            for descriptor in self._regions.get(page_number, []):
                parts.append(self._region_html(descriptor, seen_anchors))
            parts.append("</div>")
        parts.extend(["</body>", "</html>"])
        return "\n".join(parts) + "\n"

    def write(self, path: Path) -> Path:
        path = Path(path)
        path.write_text(self.render(), encoding="utf-8")
        return path

    def _region_html(self, d: OverlayDescriptor, seen_anchors: set[str]) -> str:
        r = d.pixel_rect
        style = (
            f"left: {r.x:.2f}px; top: {r.y:.2f}px; width: {r.w:.2f}px; height: {r.h:.2f}px; "
            + style_css(d.style)
        )
        attrs = [f'class="overlay {"body" if d.is_entity_body else "marker"} {d.kind}"', f'style="{style}"']

        if d.is_entity_body:
            if d.title:
                attrs.append(f'title="{html.escape(d.title)}"')
            if d.anchor_id:
                name = anchor_name(d.kind, d.anchor_id)
                # Every fragment is tagged, only the first one is the scroll target.
                attrs.append(f'data-entity="{html.escape(name)}"')
                if name not in seen_anchors:
                    seen_anchors.add(name)
                    attrs.append(f'id="{html.escape(name)}"')
            if d.href:
                attrs.append(f'href="{html.escape(d.href)}" target="_blank"')
        elif id(d) in self._clickable and d.target_id:
            attrs.append(f'href="#{html.escape(anchor_name(d.kind, d.target_id))}"')

        inner = ""
        preview = self._previews.get(id(d))
        if preview is not None:
            inner = f'<span class="preview"><img src="{data_url(preview)}" alt="preview"></span>'
        return f"<a {' '.join(attrs)}>{inner}</a>"


class AnchorNavigator:
    """Navigator for the HTML viewer; records the anchors markers link to."""

    def __init__(self):
        self.visited: list[str] = []

    def scroll_to(self, anchor_id: str) -> None:
        self.visited.append(anchor_id)
