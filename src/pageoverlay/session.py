"""Per-document view state.

Each annotation response replaces the previous state wholesale: nothing
computed for one response survives into the next.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from pageoverlay.models import AnnotationResponse, OverlayDescriptor
from pageoverlay.overlay import Navigator, RegionSink, render_overlays
from pageoverlay.pages import PageMetadataStore
from pageoverlay.surface import SurfaceProvider

logger = logging.getLogger(__name__)


@dataclass
class ViewState:
    """What the viewer currently shows."""
    response: Optional[AnnotationResponse] = None
    pages: PageMetadataStore = field(default_factory=PageMetadataStore)
    overlays: list[OverlayDescriptor] = field(default_factory=list)

    @property
    def resolved_markers(self) -> int:
        return sum(1 for o in self.overlays if not o.is_entity_body and o.resolved)

    @property
    def unresolved_markers(self) -> int:
        return sum(1 for o in self.overlays if not o.is_entity_body and not o.resolved)


def process_response(
    payload: Any,
    surfaces: SurfaceProvider,
    navigator: Optional[Navigator] = None,
    sink: Optional[RegionSink] = None,
    with_previews: bool = True,
) -> ViewState:
    """Build a fresh view state from a raw annotation payload.

    Raises MalformedResponse when the payload cannot be used; no overlays
    are produced in that case.
    """
    response = AnnotationResponse.from_dict(payload)
    pages = PageMetadataStore(response.pages)
    overlays = render_overlays(response, pages, surfaces, navigator=navigator, sink=sink,
                               with_previews=with_previews)
    logger.debug("Rendered %d overlays over %d pages", len(overlays), len(pages))
    return ViewState(response=response, pages=pages, overlays=overlays)

