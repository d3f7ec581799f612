"""Turn an annotation response into overlay regions.

For each kind (formulas, figures, tables, references) every fragment of every
entity becomes a body overlay, then every marker of that kind is resolved
against the kind's registry and becomes a marker overlay.  The regions are
handed to a sink, which decides how they are actually drawn.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from pageoverlay.geometry import MERGE_POLICIES, CoordinateMapper
from pageoverlay.models import (
    FIGURE,
    FORMULA,
    KINDS,
    REFERENCE,
    TABLE,
    AnnotationResponse,
    BoundingRegion,
    Entity,
    Marker,
    OverlayDescriptor,
    OverlayStyle,
    UnknownPage,
    anchor_name,
)
from pageoverlay.pages import PageMetadataStore
from pageoverlay.registry import build_registry, resolve_marker
from pageoverlay.surface import SurfaceProvider

logger = logging.getLogger(__name__)

KIND_COLORS: dict[str, str] = {
    FORMULA: "red",
    FIGURE: "blue",
    TABLE: "blue",
    REFERENCE: "blue",
}
UNRESOLVED_COLOR = "gray"


class Navigator(Protocol):
    def scroll_to(self, anchor_id: str) -> None:
        ...


class RegionSink(Protocol):
    def append_region(self, descriptor: OverlayDescriptor) -> None:
        ...

    def attach_click(self, descriptor: OverlayDescriptor, handler: Callable[[], None]) -> None:
        ...

    def attach_preview(self, descriptor: OverlayDescriptor, image: bytes) -> None:
        ...


class PreviewProvider(Protocol):
    def preview(self, region: BoundingRegion) -> Optional[bytes]:
        ...


@dataclass
class ListSink:
    """Collect regions in memory."""
    regions: list[OverlayDescriptor] = field(default_factory=list)
    clicks: dict[int, Callable[[], None]] = field(default_factory=dict)
    previews: dict[int, bytes] = field(default_factory=dict)

    def append_region(self, descriptor: OverlayDescriptor) -> None:
        self.regions.append(descriptor)

    def attach_click(self, descriptor: OverlayDescriptor, handler: Callable[[], None]) -> None:
        self.clicks[id(descriptor)] = handler

    def attach_preview(self, descriptor: OverlayDescriptor, image: bytes) -> None:
        self.previews[id(descriptor)] = image


class SurfacePreviews:
    """Crop the preview of a merged region out of its page surface."""

    def __init__(self, mapper: CoordinateMapper):
        self.mapper = mapper

    def preview(self, region: BoundingRegion) -> Optional[bytes]:
        try:
            rect = self.mapper.to_pixels(region.page, region)
        except UnknownPage:
            logger.debug("No surface for preview on page %d", region.page)
            return None
        surface = self.mapper.surfaces.get_surface(region.page)
        try:
            return surface.crop_region(rect.x, rect.y, rect.w, rect.h)
        except (ValueError, OverflowError) as e:
            logger.debug("Skipping preview: %s", e)
            return None


def body_style(entity: Entity) -> OverlayStyle:
    if entity.kind == REFERENCE:
        if entity.url:
            return OverlayStyle(border="underline", color="blue", width=2)
        return OverlayStyle(border="dotted-underline", color=UNRESOLVED_COLOR)
    return OverlayStyle(border="dotted", color=KIND_COLORS.get(entity.kind, UNRESOLVED_COLOR))


def marker_style(kind: str, resolved: bool) -> OverlayStyle:
    color = KIND_COLORS.get(kind, UNRESOLVED_COLOR) if resolved else UNRESOLVED_COLOR
    return OverlayStyle(border="solid", color=color)


class OverlayRenderer:
    """Build overlay descriptors for one annotation response.

    Holds no state between ``render`` calls besides its collaborators.
    """

    def __init__(
        self,
        pages: PageMetadataStore,
        surfaces: SurfaceProvider,
        navigator: Optional[Navigator] = None,
        sink: Optional[RegionSink] = None,
        previews: Optional[PreviewProvider] = None,
        with_previews: bool = True,
    ):
        self.pages = pages
        self.mapper = CoordinateMapper(pages, surfaces)
        self.navigator = navigator
        self.sink = sink if sink is not None else ListSink()
        if not with_previews:
            self.previews = None
        else:
            self.previews = previews if previews is not None else SurfacePreviews(self.mapper)

    def render(self, response: AnnotationResponse) -> list[OverlayDescriptor]:
        out: list[OverlayDescriptor] = []
        for kind in KINDS:
            entities = response.entities_of(kind)
            for entity in entities:
                out.extend(self._render_body(entity))

            # Markers read the registry, so it is built only once all bodies are in.
            registry = build_registry(entities)
            for marker in response.markers_of(kind):
                descriptor = self._render_marker(marker, registry)
                if descriptor is not None:
                    out.append(descriptor)
        return out

    def _render_body(self, entity: Entity) -> list[OverlayDescriptor]:
        style = body_style(entity)
        out = []
        for pos in entity.positions:
            try:
                rect = self.mapper.to_pixels(pos.page, pos)
            except UnknownPage as e:
                logger.debug("Skipping %s fragment: %s", entity.kind, e)
                continue
            descriptor = OverlayDescriptor(
                page=pos.page,
                pixel_rect=rect,
                kind=entity.kind,
                is_entity_body=True,
                style=style,
                anchor_id=entity.id,
                title=entity.kind,
                href=entity.url,
            )
            self.sink.append_region(descriptor)
            out.append(descriptor)
        return out

    def _render_marker(self, marker: Marker, registry: dict[str, Entity]) -> Optional[OverlayDescriptor]:
        pos = marker.position
        try:
            rect = self.mapper.to_pixels(pos.page, pos)
        except UnknownPage as e:
            logger.debug("Skipping %s marker %r: %s", marker.kind, marker.id, e)
            return None

        resolution = resolve_marker(marker, registry, MERGE_POLICIES.get(marker.kind))
        descriptor = OverlayDescriptor(
            page=pos.page,
            pixel_rect=rect,
            kind=marker.kind,
            is_entity_body=False,
            style=marker_style(marker.kind, resolution.resolved),
            target_id=marker.id if resolution.resolved else None,
            preview_region=resolution.region,
        )
        self.sink.append_region(descriptor)

        if resolution.resolved and self.navigator is not None:
            descriptor.on_click = _scroll_handler(self.navigator, anchor_name(marker.kind, marker.id))
            self.sink.attach_click(descriptor, descriptor.on_click)

        if resolution.region is not None and self.previews is not None:
            image = self.previews.preview(resolution.region)
            if image is not None:
                descriptor.preview_image = image
                self.sink.attach_preview(descriptor, image)

        return descriptor


def _scroll_handler(navigator: Navigator, anchor_id: str) -> Callable[[], None]:
    def handler() -> None:
        navigator.scroll_to(anchor_id)
    return handler


def render_overlays(
    response: AnnotationResponse,
    pages: PageMetadataStore,
    surfaces: SurfaceProvider,
    navigator: Optional[Navigator] = None,
    sink: Optional[RegionSink] = None,
    with_previews: bool = True,
) -> list[OverlayDescriptor]:
    """Render all overlays of ``response``; see OverlayRenderer."""
    renderer = OverlayRenderer(pages, surfaces, navigator=navigator, sink=sink,
                               with_previews=with_previews)
    return renderer.render(response)
