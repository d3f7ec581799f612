"""Coordinate conversion and fragment merging.

Positions arrive in document units (the page size reported by the upstream
analysis) and are drawn on rendered page surfaces whose pixel size depends on
the zoom.  Entities spanning several fragments are collapsed into one
bounding region before they can be previewed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence, Union

from pageoverlay.models import (
    FIGURE,
    FORMULA,
    REFERENCE,
    TABLE,
    BoundingRegion,
    PixelRect,
    Position,
    UnknownPage,
)
from pageoverlay.pages import PageMetadataStore

if TYPE_CHECKING:
    from pageoverlay.surface import SurfaceProvider

SPAN = "span"
UNION = "union"

MERGE_POLICIES: dict[str, str] = {
    FORMULA: SPAN,
    FIGURE: UNION,
    TABLE: SPAN,
    REFERENCE: SPAN,
}

Rect = Union[Position, BoundingRegion]


class CoordinateMapper:
    """Map document-unit rectangles onto rendered page surfaces."""

    def __init__(self, pages: PageMetadataStore, surfaces: SurfaceProvider):
        self.pages = pages
        self.surfaces = surfaces

    def to_pixels(self, page_number: int, pos: Rect) -> PixelRect:
        """Convert ``pos`` to pixels of the surface currently shown for ``page_number``.

        The vertical document axis is scaled by the rendered height and the
        horizontal one by the rendered width, following the upstream
        coordinate convention:

            scale_x = rendered_height / page_height
            scale_y = rendered_width / page_width

        Raises UnknownPage when the page has no metadata or no surface.
        """
        info = self.pages.lookup(page_number)
        if info is None:
            raise UnknownPage(page_number)
        surface = self.surfaces.get_surface(page_number)
        if surface is None:
            raise UnknownPage(page_number)

        scale_x = surface.pixel_height / info.height
        scale_y = surface.pixel_width / info.width
        return PixelRect(
            x=pos.x * scale_x,
            y=pos.y * scale_y,
            w=pos.w * scale_x,
            h=pos.h * scale_y,
        )


# ------------------------------------------------------------------
# Merging
# ------------------------------------------------------------------

def merge_positions(positions: Sequence[Position], policy: str) -> BoundingRegion:
    """Merge the fragments of one entity into a single bounding region.

    SPAN treats the fragments as a reading-order run and only looks at the
    first and last one.  Its height, ``max(|dy|, first.h) + max(first.h,
    last.h)``, overestimates spans with many intermediate lines; the formula
    is kept as is so regions match what the upstream viewer draws.

    UNION is a full bounding-box union over every fragment (figure parts are
    not in reading order).

    A single fragment is returned unchanged under either policy.
    """
    if not positions:
        raise ValueError("Cannot merge an empty list of positions")
    if len(positions) == 1:
        return BoundingRegion.of(positions[0])
    if policy == SPAN:
        return _merge_span(positions[0], positions[-1])
    if policy == UNION:
        return _merge_union(positions)
    raise ValueError(f"Unknown merge policy: {policy}")


def _merge_span(first: Position, last: Position) -> BoundingRegion:
    return BoundingRegion(
        page=first.page,
        x=min(first.x, last.x),
        y=min(first.y, last.y),
        w=max(first.w, last.w),
        h=max(abs(last.y - first.y), first.h) + max(first.h, last.h),
    )


def _merge_union(positions: Sequence[Position]) -> BoundingRegion:
    first = positions[0]
    x0, y0 = first.x, first.y
    x1, y1 = first.x + first.w, first.y + first.h
    for pos in positions[1:]:
        x0 = min(x0, pos.x)
        y0 = min(y0, pos.y)
        x1 = max(x1, pos.x + pos.w)
        y1 = max(y1, pos.y + pos.h)
    return BoundingRegion(page=first.page, x=x0, y=y0, w=x1 - x0, h=y1 - y0)


def same_page_run(positions: Sequence[Position]) -> list[Position]:
    """Reduce a fragment run to endpoints that sit on the first fragment's page.

    An overlay cannot span two rendered pages, so when the last fragment is on
    another page we walk backward to the closest fragment still on the first
    page and use it as the end of the run.  This is an approximation: when no
    other fragment shares the first page, only the first fragment is kept.
    """
    if len(positions) <= 1:
        return list(positions)
    first = positions[0]
    if positions[-1].page == first.page:
        return [first, positions[-1]]

    # Walk from the second-to-last fragment down to index 1.
    for i in range(len(positions) - 2, 0, -1):
        if positions[i].page == first.page:
            return [first, positions[i]]
    return [first]
