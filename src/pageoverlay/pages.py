"""Per-page metadata reported by the upstream analysis."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from pageoverlay.models import PageInfo

logger = logging.getLogger(__name__)


class PageMetadataStore:
    """Lookup table from 1-indexed page number to native page size."""

    def __init__(self, pages: Iterable[PageInfo] = ()):
        self._pages: dict[int, PageInfo] = {}
        self.register(pages)

    def register(self, pages: Iterable[PageInfo]) -> None:
        """Replace the stored pages with those of a new response."""
        self._pages = {}
        for info in pages:
            if info.width <= 0 or info.height <= 0:
                logger.warning(
                    "Page %d has degenerate size %sx%s, its annotations will be skipped",
                    info.page_number, info.width, info.height,
                )
                continue
            self._pages[info.page_number] = info

    def lookup(self, page_number: int) -> Optional[PageInfo]:
        return self._pages.get(page_number)

    def __contains__(self, page_number: object) -> bool:
        return page_number in self._pages

    def __len__(self) -> int:
        return len(self._pages)
