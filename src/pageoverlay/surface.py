"""Rendered page surfaces: pixel sizes, crops and PNG encoding.

Pages are rendered with PyMuPDF into RGB numpy arrays, the same way layout
detection renders them.  The overlay core only reads surface sizes and asks
for crops; it never draws on a surface.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

import fitz  # PyMuPDF
import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_SCALE = 1.5


class PageSurface:
    """One rendered page held as an RGB array of shape (height, width, 3)."""

    def __init__(self, page_number: int, image: np.ndarray):
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"Expected an RGB image, got shape {image.shape}")
        self.page_number = page_number
        self.image = image

    @property
    def pixel_width(self) -> int:
        return int(self.image.shape[1])

    @property
    def pixel_height(self) -> int:
        return int(self.image.shape[0])

    def crop_region(self, x: float, y: float, w: float, h: float) -> bytes:
        """Crop a pixel rectangle (clamped to the surface) and return PNG bytes."""
        x0 = max(0, int(round(x)))
        y0 = max(0, int(round(y)))
        x1 = min(self.pixel_width, int(round(x + w)))
        y1 = min(self.pixel_height, int(round(y + h)))
        if x1 <= x0 or y1 <= y0:
            raise ValueError(
                f"Empty crop region ({x:.1f}, {y:.1f}, {w:.1f}, {h:.1f}) on page {self.page_number}"
            )
        return _encode_png(self.image[y0:y1, x0:x1])

    def to_png(self) -> bytes:
        return _encode_png(self.image)


def _encode_png(img: np.ndarray) -> bytes:
    img = np.ascontiguousarray(img, dtype=np.uint8)
    height, width = img.shape[:2]
    pix = fitz.Pixmap(fitz.csRGB, width, height, img.tobytes(), False)
    return pix.tobytes("png")


class SurfaceProvider(Protocol):
    def get_surface(self, page_number: int) -> Optional[PageSurface]:
        ...


class SurfaceSet:
    """Surfaces that are already rendered, keyed by page number."""

    def __init__(self, surfaces: Optional[dict[int, PageSurface]] = None):
        self._surfaces: dict[int, PageSurface] = dict(surfaces or {})

    def add(self, surface: PageSurface) -> None:
        self._surfaces[surface.page_number] = surface

    def get_surface(self, page_number: int) -> Optional[PageSurface]:
        return self._surfaces.get(page_number)

    def page_numbers(self) -> list[int]:
        return sorted(self._surfaces)


class PdfSurfaceProvider:
    """Render PDF pages on demand at a fixed zoom.

    Use as a context manager so the document is closed afterwards.  Renders
    are cached for the lifetime of the provider.
    """

    def __init__(self, pdf_path: Path, scale: float = DEFAULT_SCALE):
        if scale <= 0:
            raise ValueError(f"Render scale must be positive, got {scale}")
        self.pdf_path = Path(pdf_path)
        self.scale = scale
        self._doc = fitz.open(self.pdf_path)
        self._cache: dict[int, PageSurface] = {}

    def __enter__(self) -> PdfSurfaceProvider:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._doc.close()
        self._cache.clear()

    @property
    def page_count(self) -> int:
        return len(self._doc)

    def page_numbers(self) -> list[int]:
        return list(range(1, self.page_count + 1))

    def get_surface(self, page_number: int) -> Optional[PageSurface]:
        if page_number in self._cache:
            return self._cache[page_number]
        if not 1 <= page_number <= self.page_count:
            return None

        page = self._doc[page_number - 1]
        pix = page.get_pixmap(matrix=fitz.Matrix(self.scale, self.scale), alpha=False)
        img = np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.height, pix.width, pix.n)
        if pix.n == 4:  # RGBA → RGB
            img = img[:, :, :3]
        elif pix.n == 1:
            img = np.repeat(img, 3, axis=2)
        logger.debug("Rendered page %d at %dx%d", page_number, pix.width, pix.height)

        surface = PageSurface(page_number, img)
        self._cache[page_number] = surface
        return surface
