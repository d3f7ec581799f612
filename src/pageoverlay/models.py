"""Data models for annotation responses and overlay output."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

FORMULA = "formula"
FIGURE = "figure"
TABLE = "table"
REFERENCE = "reference"

# Processing order: bodies of a kind are always rendered before its markers.
KINDS: tuple[str, ...] = (FORMULA, FIGURE, TABLE, REFERENCE)

# Response keys per kind: (entity collection, marker collection)
_RESPONSE_KEYS: dict[str, tuple[str, str]] = {
    FORMULA: ("formulas", "formulaMarkers"),
    FIGURE: ("figures", "figureMarkers"),
    TABLE: ("tables", "tableMarkers"),
    REFERENCE: ("refBibs", "refMarkers"),
}


class MalformedResponse(ValueError):
    """The annotation response cannot be used at all."""


class UnknownPage(LookupError):
    """A page has no metadata or no rendered surface."""

    def __init__(self, page_number: int):
        super().__init__(f"Unknown page: {page_number}")
        self.page_number = page_number


@dataclass(frozen=True)
class PageInfo:
    """Native page size in document units."""
    page_number: int
    width: float
    height: float


@dataclass(frozen=True)
class Position:
    """A rectangle on one page, in document units."""
    page: int
    x: float
    y: float
    w: float
    h: float

    @classmethod
    def from_dict(cls, data: dict) -> Position:
        if not isinstance(data, dict) or data.get("p") is None:
            raise MalformedResponse(f"Position without a page: {data!r}")
        try:
            pos = cls(
                page=int(data["p"]),
                x=float(data.get("x", 0.0)),
                y=float(data.get("y", 0.0)),
                w=float(data.get("w", 0.0)),
                h=float(data.get("h", 0.0)),
            )
        except (TypeError, ValueError) as e:
            raise MalformedResponse(f"Invalid position {data!r}: {e}") from e
        if not all(math.isfinite(v) for v in (pos.x, pos.y, pos.w, pos.h)):
            raise MalformedResponse(f"Non-finite coordinate in position {data!r}")
        return pos


def anchor_name(kind: str, entity_id: str) -> str:
    """Navigation target of an entity; ids are only unique within a kind."""
    return f"{kind}-{entity_id}"


@dataclass(frozen=True)
class BoundingRegion:
    """Merged extent of an entity's fragments (or one marker's own box)."""
    page: int
    x: float
    y: float
    w: float
    h: float

    @classmethod
    def of(cls, pos: Position) -> BoundingRegion:
        return cls(page=pos.page, x=pos.x, y=pos.y, w=pos.w, h=pos.h)


@dataclass(frozen=True)
class PixelRect:
    """A rectangle in pixels of a rendered page surface."""
    x: float
    y: float
    w: float
    h: float


@dataclass
class Entity:
    """A formula, figure, table or bibliographic reference."""
    kind: str
    positions: list[Position] = field(default_factory=list)
    id: Optional[str] = None
    url: str = ""   # references only


@dataclass
class Marker:
    """An in-text mention pointing at an entity by id."""
    kind: str
    position: Position
    id: Optional[str] = None


@dataclass(frozen=True)
class OverlayStyle:
    border: str   # "dotted", "solid", "underline", "dotted-underline"
    color: str
    width: int = 1


@dataclass
class OverlayDescriptor:
    """One overlay region on one page."""
    page: int
    pixel_rect: PixelRect
    kind: str
    is_entity_body: bool
    style: OverlayStyle
    target_id: Optional[str] = None
    preview_region: Optional[BoundingRegion] = None
    anchor_id: Optional[str] = None
    title: str = ""
    href: str = ""
    preview_image: Optional[bytes] = None
    on_click: Optional[Callable[[], None]] = field(default=None, repr=False, compare=False)

    @property
    def resolved(self) -> bool:
        return self.target_id is not None


@dataclass
class AnnotationResponse:
    """A parsed annotation payload for one document."""
    pages: list[PageInfo] = field(default_factory=list)
    entities: dict[str, list[Entity]] = field(default_factory=dict)
    markers: dict[str, list[Marker]] = field(default_factory=dict)

    def entities_of(self, kind: str) -> list[Entity]:
        return self.entities.get(kind, [])

    def markers_of(self, kind: str) -> list[Marker]:
        return self.markers.get(kind, [])

    @classmethod
    def from_dict(cls, data: Any) -> AnnotationResponse:
        if not isinstance(data, dict):
            raise MalformedResponse("Annotation response must be a JSON object")
        raw_pages = data.get("pages")
        if raw_pages is None:
            raise MalformedResponse("Annotation response has no 'pages' field")
        if not isinstance(raw_pages, list):
            raise MalformedResponse("'pages' must be a list")

        pages = []
        for i, p in enumerate(raw_pages):
            try:
                pages.append(PageInfo(
                    page_number=i + 1,
                    width=float(p["page_width"]),
                    height=float(p["page_height"]),
                ))
            except (KeyError, TypeError, ValueError) as e:
                raise MalformedResponse(f"Invalid page entry {i + 1}: {p!r}") from e

        entities: dict[str, list[Entity]] = {}
        markers: dict[str, list[Marker]] = {}
        for kind, (entity_key, marker_key) in _RESPONSE_KEYS.items():
            entities[kind] = [_entity(kind, e) for e in _collection(data, entity_key)]
            markers[kind] = []
            for m in _collection(data, marker_key):
                try:
                    markers[kind].append(_marker(kind, m))
                except MalformedResponse as e:
                    # A broken marker only loses itself, like one on an unknown page.
                    logger.debug("Skipping %s marker: %s", kind, e)

        return cls(pages=pages, entities=entities, markers=markers)

    @classmethod
    def load(cls, path: Path) -> AnnotationResponse:
        return cls.from_dict(read_payload(path))


def _collection(data: dict, key: str) -> list:
    items = data.get(key) or []
    if not isinstance(items, list):
        raise MalformedResponse(f"'{key}' must be a list")
    return items


def _entity(kind: str, e: Any) -> Entity:
    if not isinstance(e, dict):
        raise MalformedResponse(f"Invalid {kind} entry: {e!r}")
    raw_positions = e.get("pos") or []
    if not isinstance(raw_positions, list):
        raise MalformedResponse(f"Positions of {kind} {e.get('id')!r} must be a list")
    return Entity(
        kind=kind,
        positions=[Position.from_dict(pos) for pos in raw_positions],
        id=e.get("id") or None,
        url=e.get("url") or "",
    )


def _marker(kind: str, m: Any) -> Marker:
    if not isinstance(m, dict):
        raise MalformedResponse(f"Invalid {kind} marker: {m!r}")
    return Marker(kind=kind, position=Position.from_dict(m), id=m.get("id") or None)


def read_payload(path: Path) -> Any:
    """Read a raw annotation payload from a JSON file."""
    try:
        return json.loads(Path(path).read_text())
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"{path} is not valid JSON: {e}") from e
