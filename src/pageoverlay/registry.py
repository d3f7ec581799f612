"""Entity registries and marker resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from pageoverlay.geometry import MERGE_POLICIES, SPAN, merge_positions, same_page_run
from pageoverlay.models import REFERENCE, BoundingRegion, Entity, Marker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Where a marker points, if anywhere."""
    region: Optional[BoundingRegion]
    resolved: bool


UNRESOLVED = Resolution(region=None, resolved=False)


def build_registry(entities: Iterable[Entity]) -> dict[str, Entity]:
    """Index entities of one kind by id.

    Entities without an id (or without positions) cannot be targeted and are
    left out.  A later entity with the same id replaces an earlier one.
    """
    registry: dict[str, Entity] = {}
    for entity in entities:
        if not entity.id or not entity.positions:
            continue
        if entity.id in registry:
            logger.debug("Duplicate %s id %r, keeping the last one", entity.kind, entity.id)
        registry[entity.id] = entity
    return registry


def resolve_marker(
    marker: Marker,
    registry: dict[str, Entity],
    policy: Optional[str] = None,
) -> Resolution:
    """Find the merged region of the entity a marker references.

    Markers without an id, or whose id is not in the registry, are
    unresolved and render at their own position.
    """
    if not marker.id:
        return UNRESOLVED
    target = registry.get(marker.id)
    if target is None:
        logger.debug("Unresolved %s marker %r", marker.kind, marker.id)
        return UNRESOLVED

    return Resolution(region=target_region(target, policy), resolved=True)


def target_region(entity: Entity, policy: Optional[str] = None) -> BoundingRegion:
    """Merged region of an entity, as shown when a marker points at it.

    Bibliographic references are cut back to fragments on their first page
    before merging.
    """
    if policy is None:
        policy = MERGE_POLICIES.get(entity.kind, SPAN)
    positions = entity.positions
    if entity.kind == REFERENCE and policy == SPAN:
        positions = same_page_run(positions)
    return merge_positions(positions, policy)
