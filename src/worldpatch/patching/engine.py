"""Duplication engine: replicates entities over a grid pattern.

Usage:
    engine = DuplicationEngine(allocator, ReplicationPattern(columns=2, rows=2))
    original = engine.prepare(entity)
    for dup in engine.duplicate(original):
        ...  # dup.entity has a fresh identity and a translated location
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass

from worldpatch.core.entity import Entity
from worldpatch.core.pattern import GridOffset, ReplicationPattern
from worldpatch.errors import InvariantViolationError
from worldpatch.storage.allocator import PersistentIndexAllocator

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Duplicate:
    """One duplicate together with its lineage.

    Attributes:
        source_id: Persistent identity of the entity it was copied from.
        offset: Pattern cell it occupies.
        entity: The duplicate itself, carrying its new identity.
    """

    source_id: int
    offset: GridOffset
    entity: Entity


class DuplicationEngine:
    """Produces spatially offset copies of entities with fresh identities.

    Duplicates come out in row-major pattern order, so identities are
    deterministic for a given source and counter state.

    Args:
        allocator: Issues identities for duplicates.
        pattern: Grid of copies to produce per source.
        freeze_originals: Set the frozen flag on sources before copying, so
            duplicates inherit it.
    """

    def __init__(
        self,
        allocator: PersistentIndexAllocator,
        pattern: ReplicationPattern,
        freeze_originals: bool = False,
    ):
        self._allocator = allocator
        self._pattern = pattern
        self._freeze_originals = freeze_originals
        if pattern.duplicates_per_source == 0:
            warnings.warn(
                "Replication pattern is 1x1: no duplicates will be produced.",
                stacklevel=2,
            )

    @property
    def pattern(self) -> ReplicationPattern:
        return self._pattern

    def prepare(self, entity: Entity) -> Entity:
        """Validate a source entity and apply the source-side policy.

        Returns:
            The entity to keep as the original; a copy when it was modified.

        Raises:
            InvariantViolationError: If the entity has no persistent identity.
        """
        if entity.persistent_id is None:
            raise InvariantViolationError(
                f"Entity of type {entity.tag!r} at {entity.location} has no persistent "
                "identity and cannot be duplicated"
            )
        if self._freeze_originals and not entity.frozen:
            return entity.clone(frozen=True)
        return entity

    def duplicate(self, source: Entity) -> list[Duplicate]:
        """Produce one copy of source per non-origin pattern cell.

        source should have gone through prepare(); the origin cell is the
        source itself and is never copied.

        Raises:
            InvariantViolationError: If source has no persistent identity.
        """
        if source.persistent_id is None:
            raise InvariantViolationError(f"Cannot duplicate transient entity of type {source.tag!r}")

        duplicates: list[Duplicate] = []
        for offset in self._pattern.offsets():
            clone = source.clone(
                persistent_id=self._allocator.next_id(),
                location=source.location + self._pattern.translation(offset),
            )
            duplicates.append(Duplicate(source_id=source.persistent_id, offset=offset, entity=clone))
        logger.debug(
            "Duplicated entity %d into %s",
            source.persistent_id,
            [d.entity.persistent_id for d in duplicates],
        )
        return duplicates
