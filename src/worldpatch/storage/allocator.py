"""Persistent index allocation service.

PersistentIndexAllocator is a stateful service that issues world-unique entity
identities and tracks how many entities each chunk holds.
"""

from __future__ import annotations

import logging
import threading

from worldpatch.core.identity import ChunkIndex
from worldpatch.errors import InvariantViolationError
from worldpatch.storage.codec import ChunkIndexTable

logger = logging.getLogger(__name__)


class PersistentIndexAllocator:
    """Append-only allocator of persistent identities.

    Identities are never freed or recycled: the counter only moves forward, so
    an interrupted patch can never hand out an identity that is still in use.
    Increments are serialized by a lock, so chunk work may run on several
    threads as long as every identity comes from this one allocator.

    Args:
        next_index: First identity to issue. Must come from the base store.
        chunk_counts: Entity count per chunk in the base store.
    """

    def __init__(self, next_index: int = 0, chunk_counts: dict[ChunkIndex, int] | None = None):
        if next_index < 0:
            raise ValueError(f"next_index must be non-negative, got {next_index}")
        self._start_index = next_index
        self._next_index = next_index
        self._chunk_counts: dict[ChunkIndex, int] = dict(chunk_counts or {})
        self._existing: set[int] = set()
        self._lock = threading.Lock()

    @classmethod
    def from_index_table(cls, table: ChunkIndexTable) -> PersistentIndexAllocator:
        """Seed from a store's chunk index table."""
        return cls(next_index=table.next_persistent_index, chunk_counts=table.chunk_counts)

    @property
    def next_index(self) -> int:
        """Identity the next call to next_id() returns."""
        return self._next_index

    @property
    def issued(self) -> range:
        """Identities issued by this allocator so far."""
        return range(self._start_index, self._next_index)

    def chunk_count(self, chunk: ChunkIndex) -> int:
        return self._chunk_counts.get(chunk, 0)

    def next_id(self) -> int:
        """Return the current counter value and advance it by one."""
        with self._lock:
            identity = self._next_index
            self._next_index += 1
        return identity

    def record_created(self, chunk: ChunkIndex) -> None:
        """Count one new entity in a chunk, registering the chunk if unseen."""
        with self._lock:
            if chunk not in self._chunk_counts:
                logger.debug("Registering new chunk %s", chunk)
            self._chunk_counts[chunk] = self._chunk_counts.get(chunk, 0) + 1

    def check_existing(self, persistent_id: int) -> None:
        """Register an identity read from the store, verifying it is unique.

        Raises:
            InvariantViolationError: If the identity is at or above the seeded counter,
                or was already read from another entity of the store.
        """
        if persistent_id >= self._start_index:
            raise InvariantViolationError(
                f"Stored identity {persistent_id} is not below the counter seed "
                f"{self._start_index}; new identities would collide"
            )
        with self._lock:
            if persistent_id in self._existing:
                raise InvariantViolationError(
                    f"Stored identity {persistent_id} is used by more than one entity"
                )
            self._existing.add(persistent_id)

    def to_index_table(self) -> ChunkIndexTable:
        """Snapshot counter and chunk counts as an index table."""
        with self._lock:
            return ChunkIndexTable(
                next_persistent_index=self._next_index,
                chunk_counts=dict(self._chunk_counts),
            )
