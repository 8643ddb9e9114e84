"""Store and codec protocols.

The patching pipeline only talks to these interfaces, so any backend that can
read chunks and subtrees and apply an overlay can be patched:
- LocalStore: directory-backed store (default)
- Archive or database backed stores (bring your own)

Usage:
    store: StoreReader = LocalStore.open(path)
    patcher = WorldPatcher(store, ReplicationPattern())
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from worldpatch.core.entity import Entity
    from worldpatch.core.identity import ChunkIndex
    from worldpatch.core.layout import StorePath
    from worldpatch.core.overlay import Folder
    from worldpatch.storage.codec import ChunkIndexTable, EntitySchema, GlobalMetadata


@runtime_checkable
class StoreReader(Protocol):
    """Read-only view of a world store."""

    def global_metadata(self) -> GlobalMetadata:
        """World-wide type tables."""
        ...

    def entity_schema(self) -> EntitySchema:
        """Schema every entity chunk is encoded with."""
        ...

    def chunk_index_table(self) -> ChunkIndexTable:
        """Known chunks, their entity counts and the identity counter."""
        ...

    def chunk_entities(self, chunk: ChunkIndex) -> list[Entity]:
        """Decode all entities of a chunk."""
        ...

    def subtree(self, path: StorePath) -> Folder:
        """Read a folder and everything below it.

        Raises:
            NotFoundError: If path does not exist or is not a folder.
        """
        ...

    def to_overlay(self) -> Folder:
        """Whole store as an overlay, the base a patch is merged onto."""
        ...


@runtime_checkable
class StoreWriter(Protocol):
    """Write side of a world store."""

    def write(self, label: str, overlay: Folder) -> None:
        """Apply overlay on top of the store as one named revision."""
        ...


class RecordCodec(Protocol):
    """Converts entity lists to and from encoded chunk bytes."""

    def encode(self, schema: EntitySchema, entities: Iterable[Entity]) -> bytes:
        """Encode entities as one chunk."""
        ...

    def decode(self, schema: EntitySchema, data: bytes) -> list[Entity]:
        """Decode one chunk."""
        ...
