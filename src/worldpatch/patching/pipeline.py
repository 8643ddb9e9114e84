"""World patching pipeline.

Runs the whole patch in one sequential pass: each chunk is decoded, its
entities duplicated, grid subtrees linked and the chunk re-encoded before the
next chunk starts. The identity counter is threaded through every chunk in
index-table order.

States:
    OPENED -> (per chunk: DECODED -> DUPLICATED -> LINKED -> RECODED)
           -> ASSEMBLED -> WRITTEN
    Any error moves the pipeline to FAILED and propagates; a failed pipeline
    never writes.

Usage:
    patcher = WorldPatcher.open("worlds/Monastery", ReplicationPattern(2, 2, 200.0))
    report = patcher.duplicate_entities()
    patcher.save_as("worlds/Monastery_V5")
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from worldpatch.core.entity import Entity
from worldpatch.core.identity import ChunkIndex
from worldpatch.core.overlay import Folder, merge_overlays
from worldpatch.core.pattern import ChunkPolicy, ReplicationPattern
from worldpatch.errors import InvariantViolationError, PipelineStateError
from worldpatch.patching.assembler import PatchAssembler
from worldpatch.patching.engine import Duplicate, DuplicationEngine
from worldpatch.patching.linker import GridLinker
from worldpatch.storage.allocator import PersistentIndexAllocator
from worldpatch.storage.codec import EntitySchema, MsgpackRecordCodec
from worldpatch.storage.local import LocalStore
from worldpatch.storage.protocol import RecordCodec, StoreReader, StoreWriter

if TYPE_CHECKING:
    from worldpatch.config import PatchSettings

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 2048.0
DEFAULT_REVISION_LABEL = "Update"


class PipelineState(Enum):
    """Progress of a WorldPatcher run."""

    OPENED = auto()
    DECODED = auto()
    DUPLICATED = auto()
    LINKED = auto()
    RECODED = auto()
    ASSEMBLED = auto()
    WRITTEN = auto()
    FAILED = auto()


@dataclass(slots=True)
class PatchReport:
    """Summary of a duplication run."""

    chunks_processed: int = 0
    originals: int = 0
    duplicates_created: int = 0
    grids_linked: int = 0
    issued: range = field(default_factory=lambda: range(0))
    next_persistent_index: int = 0
    total_entities: int = 0


@dataclass(slots=True)
class ChunkBuffer:
    """Every entity destined for one chunk, encoded exactly once."""

    chunk: ChunkIndex
    entities: list[Entity] = field(default_factory=list)
    identities: set[int] = field(default_factory=set)
    encoded: bool = False

    def add(self, entity: Entity) -> None:
        """Add an entity.

        Raises:
            InvariantViolationError: If the buffer was already encoded, or the
                entity's identity is already in this chunk.
        """
        if self.encoded:
            raise InvariantViolationError(f"Chunk {self.chunk} already encoded")
        if entity.persistent_id is None:
            raise InvariantViolationError(f"Transient entity cannot be stored in chunk {self.chunk}")
        if entity.persistent_id in self.identities:
            raise InvariantViolationError(
                f"Identity {entity.persistent_id} appears twice in chunk {self.chunk}"
            )
        self.identities.add(entity.persistent_id)
        self.entities.append(entity)

    def encode(self, codec: RecordCodec, schema: EntitySchema) -> bytes:
        if self.encoded:
            raise InvariantViolationError(f"Chunk {self.chunk} already encoded")
        self.encoded = True
        return codec.encode(schema, self.entities)


class WorldPatcher:
    """Duplicates a world's entities over a pattern and saves the result as a new store.

    The base store is only read. All outputs are buffered until patch()
    assembles them, and nothing is written before save() or save_as().

    Args:
        store: Base store to read from.
        pattern: Replication pattern applied to every entity.
        codec: Record codec; defaults to the msgpack codec for the store's metadata.
        chunk_policy: Where duplicates are filed.
        freeze_originals: Freeze every original before copying it.
        chunk_size: Edge length of a chunk cell, used by REBUCKET_BY_POSITION.
        revision_label: Revision label recorded by save() and save_as() when none is given.
    """

    def __init__(
        self,
        store: StoreReader,
        pattern: ReplicationPattern,
        *,
        codec: RecordCodec | None = None,
        chunk_policy: ChunkPolicy = ChunkPolicy.KEEP_SOURCE_CHUNK,
        freeze_originals: bool = False,
        chunk_size: float = DEFAULT_CHUNK_SIZE,
        revision_label: str = DEFAULT_REVISION_LABEL,
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._store = store
        self._pattern = pattern
        self._codec = codec
        self._chunk_policy = chunk_policy
        self._freeze_originals = freeze_originals
        self._chunk_size = chunk_size
        self._revision_label = revision_label

        self._state = PipelineState.OPENED
        self._failure: BaseException | None = None
        self._allocator: PersistentIndexAllocator | None = None
        self._linker = GridLinker(store)
        self._assembler = PatchAssembler()
        self._patch = Folder()
        self._report = PatchReport()

    @classmethod
    def open(
        cls, path: str | os.PathLike[str], pattern: ReplicationPattern, **options: Any
    ) -> WorldPatcher:
        """Open a LocalStore at path and build a patcher for it."""
        return cls(LocalStore.open(path), pattern, **options)

    @classmethod
    def from_settings(cls, settings: PatchSettings, filename: str) -> WorldPatcher:
        """Build a patcher for a world in the configured worlds directory."""
        return cls.open(
            settings.world_path(filename),
            settings.pattern(),
            chunk_policy=settings.chunk_policy,
            freeze_originals=settings.freeze_originals,
            chunk_size=settings.chunk_size,
            revision_label=settings.revision_label,
        )

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def failure(self) -> BaseException | None:
        """Error that moved the pipeline to FAILED, if any."""
        return self._failure

    @property
    def allocator(self) -> PersistentIndexAllocator | None:
        """Identity allocator, available once duplication started."""
        return self._allocator

    @property
    def report(self) -> PatchReport:
        return self._report

    def _require(self, *states: PipelineState) -> None:
        if self._state not in states:
            expected = ", ".join(s.name for s in states)
            raise PipelineStateError(f"Pipeline is {self._state.name}, expected {expected}")

    @contextmanager
    def _failing(self) -> Iterator[None]:
        try:
            yield
        except Exception as e:
            self._state = PipelineState.FAILED
            self._failure = e
            logger.error("World patch failed: %s", e)
            raise

    def _target_chunk(self, source_chunk: ChunkIndex, entity: Entity) -> ChunkIndex:
        if self._chunk_policy is ChunkPolicy.REBUCKET_BY_POSITION:
            return ChunkIndex.containing(entity.location, self._chunk_size)
        return source_chunk

    def duplicate_entities(self) -> PatchReport:
        """Duplicate every entity of every chunk and buffer the outputs.

        Raises:
            PipelineStateError: If called more than once.
            WorldPatchError: If any chunk fails; the pipeline is then FAILED.
        """
        self._require(PipelineState.OPENED)
        with self._failing():
            global_data = self._store.global_metadata()
            schema = self._store.entity_schema()
            table = self._store.chunk_index_table()
            codec = self._codec or MsgpackRecordCodec(global_data)

            allocator = PersistentIndexAllocator.from_index_table(table)
            self._allocator = allocator
            engine = DuplicationEngine(allocator, self._pattern, self._freeze_originals)
            buffers: dict[ChunkIndex, ChunkBuffer] = {}

            for chunk in table.chunks:
                self._process_chunk(chunk, engine, allocator, buffers)
                if self._chunk_policy is ChunkPolicy.KEEP_SOURCE_CHUNK:
                    self._recode([buffers.pop(chunk)], codec, schema)

            self._recode(buffers.values(), codec, schema)
            self._assembler.add_grids(self._linker.drain())
            index_table = allocator.to_index_table()
            self._assembler.set_index_table(index_table.to_bytes())

            self._report.issued = allocator.issued
            self._report.next_persistent_index = allocator.next_index
            self._report.total_entities = index_table.total_entities()
            self._state = PipelineState.RECODED

        logger.info(
            "Duplicated %d entities into %d copies across %d chunks (identities %d..%d)",
            self._report.originals,
            self._report.duplicates_created,
            self._report.chunks_processed,
            self._report.issued.start,
            self._report.issued.stop,
        )
        return self._report

    def _process_chunk(
        self,
        chunk: ChunkIndex,
        engine: DuplicationEngine,
        allocator: PersistentIndexAllocator,
        buffers: dict[ChunkIndex, ChunkBuffer],
    ) -> None:
        self._state = PipelineState.DECODED
        entities = self._store.chunk_entities(chunk)

        buffers.setdefault(chunk, ChunkBuffer(chunk))
        self._state = PipelineState.DUPLICATED
        lineages: list[tuple[Entity, list[Duplicate], Folder | None]] = []
        for entity in entities:
            original = engine.prepare(entity)
            if original.persistent_id is None:
                raise InvariantViolationError(f"Entity in chunk {chunk} has no persistent identity")
            allocator.check_existing(original.persistent_id)
            buffers[chunk].add(original)

            # Owned subtree is read before any copy of the source exists.
            subtree = self._linker.capture(original)
            duplicates = engine.duplicate(original)
            for dup in duplicates:
                target = self._target_chunk(chunk, dup.entity)
                buffers.setdefault(target, ChunkBuffer(target)).add(dup.entity)
                allocator.record_created(target)
            lineages.append((original, duplicates, subtree))
            self._report.duplicates_created += len(duplicates)

        self._state = PipelineState.LINKED
        for original, duplicates, subtree in lineages:
            self._report.grids_linked += self._linker.file_copies(original, duplicates, subtree)

        self._report.originals += len(entities)
        self._report.chunks_processed += 1

    def _recode(
        self, buffers: Iterable[ChunkBuffer], codec: RecordCodec, schema: EntitySchema
    ) -> None:
        self._state = PipelineState.RECODED
        for buffer in sorted(buffers, key=lambda b: b.chunk):
            self._assembler.add_chunk(buffer.chunk, buffer.encode(codec, schema))
            logger.info("Recoded chunk %s with %d entities", buffer.chunk, len(buffer.entities))

    def patch(self) -> Folder:
        """Drain buffered outputs into an overlay.

        A second call returns an empty overlay, since the outputs were
        already handed over.
        """
        self._require(PipelineState.RECODED, PipelineState.ASSEMBLED)
        with self._failing():
            if self._assembler.is_empty():
                logger.debug("Nothing buffered since the last patch; overlay is empty")
            overlay = self._assembler.assemble()
            self._patch = merge_overlays(self._patch, overlay)
            self._state = PipelineState.ASSEMBLED
        return overlay

    def _final_overlay(self) -> Folder:
        self._require(PipelineState.RECODED, PipelineState.ASSEMBLED)
        if self._state is PipelineState.RECODED:
            self.patch()
        with self._failing():
            return self._store.to_overlay().with_patch(self._patch)

    def _write(self, writer: StoreWriter, label: str, overlay: Folder) -> None:
        with self._failing():
            writer.write(label, overlay)
            self._assembler.finish()
            self._state = PipelineState.WRITTEN

    def save(self, writer: StoreWriter, label: str | None = None) -> None:
        """Merge the patch onto the base store and write it with one call."""
        self._write(writer, label or self._revision_label, self._final_overlay())

    def save_as(
        self,
        path: str | os.PathLike[str],
        label: str | None = None,
        overwrite: bool = True,
    ) -> LocalStore:
        """Save into a new LocalStore at path, replacing an existing store.

        The destination is only created once the merged overlay is complete.

        Returns:
            The written store.
        """
        overlay = self._final_overlay()
        with self._failing():
            target = LocalStore.create(path, overwrite=overwrite)
        self._write(target, label or self._revision_label, overlay)
        logger.info("Saved patched world to %s", target.root)
        return target
