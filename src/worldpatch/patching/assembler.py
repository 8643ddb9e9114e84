"""Patch tree assembler.

Buffers re-encoded chunks, grid subtrees and the updated chunk index table,
then arranges them under the store's path skeleton as one overlay.

Usage:
    assembler = PatchAssembler()
    assembler.add_chunk(ChunkIndex(0, 0, 0), chunk_bytes)
    assembler.add_grid(1042, subtree)
    assembler.set_index_table(table_bytes)
    overlay = assembler.assemble()   # buffers are drained
    assembler.assemble().is_empty()  # True
"""

from __future__ import annotations

from worldpatch.core.identity import ChunkIndex
from worldpatch.core.layout import (
    CHUNK_INDEX_PATH,
    CHUNKS_PATH,
    GRIDS_PATH,
    chunk_file_name,
)
from worldpatch.core.overlay import File, Folder, OverlayNode, merge_overlays, nest
from worldpatch.errors import PipelineStateError


class PatchAssembler:
    """Structural builder of the patch overlay. Performs no content validation."""

    def __init__(self) -> None:
        self._chunks: dict[ChunkIndex, bytes] = {}
        self._grids: dict[int, Folder] = {}
        self._index_table: bytes | None = None
        self._finished = False

    def _check_open(self) -> None:
        if self._finished:
            raise PipelineStateError("Assembler already finished")

    def is_empty(self) -> bool:
        return not self._chunks and not self._grids and self._index_table is None

    def add_chunk(self, chunk: ChunkIndex, data: bytes) -> None:
        """Buffer the encoded bytes of one chunk, replacing earlier bytes for it."""
        self._check_open()
        self._chunks[chunk] = data

    def add_grid(self, persistent_id: int, subtree: Folder) -> None:
        """Buffer the grid subtree owned by one identity."""
        self._check_open()
        self._grids[persistent_id] = subtree

    def add_grids(self, entries: dict[int, Folder]) -> None:
        for persistent_id, subtree in entries.items():
            self.add_grid(persistent_id, subtree)

    def set_index_table(self, data: bytes) -> None:
        self._check_open()
        self._index_table = data

    def assemble(self) -> Folder:
        """Move every buffered output into a new overlay.

        Buffers are emptied, so assembling again without new data returns an
        empty overlay.
        """
        self._check_open()
        chunks, self._chunks = self._chunks, {}
        grids, self._grids = self._grids, {}
        index_table, self._index_table = self._index_table, None

        overlay = Folder()
        if chunks:
            files: dict[str, OverlayNode] = {
                chunk_file_name(chunk): File(data) for chunk, data in chunks.items()
            }
            overlay = merge_overlays(overlay, nest(CHUNKS_PATH, Folder(files)))
        if grids:
            folders: dict[str, OverlayNode] = {
                str(persistent_id): subtree for persistent_id, subtree in sorted(grids.items())
            }
            overlay = merge_overlays(overlay, nest(GRIDS_PATH, Folder(folders)))
        if index_table is not None:
            overlay = merge_overlays(overlay, nest(CHUNK_INDEX_PATH, File(index_table)))
        return overlay

    def finish(self) -> Folder:
        """Assemble for the last time; the assembler rejects further use."""
        overlay = self.assemble()
        self._finished = True
        return overlay
