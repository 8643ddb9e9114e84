"""Fixed path skeleton of a world store.

Paths are tuples of segments so they can be used both for overlay nesting and
for on-disk locations.
"""

from __future__ import annotations

from worldpatch.core.identity import ChunkIndex

StorePath = tuple[str, ...]

WORLD_ROOT: StorePath = ("World", "0")
ENTITIES_PATH: StorePath = (*WORLD_ROOT, "Entities")
CHUNKS_PATH: StorePath = (*ENTITIES_PATH, "Chunks")
CHUNK_INDEX_PATH: StorePath = (*ENTITIES_PATH, "ChunkIndex.mps")
GRIDS_PATH: StorePath = (*WORLD_ROOT, "Bricks", "Grids")

META_PATH: StorePath = ("Meta",)
GLOBAL_DATA_PATH: StorePath = (*META_PATH, "GlobalData.mps")
ENTITY_SCHEMA_PATH: StorePath = (*META_PATH, "EntitySchema.mps")
REVISIONS_PATH: StorePath = (*META_PATH, "Revisions.mps")

CHUNK_SUFFIX = ".mps"


def chunk_file_name(chunk: ChunkIndex) -> str:
    return f"{chunk}{CHUNK_SUFFIX}"


def chunk_path(chunk: ChunkIndex) -> StorePath:
    return (*CHUNKS_PATH, chunk_file_name(chunk))


def grid_path(persistent_id: int) -> StorePath:
    """Root of the grid subtree owned by an entity."""
    return (*GRIDS_PATH, str(persistent_id))


def format_path(path: StorePath) -> str:
    return "/".join(path)
