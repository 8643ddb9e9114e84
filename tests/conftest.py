"""Shared test fixtures."""

import sys

import pytest

# Ensure src is in path
sys.path.insert(0, "src")

from worldpatch import (
    ChunkIndex,
    ChunkIndexTable,
    DynamicGridPayload,
    Entity,
    EntityPayload,
    EntitySchema,
    Folder,
    GlobalMetadata,
    LocalStore,
    MsgpackRecordCodec,
    Vector3,
    merge_overlays,
    nest,
)
from worldpatch.core.layout import (
    CHUNK_INDEX_PATH,
    ENTITY_SCHEMA_PATH,
    GLOBAL_DATA_PATH,
    chunk_path,
    grid_path,
)
from worldpatch.core.overlay import File


def make_entity(persistent_id, x=0.0, y=0.0, z=0.0, grid=False, frozen=False, **data):
    """Entity with a plain or grid-owning payload."""
    payload = DynamicGridPayload(data=data) if grid else EntityPayload(tag="Entity", data=data)
    return Entity(
        persistent_id=persistent_id,
        location=Vector3(x, y, z),
        frozen=frozen,
        payload=payload,
    )


def make_grid(label: str = "door") -> Folder:
    """Small grid subtree with nested folders."""
    return Folder.from_mapping(
        {
            "Chunks": {"0_0_0.mps": f"bricks:{label}".encode(), "1_0_0.mps": b"\x00\x01\x02"},
            "Components": {"0_0_0.mps": b"components"},
        }
    )


def build_world(path, chunks, grids=None, next_index=None):
    """Write a world store with the given chunks and grid subtrees."""
    global_data = GlobalMetadata()
    schema = EntitySchema()
    codec = MsgpackRecordCodec(global_data)

    ids = [e.persistent_id for es in chunks.values() for e in es if e.persistent_id is not None]
    if next_index is None:
        next_index = max(ids, default=-1) + 1
    table = ChunkIndexTable(
        next_persistent_index=next_index,
        chunk_counts={chunk: len(entities) for chunk, entities in chunks.items()},
    )

    overlay = Folder()
    for node_path, data in [
        (GLOBAL_DATA_PATH, global_data.to_bytes()),
        (ENTITY_SCHEMA_PATH, schema.to_bytes()),
        (CHUNK_INDEX_PATH, table.to_bytes()),
    ]:
        overlay = merge_overlays(overlay, nest(node_path, File(data)))
    for chunk, entities in chunks.items():
        overlay = merge_overlays(overlay, nest(chunk_path(chunk), File(codec.encode(schema, entities))))
    for persistent_id, subtree in (grids or {}).items():
        overlay = merge_overlays(overlay, nest(grid_path(persistent_id), subtree))

    store = LocalStore.create(path)
    store.write("Init", overlay)
    return LocalStore.open(path)


@pytest.fixture
def make_world(tmp_path):
    """Factory writing a world store under tmp_path."""

    def _make(chunks, grids=None, next_index=None, name="base"):
        return build_world(tmp_path / name, chunks, grids, next_index)

    return _make


@pytest.fixture
def origin_chunk():
    return ChunkIndex(0, 0, 0)


@pytest.fixture
def entity():
    """Factory for entities: entity(persistent_id, x, y, z, grid=False, ...)."""
    return make_entity


@pytest.fixture
def grid():
    """Factory for grid subtrees: grid(label)."""
    return make_grid
