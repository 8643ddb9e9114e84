"""Storage backends, codec and identity allocation."""

from worldpatch.storage.allocator import PersistentIndexAllocator
from worldpatch.storage.codec import (
    ChunkIndexTable,
    ColumnarChunk,
    EntitySchema,
    GlobalMetadata,
    MsgpackRecordCodec,
)
from worldpatch.storage.local import LocalStore
from worldpatch.storage.protocol import RecordCodec, StoreReader, StoreWriter

__all__ = [
    "StoreReader",
    "StoreWriter",
    "RecordCodec",
    "LocalStore",
    "PersistentIndexAllocator",
    "ChunkIndexTable",
    "ColumnarChunk",
    "EntitySchema",
    "GlobalMetadata",
    "MsgpackRecordCodec",
]
