"""worldpatch: duplicate entities of a chunked world store over a grid pattern.

Usage:
    from worldpatch import ReplicationPattern, WorldPatcher

    patcher = WorldPatcher.open("worlds/Monastery", ReplicationPattern(columns=2, rows=2))
    report = patcher.duplicate_entities()
    patcher.save_as("worlds/Monastery_V5")
    print(report.duplicates_created)

The base store is only read; the new store receives the base merged with a
patch overlay holding re-encoded chunks, copied grid subtrees and the updated
chunk index table.
"""

__version__ = "0.1.0"

# Core primitives
from worldpatch.core import (
    DYNAMIC_GRID_TAG,
    ChunkIndex,
    ChunkPolicy,
    DynamicGridPayload,
    Entity,
    EntityPayload,
    File,
    Folder,
    GridOffset,
    Quaternion,
    ReplicationPattern,
    Vector3,
    merge_overlays,
    nest,
    payload_from_tag,
    walk_files,
)

# Errors
from worldpatch.errors import (
    InvariantViolationError,
    IoFailureError,
    NotFoundError,
    OverlayConflictError,
    PipelineStateError,
    SchemaMismatchError,
    WorldPatchError,
)

# Patching
from worldpatch.patching import (
    Duplicate,
    DuplicationEngine,
    GridLinker,
    PatchAssembler,
    PatchReport,
    PipelineState,
    WorldPatcher,
)

# Storage
from worldpatch.storage import (
    ChunkIndexTable,
    EntitySchema,
    GlobalMetadata,
    LocalStore,
    MsgpackRecordCodec,
    PersistentIndexAllocator,
    RecordCodec,
    StoreReader,
    StoreWriter,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "ChunkIndex",
    "Vector3",
    "Quaternion",
    "Entity",
    "EntityPayload",
    "DynamicGridPayload",
    "DYNAMIC_GRID_TAG",
    "payload_from_tag",
    "ReplicationPattern",
    "GridOffset",
    "ChunkPolicy",
    "File",
    "Folder",
    "merge_overlays",
    "nest",
    "walk_files",
    # Errors
    "WorldPatchError",
    "NotFoundError",
    "SchemaMismatchError",
    "InvariantViolationError",
    "IoFailureError",
    "OverlayConflictError",
    "PipelineStateError",
    # Storage
    "StoreReader",
    "StoreWriter",
    "RecordCodec",
    "LocalStore",
    "PersistentIndexAllocator",
    "ChunkIndexTable",
    "EntitySchema",
    "GlobalMetadata",
    "MsgpackRecordCodec",
    # Patching
    "Duplicate",
    "DuplicationEngine",
    "GridLinker",
    "PatchAssembler",
    "PatchReport",
    "PipelineState",
    "WorldPatcher",
]
