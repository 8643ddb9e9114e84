"""Core functionalities: stateless value types and tree primitives.

Architecture Note:
    core/ holds pure data types and functions with no runtime state.
    For stateful services (stores, allocator, pipeline), see storage/ and patching/.
"""

from worldpatch.core.entity import (
    DYNAMIC_GRID_TAG,
    DynamicGridPayload,
    Entity,
    EntityPayload,
    payload_from_tag,
)
from worldpatch.core.identity import ChunkIndex, Quaternion, Vector3
from worldpatch.core.overlay import File, Folder, OverlayNode, merge_overlays, nest, walk_files
from worldpatch.core.pattern import ChunkPolicy, GridOffset, ReplicationPattern

__all__ = [
    # Identity
    "ChunkIndex",
    "Vector3",
    "Quaternion",
    # Entity
    "Entity",
    "EntityPayload",
    "DynamicGridPayload",
    "DYNAMIC_GRID_TAG",
    "payload_from_tag",
    # Pattern
    "ReplicationPattern",
    "GridOffset",
    "ChunkPolicy",
    # Overlay
    "File",
    "Folder",
    "OverlayNode",
    "merge_overlays",
    "nest",
    "walk_files",
]
