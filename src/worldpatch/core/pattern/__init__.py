"""Replication geometry and chunk placement policy."""

from worldpatch.core.pattern.models import ChunkPolicy, GridOffset, ReplicationPattern

__all__ = [
    "ChunkPolicy",
    "GridOffset",
    "ReplicationPattern",
]
