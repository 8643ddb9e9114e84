"""Spatial identity value types: chunk keys and vectors."""

from worldpatch.core.identity.models import ChunkIndex, Quaternion, Vector3

__all__ = [
    "ChunkIndex",
    "Quaternion",
    "Vector3",
]
