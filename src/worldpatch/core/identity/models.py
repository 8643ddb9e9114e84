"""Spatial value types.

Usage:
    chunk = ChunkIndex(0, -1, 2)
    moved = Vector3(10.0, 0.0, 5.0) + Vector3(200.0, 0.0, 0.0)
    ChunkIndex.containing(moved, chunk_size=2048.0)
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Vector3:
    """World-space location in engine units."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Vector3) -> Vector3:
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True, slots=True)
class Quaternion:
    """Rotation as a unit quaternion. Defaults to identity."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.z, self.w)


@dataclass(frozen=True, slots=True, order=True)
class ChunkIndex:
    """Key of a coarse spatial cell grouping entities.

    Renders as ``x_y_z``, which is also the stem of the chunk's file name.
    """

    x: int = 0
    y: int = 0
    z: int = 0

    def __str__(self) -> str:
        return f"{self.x}_{self.y}_{self.z}"

    @classmethod
    def containing(cls, location: Vector3, chunk_size: float) -> ChunkIndex:
        """Chunk whose cell contains the given location."""
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        return cls(
            math.floor(location.x / chunk_size),
            math.floor(location.y / chunk_size),
            math.floor(location.z / chunk_size),
        )
