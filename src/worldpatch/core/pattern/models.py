"""Replication pattern models.

Usage:
    pattern = ReplicationPattern(columns=2, rows=2, step=200.0)
    for offset in pattern.offsets():
        ...  # (1, 0), (0, 1), (1, 1): origin excluded
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from worldpatch.core.identity import Vector3


class ChunkPolicy(Enum):
    """Where duplicates are filed relative to chunk boundaries."""

    KEEP_SOURCE_CHUNK = "keep_source_chunk"
    """Duplicates stay in their source's chunk, wherever they end up."""

    REBUCKET_BY_POSITION = "rebucket_by_position"
    """Duplicates move to the chunk containing their translated location."""


@dataclass(frozen=True, slots=True)
class GridOffset:
    """One cell of a replication pattern."""

    column: int
    row: int

    @property
    def is_origin(self) -> bool:
        return self.column == 0 and self.row == 0


@dataclass(frozen=True, slots=True)
class ReplicationPattern:
    """Rectangular grid of copies spaced by a fixed step on the X and Y axes.

    Cell (0, 0) is always the original entity and is never duplicated, so a
    pattern yields columns * rows - 1 duplicates per source.

    Attributes:
        columns: Number of cells along X (>= 1).
        rows: Number of cells along Y (>= 1).
        step: Distance between neighbouring cells in world units.
    """

    columns: int = 2
    rows: int = 2
    step: float = 200.0

    def __post_init__(self) -> None:
        if self.columns < 1 or self.rows < 1:
            raise ValueError(
                f"Pattern needs at least one column and row, got {self.columns}x{self.rows}"
            )

    @property
    def cell_count(self) -> int:
        return self.columns * self.rows

    @property
    def duplicates_per_source(self) -> int:
        return self.cell_count - 1

    def offsets(self) -> Iterator[GridOffset]:
        """Yield every non-origin cell in row-major order."""
        for row in range(self.rows):
            for column in range(self.columns):
                offset = GridOffset(column, row)
                if not offset.is_origin:
                    yield offset

    def translation(self, offset: GridOffset) -> Vector3:
        """World-space translation of a cell relative to the origin."""
        return Vector3(self.step * offset.column, self.step * offset.row, 0.0)
