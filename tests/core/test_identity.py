"""Tests for spatial identity types."""

import pytest

from worldpatch.core.identity import ChunkIndex, Vector3


def test_chunk_index_renders_as_file_stem():
    assert str(ChunkIndex(1, -2, 3)) == "1_-2_3"


def test_containing_floors_negative_coordinates():
    """Locations just below zero belong to chunk -1, not 0."""
    chunk = ChunkIndex.containing(Vector3(-0.5, 2047.9, 2048.0), chunk_size=2048.0)
    assert chunk == ChunkIndex(-1, 0, 1)


def test_containing_requires_positive_chunk_size():
    with pytest.raises(ValueError, match="chunk_size"):
        ChunkIndex.containing(Vector3(), chunk_size=0)


def test_vector_addition_is_componentwise():
    assert Vector3(1.0, 2.0, 3.0) + Vector3(200.0, 0.0, -3.0) == Vector3(201.0, 2.0, 0.0)


def test_chunk_indices_sort_by_axis():
    chunks = [ChunkIndex(1, 0, 0), ChunkIndex(0, 5, 0), ChunkIndex(0, 0, 9)]
    assert sorted(chunks) == [ChunkIndex(0, 0, 9), ChunkIndex(0, 5, 0), ChunkIndex(1, 0, 0)]
