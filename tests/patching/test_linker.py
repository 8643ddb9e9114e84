"""Tests for grid subtree linking.

Critical Invariants:
- Every duplicate of a grid owner gets its own entry under its own identity
- Subtree content is copied verbatim
"""

import pytest

from worldpatch.core.pattern import ReplicationPattern
from worldpatch.errors import InvariantViolationError, NotFoundError
from worldpatch.patching.engine import Duplicate, DuplicationEngine
from worldpatch.patching.linker import GridLinker
from worldpatch.storage.allocator import PersistentIndexAllocator


@pytest.fixture
def engine():
    return DuplicationEngine(PersistentIndexAllocator(next_index=8), ReplicationPattern())


def test_grid_owner_entry_per_identity(make_world, engine, entity, grid, origin_chunk):
    owner = entity(7, grid=True)
    store = make_world({origin_chunk: [owner]}, grids={7: grid()})
    linker = GridLinker(store)

    linked = linker.link(owner, engine.duplicate(owner))

    assert linked == 3
    assert sorted(linker.entries) == [7, 8, 9, 10]
    assert all(subtree == grid() for subtree in linker.entries.values())


def test_non_owner_links_nothing(make_world, engine, entity, origin_chunk):
    plain = entity(7)
    store = make_world({origin_chunk: [plain]})
    linker = GridLinker(store)

    assert linker.link(plain, engine.duplicate(plain)) == 0
    assert linker.entries == {}


def test_missing_owned_subtree_is_not_found(make_world, engine, entity, origin_chunk):
    owner = entity(7, grid=True)
    store = make_world({origin_chunk: [owner]})

    with pytest.raises(NotFoundError):
        GridLinker(store).link(owner, engine.duplicate(owner))


def test_duplicates_from_another_source_are_rejected(make_world, engine, entity, grid, origin_chunk):
    owner = entity(7, grid=True)
    other = entity(3, grid=True)
    store = make_world({origin_chunk: [other, owner]}, grids={7: grid(), 3: grid()})

    with pytest.raises(InvariantViolationError, match="copied from 3"):
        GridLinker(store).link(owner, engine.duplicate(other))


def test_duplicate_without_identity_is_rejected(make_world, engine, entity, grid, origin_chunk):
    owner = entity(7, grid=True)
    store = make_world({origin_chunk: [owner]}, grids={7: grid()})
    first, *rest = engine.duplicate(owner)
    stripped = Duplicate(first.source_id, first.offset, first.entity.clone(persistent_id=None))

    with pytest.raises(InvariantViolationError, match="has no identity"):
        GridLinker(store).link(owner, [stripped, *rest])


def test_same_duplicate_filed_twice_is_rejected(make_world, engine, entity, grid, origin_chunk):
    owner = entity(7, grid=True)
    store = make_world({origin_chunk: [owner]}, grids={7: grid()})
    linker = GridLinker(store)
    duplicates = engine.duplicate(owner)
    linker.link(owner, duplicates)

    with pytest.raises(InvariantViolationError, match="filed twice"):
        linker.link(owner, duplicates)


def test_drain_empties_entries(make_world, engine, entity, grid, origin_chunk):
    owner = entity(7, grid=True)
    store = make_world({origin_chunk: [owner]}, grids={7: grid()})
    linker = GridLinker(store)
    linker.link(owner, engine.duplicate(owner))

    drained = linker.drain()

    assert len(drained) == 4
    assert linker.entries == {}
