"""Tests for overlay trees.

Critical Invariants:
- A path is a file or a folder, never both
- Paths absent from a patch are inherited from the base
"""

import pytest

from worldpatch.core.overlay import File, Folder, merge_overlays, nest, walk_files
from worldpatch.errors import InvariantViolationError, OverlayConflictError


def test_from_mapping_builds_files_and_folders():
    overlay = Folder.from_mapping({"World": {"a.bin": b"1", "Sub": {}}})

    assert isinstance(overlay["World"], Folder)
    assert overlay.get(("World", "a.bin")) == File(b"1")
    assert overlay.get(("World", "Sub")) == Folder()


def test_to_mapping_inverts_from_mapping():
    mapping = {"World": {"a.bin": b"1", "Sub": {"b.bin": b"2"}}}
    assert Folder.from_mapping(mapping).to_mapping() == mapping


def test_from_mapping_rejects_other_values():
    with pytest.raises(TypeError, match="Cannot build overlay node"):
        Folder.from_mapping({"x": 3})


def test_folder_rejects_names_with_separators():
    with pytest.raises(ValueError, match="Invalid overlay segment"):
        Folder({"a/b": File(b"")})


def test_get_returns_none_for_missing_or_through_file():
    overlay = Folder.from_mapping({"a": b"1"})

    assert overlay.get(("missing",)) is None
    assert overlay.get(("a", "below-file")) is None


def test_nest_wraps_node_under_path():
    overlay = nest(("World", "0", "x.bin"), File(b"x"))

    assert overlay.to_mapping() == {"World": {"0": {"x.bin": b"x"}}}


def test_nest_requires_a_path():
    with pytest.raises(ValueError, match="empty path"):
        nest((), File(b""))


def test_merge_keeps_base_and_replaces_patched_files():
    base = Folder.from_mapping({"World": {"keep.bin": b"old", "swap.bin": b"old"}})
    patch = Folder.from_mapping({"World": {"swap.bin": b"new", "add.bin": b"new"}})

    merged = merge_overlays(base, patch)

    assert merged.to_mapping() == {
        "World": {"keep.bin": b"old", "swap.bin": b"new", "add.bin": b"new"}
    }
    # Inputs are left untouched
    assert base.get(("World", "swap.bin")) == File(b"old")


def test_merge_rejects_file_over_folder():
    base = Folder.from_mapping({"World": {"x": {"inner": b"1"}}})
    patch = Folder.from_mapping({"World": {"x": b"flat"}})

    with pytest.raises(OverlayConflictError, match="World/x"):
        merge_overlays(base, patch)


def test_conflict_is_an_invariant_violation():
    assert issubclass(OverlayConflictError, InvariantViolationError)


def test_with_patch_matches_merge():
    base = Folder.from_mapping({"a": b"1"})
    patch = Folder.from_mapping({"b": b"2"})

    assert base.with_patch(patch) == merge_overlays(base, patch)


def test_walk_files_yields_every_leaf_path():
    overlay = Folder.from_mapping({"a": {"b": b"1", "c": {"d": b"2"}}, "e": b"3"})

    assert dict(walk_files(overlay)) == {
        ("a", "b"): b"1",
        ("a", "c", "d"): b"2",
        ("e",): b"3",
    }


def test_empty_folder_is_empty():
    assert Folder().is_empty()
    assert not Folder.from_mapping({"a": b""}).is_empty()
