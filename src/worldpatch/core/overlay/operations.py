"""Overlay tree operations: nesting, merging and walking."""

from __future__ import annotations

from collections.abc import Iterator

from worldpatch.core.layout import StorePath, format_path
from worldpatch.core.overlay.models import File, Folder, OverlayNode
from worldpatch.errors import OverlayConflictError


def nest(path: StorePath, node: OverlayNode) -> Folder:
    """Wrap a node in folders so it sits at path below the returned root.

    Raises:
        ValueError: If path is empty.
    """
    if not path:
        raise ValueError("Cannot nest a node at an empty path")
    for segment in reversed(path[1:]):
        node = Folder({segment: node})
    return Folder({path[0]: node})


def merge_overlays(base: Folder, patch: Folder, _prefix: StorePath = ()) -> Folder:
    """Merge patch onto base, returning a new tree.

    Folders merge recursively, a file in patch replaces the file in base and
    paths absent from patch are kept from base unchanged.

    Raises:
        OverlayConflictError: If a path is a file on one side and a folder on the other.
    """
    children: dict[str, OverlayNode] = dict(base.children)
    for name, incoming in patch.children.items():
        existing = children.get(name)
        path = (*_prefix, name)
        if existing is None:
            children[name] = incoming
        elif isinstance(existing, Folder) and isinstance(incoming, Folder):
            children[name] = merge_overlays(existing, incoming, path)
        elif isinstance(existing, File) and isinstance(incoming, File):
            children[name] = incoming
        else:
            raise OverlayConflictError(
                f"Overlay path '{format_path(path)}' is both a file and a folder"
            )
    return Folder(children)


def walk_files(folder: Folder, _prefix: StorePath = ()) -> Iterator[tuple[StorePath, bytes]]:
    """Yield (path, data) for every file below folder, depth first."""
    for name, node in folder.children.items():
        path = (*_prefix, name)
        if isinstance(node, Folder):
            yield from walk_files(node, path)
        else:
            yield path, node.data
