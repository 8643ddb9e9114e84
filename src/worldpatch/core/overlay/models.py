"""Overlay tree nodes.

An overlay mirrors the directory layout of a store. Folders map names to
child nodes and files hold raw bytes; a path is one or the other, never both.
Nodes are treated as immutable once built, so one subtree may be referenced
from several places in a tree.

Usage:
    overlay = Folder.from_mapping({"World": {"0": {"readme.txt": b"hi"}}})
    merged = base.with_patch(overlay)
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class File:
    """Leaf node holding raw bytes."""

    data: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.data, (bytes, bytearray, memoryview)):
            raise TypeError(f"File data must be bytes, got {type(self.data).__name__}")
        object.__setattr__(self, "data", bytes(self.data))


@dataclass(frozen=True, slots=True)
class Folder:
    """Branch node mapping child names to nodes, in insertion order."""

    children: dict[str, OverlayNode] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name, node in self.children.items():
            if not name or "/" in name:
                raise ValueError(f"Invalid overlay segment name {name!r}")
            if not isinstance(node, (File, Folder)):
                raise TypeError(
                    f"Overlay child {name!r} must be File or Folder, got {type(node).__name__}"
                )

    def __getitem__(self, name: str) -> OverlayNode:
        return self.children[name]

    def __contains__(self, name: object) -> bool:
        return name in self.children

    def __iter__(self) -> Iterator[str]:
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)

    def is_empty(self) -> bool:
        """True if the folder has no children at all."""
        return not self.children

    def get(self, path: tuple[str, ...]) -> OverlayNode | None:
        """Node at a path relative to this folder, or None if absent."""
        node: OverlayNode = self
        for segment in path:
            if not isinstance(node, Folder) or segment not in node.children:
                return None
            node = node.children[segment]
        return node

    def with_patch(self, patch: Folder) -> Folder:
        """New folder with patch merged on top. See merge_overlays()."""
        from worldpatch.core.overlay.operations import merge_overlays

        return merge_overlays(self, patch)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Folder:
        """Build a tree from nested mappings; bytes values become files."""
        children: dict[str, OverlayNode] = {}
        for name, value in mapping.items():
            if isinstance(value, (File, Folder)):
                children[name] = value
            elif isinstance(value, Mapping):
                children[name] = cls.from_mapping(value)
            elif isinstance(value, (bytes, bytearray, memoryview)):
                children[name] = File(bytes(value))
            else:
                raise TypeError(
                    f"Cannot build overlay node {name!r} from {type(value).__name__}"
                )
        return cls(children)

    def to_mapping(self) -> dict[str, Any]:
        """Inverse of from_mapping()."""
        return {
            name: node.to_mapping() if isinstance(node, Folder) else node.data
            for name, node in self.children.items()
        }


OverlayNode = File | Folder
