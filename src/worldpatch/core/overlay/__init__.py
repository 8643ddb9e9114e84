"""Patch overlays: sparse folder/file trees merged onto a store."""

from worldpatch.core.overlay.models import File, Folder, OverlayNode
from worldpatch.core.overlay.operations import merge_overlays, nest, walk_files

__all__ = [
    "File",
    "Folder",
    "OverlayNode",
    "merge_overlays",
    "nest",
    "walk_files",
]
