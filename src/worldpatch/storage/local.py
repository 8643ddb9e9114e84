"""Directory-backed world store.

Each overlay folder is a directory and each file is a regular file, so a store
can be inspected with ordinary tools. Suitable for tests and for worlds that
fit on local disk.

Usage:
    base = LocalStore.open("worlds/Monastery")
    target = LocalStore.create("worlds/Monastery_V5")
    target.write("Update", base.to_overlay().with_patch(patch))
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from worldpatch.core.entity import Entity
from worldpatch.core.identity import ChunkIndex
from worldpatch.core.layout import (
    CHUNK_INDEX_PATH,
    ENTITY_SCHEMA_PATH,
    GLOBAL_DATA_PATH,
    REVISIONS_PATH,
    StorePath,
    chunk_path,
    format_path,
)
from worldpatch.core.overlay import File, Folder, OverlayNode, walk_files
from worldpatch.errors import IoFailureError, NotFoundError
from worldpatch.storage.codec import (
    ChunkIndexTable,
    EntitySchema,
    GlobalMetadata,
    MsgpackRecordCodec,
    pack,
    unpack,
)

logger = logging.getLogger(__name__)


class LocalStore:
    """World store kept in a directory tree.

    Implements both StoreReader and StoreWriter. Metadata records are read once
    and cached; chunk and subtree reads always go to disk.

    Args:
        root: Store directory. Use open() or create() rather than calling directly.
    """

    def __init__(self, root: Path):
        self._root = Path(root)
        self._global_data: GlobalMetadata | None = None
        self._schema: EntitySchema | None = None
        self._codec: MsgpackRecordCodec | None = None

    @classmethod
    def open(cls, path: str | os.PathLike[str]) -> LocalStore:
        """Open an existing store for reading.

        Raises:
            NotFoundError: If path is not an existing directory.
        """
        root = Path(path)
        if not root.is_dir():
            raise NotFoundError(f"Store does not exist: {root}")
        logger.info("Opened store %s", root)
        return cls(root)

    @classmethod
    def create(cls, path: str | os.PathLike[str], overwrite: bool = True) -> LocalStore:
        """Create an empty store, replacing an existing one when overwrite is set.

        Raises:
            IoFailureError: If the path exists and overwrite is False, or on OS errors.
        """
        root = Path(path)
        try:
            if root.exists():
                if not overwrite:
                    raise IoFailureError(f"Store already exists: {root}")
                logger.info("Removing existing store %s", root)
                if root.is_dir():
                    shutil.rmtree(root)
                else:
                    root.unlink()
            root.mkdir(parents=True)
        except OSError as e:
            raise IoFailureError(f"Cannot create store {root}: {e}") from e
        return cls(root)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: StorePath) -> Path:
        return self._root.joinpath(*path)

    def read_file(self, path: StorePath) -> bytes:
        """Raw bytes of one file in the store.

        Raises:
            NotFoundError: If the file does not exist.
            IoFailureError: If reading fails.
        """
        target = self._resolve(path)
        if not target.is_file():
            raise NotFoundError(f"No file '{format_path(path)}' in store {self._root}")
        try:
            return target.read_bytes()
        except OSError as e:
            raise IoFailureError(f"Cannot read '{format_path(path)}': {e}") from e

    def global_metadata(self) -> GlobalMetadata:
        if self._global_data is None:
            self._global_data = GlobalMetadata.from_bytes(self.read_file(GLOBAL_DATA_PATH))
        return self._global_data

    def entity_schema(self) -> EntitySchema:
        if self._schema is None:
            self._schema = EntitySchema.from_bytes(self.read_file(ENTITY_SCHEMA_PATH))
        return self._schema

    def codec(self) -> MsgpackRecordCodec:
        """Record codec bound to this store's global metadata."""
        if self._codec is None:
            self._codec = MsgpackRecordCodec(self.global_metadata())
        return self._codec

    def chunk_index_table(self) -> ChunkIndexTable:
        return ChunkIndexTable.from_bytes(self.read_file(CHUNK_INDEX_PATH))

    def chunk_entities(self, chunk: ChunkIndex) -> list[Entity]:
        data = self.read_file(chunk_path(chunk))
        return self.codec().decode(self.entity_schema(), data)

    def subtree(self, path: StorePath) -> Folder:
        target = self._resolve(path)
        if not target.is_dir():
            raise NotFoundError(f"No folder '{format_path(path)}' in store {self._root}")
        try:
            return self._read_folder(target)
        except OSError as e:
            raise IoFailureError(f"Cannot read '{format_path(path)}': {e}") from e

    def _read_folder(self, directory: Path) -> Folder:
        children: dict[str, OverlayNode] = {}
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if entry.is_dir():
                children[entry.name] = self._read_folder(entry)
            elif entry.is_file():
                children[entry.name] = File(entry.read_bytes())
        return Folder(children)

    def to_overlay(self) -> Folder:
        return self.subtree(())

    def revisions(self) -> list[str]:
        """Labels of every write applied to this store, oldest first."""
        if not self._resolve(REVISIONS_PATH).is_file():
            return []
        return [entry["label"] for entry in unpack(self.read_file(REVISIONS_PATH), "revision log")]

    def write(self, label: str, overlay: Folder) -> None:
        """Write every file of overlay into the store and log the revision.

        Each file is written to a temporary name and moved into place, so a
        reader never sees a half-written file.

        Raises:
            IoFailureError: If any write fails.
        """
        history: list[dict[str, object]] = []
        if self._resolve(REVISIONS_PATH).is_file():
            history = unpack(self.read_file(REVISIONS_PATH), "revision log")

        count = 0
        for path, data in walk_files(overlay):
            if path == REVISIONS_PATH:
                history = unpack(data, "revision log")
                continue
            self._write_file(path, data)
            count += 1

        history.append({"label": label, "files": count})
        self._write_file(REVISIONS_PATH, pack(history))
        # Metadata may have been replaced by this write.
        self._global_data = None
        self._schema = None
        self._codec = None
        logger.info("Wrote revision %r with %d files to %s", label, count, self._root)

    def _write_file(self, path: StorePath, data: bytes) -> None:
        target = self._resolve(path)
        staging = target.with_name(target.name + ".partial")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            staging.write_bytes(data)
            os.replace(staging, target)
        except OSError as e:
            raise IoFailureError(f"Cannot write '{format_path(path)}': {e}") from e
