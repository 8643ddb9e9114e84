"""Grid association linker.

Entities whose payload owns a grid subtree need one copy of that subtree per
duplicate, filed under the duplicate's own identity. The source subtree is read
once per source and captured before duplicates are linked.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from worldpatch.core.entity import Entity
from worldpatch.core.layout import StorePath, grid_path
from worldpatch.core.overlay import Folder
from worldpatch.errors import InvariantViolationError
from worldpatch.patching.engine import Duplicate
from worldpatch.storage.protocol import StoreReader

logger = logging.getLogger(__name__)


class GridLinker:
    """Collects grid subtree entries for duplicated grid owners.

    Entries are keyed by persistent identity. The original's own subtree is
    filed as well, so every identity in a lineage has an entry in the patch.

    Args:
        store: Base store the owned subtrees are read from.
    """

    def __init__(self, store: StoreReader):
        self._store = store
        self._entries: dict[int, Folder] = {}

    @property
    def entries(self) -> dict[int, Folder]:
        """Grid subtrees collected so far, by owner identity."""
        return dict(self._entries)

    def capture(self, source: Entity) -> Folder | None:
        """Read the subtree owned by source, or None if it owns none.

        Raises:
            NotFoundError: If source owns a subtree that is missing from the store.
        """
        path: StorePath | None = source.owned_subtree()
        if path is None:
            return None
        return self._store.subtree(path)

    def link(self, source: Entity, duplicates: Sequence[Duplicate]) -> int:
        """Capture the source's subtree and file it for the source and every duplicate.

        Returns:
            Number of subtree entries filed for duplicates.

        Raises:
            InvariantViolationError: If a duplicate was not copied from source, or
                an identity already has an entry.
            NotFoundError: If the owned subtree is missing from the store.
        """
        return self.file_copies(source, duplicates, self.capture(source))

    def file_copies(
        self, source: Entity, duplicates: Sequence[Duplicate], subtree: Folder | None
    ) -> int:
        """File an already captured subtree for the source and every duplicate.

        Returns:
            Number of subtree entries filed for duplicates.

        Raises:
            InvariantViolationError: If a duplicate was not copied from source, or
                an identity already has an entry.
        """
        if subtree is None or source.persistent_id is None:
            return 0

        self._file(source.persistent_id, subtree, allow_existing=True)
        for dup in duplicates:
            if dup.source_id != source.persistent_id:
                raise InvariantViolationError(
                    f"Duplicate {dup.entity.persistent_id} was copied from {dup.source_id}, "
                    f"not {source.persistent_id}"
                )
            if dup.entity.persistent_id is None:
                raise InvariantViolationError(f"Duplicate of {source.persistent_id} has no identity")
            self._file(dup.entity.persistent_id, subtree)
        logger.debug(
            "Linked grid %s to %d duplicates", grid_path(source.persistent_id), len(duplicates)
        )
        return len(duplicates)

    def _file(self, persistent_id: int, subtree: Folder, allow_existing: bool = False) -> None:
        if persistent_id in self._entries and not allow_existing:
            raise InvariantViolationError(f"Grid subtree for identity {persistent_id} filed twice")
        self._entries[persistent_id] = subtree

    def drain(self) -> dict[int, Folder]:
        """Hand over all collected entries and forget them."""
        entries, self._entries = self._entries, {}
        return entries
