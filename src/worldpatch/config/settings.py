"""Configuration settings using Pydantic Settings.

Provides typed configuration for host programs with environment variable support.

Usage:
    from worldpatch.config import PatchSettings

    # Load from environment variables (WORLDPATCH_*)
    settings = PatchSettings()

    # Or override with explicit values
    settings = PatchSettings(columns=4, rows=4)
    patcher = WorldPatcher.from_settings(settings, "Monastery")
"""

from __future__ import annotations

import os
from pathlib import Path

try:
    from pydantic import Field
    from pydantic_settings import BaseSettings, SettingsConfigDict
except ImportError as e:
    raise ImportError(
        "pydantic-settings is required for config module. "
        "Install with: pip install worldpatch[config]"
    ) from e

from worldpatch.core.pattern import ChunkPolicy, ReplicationPattern


def default_worlds_dir() -> Path:
    """Game's saved-worlds folder under LOCALAPPDATA, or ./worlds elsewhere."""
    local = os.environ.get("LOCALAPPDATA")
    if local:
        return Path(local) / "Brickadia" / "Saved" / "Worlds"
    return Path("worlds")


class PatchSettings(BaseSettings):  # type: ignore[misc]
    """Configuration for a world patch run.

    Attributes:
        worlds_dir: Folder world stores are resolved in.
        columns: Pattern cells along X.
        rows: Pattern cells along Y.
        step: Distance between pattern cells in world units.
        chunk_policy: Where duplicates are filed.
        chunk_size: Edge length of a chunk cell, for rebucketing.
        freeze_originals: Freeze originals (and so their copies).
        revision_label: Label of the revision written to the new store.

    Environment Variables:
        WORLDPATCH_WORLDS_DIR
        WORLDPATCH_COLUMNS
        WORLDPATCH_ROWS
        WORLDPATCH_STEP
        WORLDPATCH_CHUNK_POLICY
        WORLDPATCH_CHUNK_SIZE
        WORLDPATCH_FREEZE_ORIGINALS
        WORLDPATCH_REVISION_LABEL
    """

    model_config = SettingsConfigDict(
        env_prefix="WORLDPATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    worlds_dir: Path = Field(default_factory=default_worlds_dir)
    columns: int = Field(default=2, ge=1)
    rows: int = Field(default=2, ge=1)
    step: float = 200.0
    chunk_policy: ChunkPolicy = ChunkPolicy.KEEP_SOURCE_CHUNK
    chunk_size: float = Field(default=2048.0, gt=0)
    freeze_originals: bool = False
    revision_label: str = "Update"

    def pattern(self) -> ReplicationPattern:
        return ReplicationPattern(columns=self.columns, rows=self.rows, step=self.step)

    def world_path(self, filename: str) -> Path:
        """Path of a world store inside worlds_dir."""
        return self.worlds_dir / filename
