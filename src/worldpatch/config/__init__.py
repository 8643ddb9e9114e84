"""Configuration module using Pydantic Settings.

Provides typed configuration for patch runs with environment variable support.

Usage:
    from worldpatch.config import PatchSettings

    settings = PatchSettings(columns=4, rows=4, step=200.0)
"""

from worldpatch.config.settings import PatchSettings, default_worlds_dir

__all__ = [
    "PatchSettings",
    "default_worlds_dir",
]
