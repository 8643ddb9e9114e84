"""Duplicate every entity of a saved world into a grid and save it as a new world.

Worlds are resolved in the game's saved-worlds folder (override with
WORLDPATCH_WORLDS_DIR); the pattern comes from WORLDPATCH_COLUMNS, _ROWS and _STEP.
"""

import logging

from worldpatch import WorldPatcher
from worldpatch.config import PatchSettings

SOURCE = "Monastery"
TARGET = "Monastery_V5"


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = PatchSettings()

    patcher = WorldPatcher.from_settings(settings, SOURCE)
    report = patcher.duplicate_entities()
    patcher.save_as(settings.world_path(TARGET))

    print(
        f"Saved {TARGET} to {settings.worlds_dir}: {report.originals} originals, "
        f"{report.duplicates_created} duplicates, {report.grids_linked} grid copies"
    )


if __name__ == "__main__":
    main()
