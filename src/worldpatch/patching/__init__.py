"""Patching services: duplication, grid linking, overlay assembly and the pipeline.

Architecture Note:
    patching/ holds the stateful services of one patch run. They consume the
    store and codec only through the protocols in storage/.
"""

from worldpatch.patching.assembler import PatchAssembler
from worldpatch.patching.engine import Duplicate, DuplicationEngine
from worldpatch.patching.linker import GridLinker
from worldpatch.patching.pipeline import (
    ChunkBuffer,
    PatchReport,
    PipelineState,
    WorldPatcher,
)

__all__ = [
    "Duplicate",
    "DuplicationEngine",
    "GridLinker",
    "PatchAssembler",
    "ChunkBuffer",
    "PatchReport",
    "PipelineState",
    "WorldPatcher",
]
