"""Error hierarchy for world patching.

Every fallible step raises one of these and lets it propagate; nothing in the
pipeline recovers locally. Callers can catch WorldPatchError to handle any failure.
"""

from __future__ import annotations


class WorldPatchError(Exception):
    """Base error for worldpatch."""

    pass


class NotFoundError(WorldPatchError):
    """Raised when a store, file or grid subtree path does not exist."""

    pass


class SchemaMismatchError(WorldPatchError):
    """Raised when a payload tag or encoded chunk does not match the declared schema."""

    pass


class InvariantViolationError(WorldPatchError):
    """Raised when an entity lacks a persistent identity or identities collide."""

    pass


class IoFailureError(WorldPatchError):
    """Raised when an underlying read or write fails."""

    pass


class OverlayConflictError(InvariantViolationError):
    """Raised when a file and a folder would occupy the same overlay path."""

    pass


class PipelineStateError(WorldPatchError):
    """Raised when a pipeline step is called in the wrong state."""

    pass
