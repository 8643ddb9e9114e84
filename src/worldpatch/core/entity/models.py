"""Entity records and payload variants.

Payloads form a closed set: the structural tag decides the variant once, in
payload_from_tag(), and everything downstream asks the variant what it owns
instead of comparing tag strings again.

Usage:
    payload = payload_from_tag("Entity_DynamicBrickGrid", {"name": "Door"})
    entity = Entity(persistent_id=7, location=Vector3(0, 0, 10), payload=payload)
    entity.owned_subtree()  # ("World", "0", "Bricks", "Grids", "7")
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any

from worldpatch.core.identity import Quaternion, Vector3
from worldpatch.core.layout import StorePath, grid_path

DYNAMIC_GRID_TAG = "Entity_DynamicBrickGrid"
"""Structural tag of entities owning a dynamic brick grid subtree."""


@dataclass(frozen=True, slots=True)
class EntityPayload:
    """Opaque schema-typed payload identified by its structural tag.

    Attributes:
        tag: Struct name of the payload in the world's global metadata.
        data: Field values, treated as opaque and copied verbatim.
    """

    tag: str
    data: dict[str, Any] = field(default_factory=dict)

    def owns_subtree(self, persistent_id: int) -> StorePath | None:
        """Path of the subtree this payload owns for the given identity, if any."""
        return None


@dataclass(frozen=True, slots=True)
class DynamicGridPayload(EntityPayload):
    """Payload of an entity that owns a dynamic grid keyed by its identity."""

    tag: str = DYNAMIC_GRID_TAG

    def owns_subtree(self, persistent_id: int) -> StorePath | None:
        return grid_path(persistent_id)


def payload_from_tag(tag: str, data: dict[str, Any] | None = None) -> EntityPayload:
    """Build the payload variant matching a structural tag."""
    if tag == DYNAMIC_GRID_TAG:
        return DynamicGridPayload(tag=tag, data=dict(data or {}))
    return EntityPayload(tag=tag, data=dict(data or {}))


@dataclass(slots=True)
class Entity:
    """One persisted (or transient) world entity.

    persistent_id is None for transient entities that were never persisted;
    those cannot be duplicated.
    """

    persistent_id: int | None
    location: Vector3 = field(default_factory=Vector3)
    frozen: bool = False
    payload: EntityPayload = field(default_factory=lambda: EntityPayload(tag="Entity"))
    rotation: Quaternion = field(default_factory=Quaternion)

    @property
    def tag(self) -> str:
        return self.payload.tag

    def owned_subtree(self) -> StorePath | None:
        """Subtree path owned by this entity, or None.

        Transient entities own nothing since subtrees are keyed by identity.
        """
        if self.persistent_id is None:
            return None
        return self.payload.owns_subtree(self.persistent_id)

    def clone(self, **changes: Any) -> Entity:
        """Independent value copy with optional field overrides.

        The payload data is deep-copied so the clone never aliases the source.
        """
        payload = replace(self.payload, data=copy.deepcopy(self.payload.data))
        return replace(self, payload=payload, **changes)
