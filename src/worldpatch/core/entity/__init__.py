"""Entity records and their schema-typed payload variants."""

from worldpatch.core.entity.models import (
    DYNAMIC_GRID_TAG,
    DynamicGridPayload,
    Entity,
    EntityPayload,
    payload_from_tag,
)

__all__ = [
    "DYNAMIC_GRID_TAG",
    "DynamicGridPayload",
    "Entity",
    "EntityPayload",
    "payload_from_tag",
]
