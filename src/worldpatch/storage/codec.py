"""Columnar chunk codec and store metadata records.

Entities of one chunk are stored as a structure of arrays: one list per field,
all of equal length, sharing one EntitySchema. Payload tags are stored as
indices into the world's GlobalMetadata type table. Every record is encoded with
msgpack.

Usage:
    chunk = ColumnarChunk()
    chunk.add_entity(global_data, entity, entity.persistent_id)
    data = chunk.to_bytes(schema)
    ColumnarChunk.from_bytes(schema, data).entities(global_data)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import msgpack

from worldpatch.core.entity import DYNAMIC_GRID_TAG, Entity, payload_from_tag
from worldpatch.core.identity import ChunkIndex, Quaternion, Vector3
from worldpatch.errors import SchemaMismatchError

CHUNK_COLUMNS: tuple[str, ...] = (
    "persistent_ids",
    "type_indices",
    "location_x",
    "location_y",
    "location_z",
    "rotation",
    "frozen",
    "payload_data",
)


def pack(obj: Any) -> bytes:
    """Encode a plain value with msgpack."""
    try:
        return msgpack.packb(obj, use_bin_type=True)
    except (TypeError, ValueError, OverflowError) as e:
        raise SchemaMismatchError(f"Value cannot be encoded: {e}") from e


def unpack(data: bytes, what: str) -> Any:
    """Decode msgpack bytes, naming the record in the error."""
    try:
        return msgpack.unpackb(data, raw=False)
    except (ValueError, msgpack.UnpackException) as e:
        raise SchemaMismatchError(f"Corrupt {what}: {e}") from e


def _require_map(value: Any, keys: Iterable[str], what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise SchemaMismatchError(f"Corrupt {what}: expected a map, got {type(value).__name__}")
    missing = [k for k in keys if k not in value]
    if missing:
        raise SchemaMismatchError(f"Corrupt {what}: missing {', '.join(missing)}")
    return value


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_columns(schema: EntitySchema) -> None:
    if tuple(schema.fields) != CHUNK_COLUMNS:
        raise SchemaMismatchError(
            f"Schema {schema.name} v{schema.version} declares {list(schema.fields)}, "
            f"chunk codec handles {list(CHUNK_COLUMNS)}"
        )


@dataclass(frozen=True, slots=True)
class EntitySchema:
    """Declared layout of an entity chunk."""

    name: str = "EntityChunkSoA"
    version: int = 1
    fields: tuple[str, ...] = CHUNK_COLUMNS

    def to_bytes(self) -> bytes:
        return pack({"name": self.name, "version": self.version, "fields": list(self.fields)})

    @classmethod
    def from_bytes(cls, data: bytes) -> EntitySchema:
        raw = _require_map(unpack(data, "entity schema"), ("name", "version", "fields"), "entity schema")
        return cls(name=raw["name"], version=raw["version"], fields=tuple(raw["fields"]))


@dataclass(frozen=True, slots=True)
class GlobalMetadata:
    """World-wide tables shared by every chunk.

    Attributes:
        entity_type_names: Structural tags known to this world, indexed by
            the type indices stored in chunks.
    """

    entity_type_names: tuple[str, ...] = ("Entity", DYNAMIC_GRID_TAG)

    def type_index(self, tag: str) -> int:
        """Index of a payload tag in the type table.

        Raises:
            SchemaMismatchError: If the tag is not declared by this world.
        """
        try:
            return self.entity_type_names.index(tag)
        except ValueError:
            raise SchemaMismatchError(f"Unknown entity type {tag!r}") from None

    def type_name(self, index: int) -> str:
        """Payload tag stored at a type index.

        Raises:
            SchemaMismatchError: If the index is outside the type table.
        """
        if not 0 <= index < len(self.entity_type_names):
            raise SchemaMismatchError(
                f"Entity type index {index} outside table of {len(self.entity_type_names)}"
            )
        return self.entity_type_names[index]

    def to_bytes(self) -> bytes:
        return pack({"entity_type_names": list(self.entity_type_names)})

    @classmethod
    def from_bytes(cls, data: bytes) -> GlobalMetadata:
        raw = _require_map(unpack(data, "global metadata"), ("entity_type_names",), "global metadata")
        return cls(entity_type_names=tuple(raw["entity_type_names"]))


@dataclass(slots=True)
class ChunkIndexTable:
    """Every known chunk with its entity count, plus the world's identity counter.

    Attributes:
        next_persistent_index: Next identity to issue, unique across the world.
        chunk_counts: Entity count per chunk, in the order chunks were recorded.
    """

    next_persistent_index: int = 0
    chunk_counts: dict[ChunkIndex, int] = field(default_factory=dict)

    @property
    def chunks(self) -> list[ChunkIndex]:
        return list(self.chunk_counts)

    def total_entities(self) -> int:
        return sum(self.chunk_counts.values())

    def to_bytes(self) -> bytes:
        return pack(
            {
                "next_persistent_index": self.next_persistent_index,
                "chunks": [[c.x, c.y, c.z, n] for c, n in self.chunk_counts.items()],
            }
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> ChunkIndexTable:
        raw = _require_map(
            unpack(data, "chunk index table"), ("next_persistent_index", "chunks"), "chunk index table"
        )
        try:
            counts = {ChunkIndex(x, y, z): n for x, y, z, n in raw["chunks"]}
        except (TypeError, ValueError) as e:
            raise SchemaMismatchError(f"Corrupt chunk index table: {e}") from e
        return cls(next_persistent_index=raw["next_persistent_index"], chunk_counts=counts)


@dataclass(slots=True)
class ColumnarChunk:
    """Structure-of-arrays form of one chunk's entities."""

    persistent_ids: list[int | None] = field(default_factory=list)
    type_indices: list[int] = field(default_factory=list)
    location_x: list[float] = field(default_factory=list)
    location_y: list[float] = field(default_factory=list)
    location_z: list[float] = field(default_factory=list)
    rotation: list[list[float]] = field(default_factory=list)
    frozen: list[bool] = field(default_factory=list)
    payload_data: list[dict[str, Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.persistent_ids)

    def add_entity(
        self, global_data: GlobalMetadata, entity: Entity, persistent_id: int | None
    ) -> None:
        """Append one entity as a row, stored under the given identity.

        Raises:
            SchemaMismatchError: If the entity's payload tag is not in global_data.
        """
        type_index = global_data.type_index(entity.tag)
        self.persistent_ids.append(persistent_id)
        self.type_indices.append(type_index)
        self.location_x.append(float(entity.location.x))
        self.location_y.append(float(entity.location.y))
        self.location_z.append(float(entity.location.z))
        self.rotation.append(list(entity.rotation.as_tuple()))
        self.frozen.append(bool(entity.frozen))
        self.payload_data.append(entity.payload.data)

    def entities(self, global_data: GlobalMetadata) -> list[Entity]:
        """Rebuild entity values from the columns.

        Raises:
            SchemaMismatchError: If a row holds values of the wrong shape or type.
        """
        result: list[Entity] = []
        for i, persistent_id in enumerate(self.persistent_ids):
            try:
                result.append(self._row(global_data, i, persistent_id))
            except (TypeError, ValueError) as e:
                raise SchemaMismatchError(f"Corrupt entity chunk row {i}: {e}") from e
        return result

    def _row(self, global_data: GlobalMetadata, i: int, persistent_id: int | None) -> Entity:
        if persistent_id is not None and not _is_int(persistent_id):
            raise TypeError(f"persistent id must be an integer, got {persistent_id!r}")
        type_index = self.type_indices[i]
        if not _is_int(type_index):
            raise TypeError(f"type index must be an integer, got {type_index!r}")
        rotation = self.rotation[i]
        if not isinstance(rotation, list) or len(rotation) != 4:
            raise ValueError(f"rotation must hold 4 numbers, got {rotation!r}")
        location = (self.location_x[i], self.location_y[i], self.location_z[i])
        if not all(_is_number(v) for v in (*rotation, *location)):
            raise TypeError(f"location and rotation must be numbers, got {location}, {rotation}")
        if not isinstance(self.frozen[i], bool):
            raise TypeError(f"frozen flag must be a boolean, got {self.frozen[i]!r}")
        if not isinstance(self.payload_data[i], dict):
            raise TypeError(f"payload data must be a map, got {type(self.payload_data[i]).__name__}")

        return Entity(
            persistent_id=persistent_id,
            location=Vector3(*location),
            frozen=self.frozen[i],
            payload=payload_from_tag(global_data.type_name(type_index), self.payload_data[i]),
            rotation=Quaternion(*rotation),
        )

    def to_bytes(self, schema: EntitySchema) -> bytes:
        """Encode under the given schema.

        Raises:
            SchemaMismatchError: If the schema declares other columns than this chunk has.
        """
        _check_columns(schema)
        return pack(
            {
                "schema": schema.name,
                "version": schema.version,
                "columns": {name: getattr(self, name) for name in CHUNK_COLUMNS},
            }
        )

    @classmethod
    def from_bytes(cls, schema: EntitySchema, data: bytes) -> ColumnarChunk:
        """Decode bytes written by to_bytes() under the same schema.

        Raises:
            SchemaMismatchError: If the bytes are corrupt or were written under another schema.
        """
        _check_columns(schema)
        raw = _require_map(unpack(data, "entity chunk"), ("schema", "version", "columns"), "entity chunk")
        if raw["schema"] != schema.name or raw["version"] != schema.version:
            raise SchemaMismatchError(
                f"Chunk encoded as {raw['schema']} v{raw['version']}, "
                f"expected {schema.name} v{schema.version}"
            )
        columns = _require_map(raw["columns"], CHUNK_COLUMNS, "entity chunk columns")
        not_lists = [name for name in CHUNK_COLUMNS if not isinstance(columns[name], list)]
        if not_lists:
            raise SchemaMismatchError(f"Entity chunk columns are not arrays: {', '.join(not_lists)}")
        lengths = {len(columns[name]) for name in CHUNK_COLUMNS}
        if len(lengths) > 1:
            raise SchemaMismatchError(f"Entity chunk columns have unequal lengths {sorted(lengths)}")
        return cls(**{name: list(columns[name]) for name in CHUNK_COLUMNS})


class MsgpackRecordCodec:
    """Record codec converting entity lists to and from chunk bytes.

    Args:
        global_data: Type table used to resolve payload tags.
    """

    def __init__(self, global_data: GlobalMetadata):
        self._global_data = global_data

    @property
    def global_data(self) -> GlobalMetadata:
        return self._global_data

    def encode(self, schema: EntitySchema, entities: Iterable[Entity]) -> bytes:
        """Encode entities, each under its own persistent identity."""
        chunk = ColumnarChunk()
        for entity in entities:
            chunk.add_entity(self._global_data, entity, entity.persistent_id)
        return chunk.to_bytes(schema)

    def decode(self, schema: EntitySchema, data: bytes) -> list[Entity]:
        return ColumnarChunk.from_bytes(schema, data).entities(self._global_data)
