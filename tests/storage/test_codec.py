"""Tests for the columnar chunk codec and metadata records."""

import msgpack
import pytest

from worldpatch.core.entity import DynamicGridPayload, Entity, EntityPayload
from worldpatch.core.identity import ChunkIndex, Quaternion, Vector3
from worldpatch.errors import SchemaMismatchError
from worldpatch.storage.codec import (
    ChunkIndexTable,
    ColumnarChunk,
    EntitySchema,
    GlobalMetadata,
    MsgpackRecordCodec,
)


@pytest.fixture
def global_data():
    return GlobalMetadata()


@pytest.fixture
def codec(global_data):
    return MsgpackRecordCodec(global_data)


def test_add_entity_appends_one_row_per_column(global_data, entity):
    chunk = ColumnarChunk()

    chunk.add_entity(global_data, entity(3, x=1.0, y=2.0, z=3.0), 3)
    chunk.add_entity(global_data, entity(4, grid=True), 900)

    assert len(chunk) == 2
    assert chunk.persistent_ids == [3, 900]
    assert chunk.type_indices == [0, 1]
    assert chunk.location_x == [1.0, 0.0]


def test_entities_preserve_fields_and_payload_variant(codec, entity):
    source = [
        Entity(
            persistent_id=10,
            location=Vector3(1.5, -2.0, 300.25),
            frozen=True,
            payload=DynamicGridPayload(data={"name": "Lift", "speed": 2}),
            rotation=Quaternion(0.0, 0.0, 0.7071, 0.7071),
        ),
        entity(11, x=4.0),
    ]

    decoded = codec.decode(EntitySchema(), codec.encode(EntitySchema(), source))

    assert decoded == source
    assert isinstance(decoded[0].payload, DynamicGridPayload)


def test_unknown_payload_tag_is_schema_mismatch(global_data):
    chunk = ColumnarChunk()
    stray = Entity(persistent_id=1, payload=EntityPayload(tag="Entity_Unknown"))

    with pytest.raises(SchemaMismatchError, match="Entity_Unknown"):
        chunk.add_entity(global_data, stray, 1)


def test_decode_under_other_schema_version_fails(codec, entity):
    data = codec.encode(EntitySchema(version=1), [entity(1)])

    with pytest.raises(SchemaMismatchError, match="expected EntityChunkSoA v2"):
        codec.decode(EntitySchema(version=2), data)


def test_schema_with_other_columns_cannot_encode(codec, entity):
    with pytest.raises(SchemaMismatchError, match="declares"):
        codec.encode(EntitySchema(fields=("persistent_ids",)), [entity(1)])


def test_corrupt_bytes_are_schema_mismatch(codec):
    with pytest.raises(SchemaMismatchError, match="Corrupt entity chunk"):
        codec.decode(EntitySchema(), b"\xc1\xc1")


def test_type_index_outside_table_is_schema_mismatch(entity):
    wide = GlobalMetadata(entity_type_names=("Entity", "Entity_DynamicBrickGrid", "Entity_Wheel"))
    wheel = Entity(persistent_id=1, payload=EntityPayload(tag="Entity_Wheel"))
    data = MsgpackRecordCodec(wide).encode(EntitySchema(), [wheel])

    with pytest.raises(SchemaMismatchError, match="outside table"):
        MsgpackRecordCodec(GlobalMetadata()).decode(EntitySchema(), data)


def test_unequal_columns_are_rejected():
    payload = msgpack.packb(
        {
            "schema": "EntityChunkSoA",
            "version": 1,
            "columns": {
                "persistent_ids": [1, 2],
                "type_indices": [0],
                "location_x": [0.0],
                "location_y": [0.0],
                "location_z": [0.0],
                "rotation": [[0.0, 0.0, 0.0, 1.0]],
                "frozen": [False],
                "payload_data": [{}],
            },
        },
        use_bin_type=True,
    )

    with pytest.raises(SchemaMismatchError, match="unequal lengths"):
        ColumnarChunk.from_bytes(EntitySchema(), payload)


def _raw_chunk(**overrides):
    columns = {
        "persistent_ids": [1],
        "type_indices": [0],
        "location_x": [0.0],
        "location_y": [0.0],
        "location_z": [0.0],
        "rotation": [[0.0, 0.0, 0.0, 1.0]],
        "frozen": [False],
        "payload_data": [{}],
    }
    columns.update(overrides)
    return msgpack.packb({"schema": "EntityChunkSoA", "version": 1, "columns": columns}, use_bin_type=True)


def test_short_rotation_row_is_schema_mismatch(global_data):
    chunk = ColumnarChunk.from_bytes(EntitySchema(), _raw_chunk(rotation=[[0.0, 0.0, 1.0]]))

    with pytest.raises(SchemaMismatchError, match="Corrupt entity chunk row 0"):
        chunk.entities(global_data)


@pytest.mark.parametrize(
    "overrides",
    [
        {"type_indices": ["0"]},
        {"persistent_ids": [1.5]},
        {"location_y": ["up"]},
        {"frozen": [0]},
        {"payload_data": [[]]},
    ],
)
def test_mistyped_row_is_schema_mismatch(codec, overrides):
    with pytest.raises(SchemaMismatchError, match="Corrupt entity chunk row 0"):
        codec.decode(EntitySchema(), _raw_chunk(**overrides))


def test_scalar_column_is_schema_mismatch():
    with pytest.raises(SchemaMismatchError, match="not arrays: frozen"):
        ColumnarChunk.from_bytes(EntitySchema(), _raw_chunk(frozen=False))


def test_transient_entities_keep_absent_identity(codec):
    transient = Entity(persistent_id=None)

    decoded = codec.decode(EntitySchema(), codec.encode(EntitySchema(), [transient]))

    assert decoded[0].persistent_id is None


def test_index_table_preserves_chunk_order():
    table = ChunkIndexTable(
        next_persistent_index=77,
        chunk_counts={ChunkIndex(3, 0, 0): 1, ChunkIndex(-1, 0, 0): 4},
    )

    restored = ChunkIndexTable.from_bytes(table.to_bytes())

    assert restored.next_persistent_index == 77
    assert restored.chunks == [ChunkIndex(3, 0, 0), ChunkIndex(-1, 0, 0)]
    assert restored.total_entities() == 5


def test_metadata_records_survive_encoding():
    schema = EntitySchema(name="Custom", version=3)
    names = GlobalMetadata(entity_type_names=("Entity", "Entity_Wheel"))

    assert EntitySchema.from_bytes(schema.to_bytes()) == schema
    assert GlobalMetadata.from_bytes(names.to_bytes()) == names


def test_metadata_missing_keys_is_schema_mismatch():
    with pytest.raises(SchemaMismatchError, match="missing entity_type_names"):
        GlobalMetadata.from_bytes(msgpack.packb({"other": 1}))
