"""Settings-driven patch run, as a host program would do it."""

from worldpatch import LocalStore, WorldPatcher
from worldpatch.config import PatchSettings


def test_from_settings_patches_world_in_worlds_dir(make_world, entity, origin_chunk, tmp_path):
    make_world({origin_chunk: [entity(0), entity(1)]}, name="Monastery")
    settings = PatchSettings(worlds_dir=tmp_path, columns=3, rows=1, freeze_originals=True)

    patcher = WorldPatcher.from_settings(settings, "Monastery")
    report = patcher.duplicate_entities()
    patcher.save_as(settings.world_path("Monastery_V5"))

    output = LocalStore.open(tmp_path / "Monastery_V5")
    assert report.duplicates_created == 4
    assert len(output.chunk_entities(origin_chunk)) == 6
    assert all(e.frozen for e in output.chunk_entities(origin_chunk))
    assert output.revisions()[-1] == "Update"


def test_configured_revision_label_is_written_without_explicit_label(make_world, entity, origin_chunk, tmp_path):
    make_world({origin_chunk: [entity(0)]}, name="Monastery")
    settings = PatchSettings(worlds_dir=tmp_path, revision_label="Grid of monasteries")

    patcher = WorldPatcher.from_settings(settings, "Monastery")
    patcher.duplicate_entities()
    output = patcher.save_as(settings.world_path("Monastery_V5"))

    assert output.revisions() == ["Init", "Grid of monasteries"]
