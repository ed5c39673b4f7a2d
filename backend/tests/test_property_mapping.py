"""Tests for export property mappings."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.media_db.errors import LockedPropertyError, PropertyMappingError  # noqa: E402
from backend.media_db.media_type import MEDIA_TYPES, MediaType  # noqa: E402
from backend.media_db.models import MovieModel  # noqa: E402
from backend.media_db.property_mapping import (  # noqa: E402
    LOCKED_PROPERTY_MAPPINGS,
    PropertyMapping,
    PropertyMappingModel,
    PropertyMappingOption,
    apply_property_mappings,
    default_property_mapping_models,
    generate_property_mapping_model,
    parse_property_mapping_models,
    reconcile_property_mapping_model,
    revert_property_mappings,
)


@pytest.fixture()
def movie_metadata() -> dict[str, object]:
    record = MovieModel.from_data(
        {"title": "Dune", "year": "2021", "id": "tt1160419", "dataSource": "OMDbAPI", "plot": "Spice."}
    )
    return record.to_metadata_object()


@pytest.fixture()
def movie_mapping() -> PropertyMappingModel:
    return generate_property_mapping_model(MediaType.MOVIE)


def test_generated_model_covers_metadata_keys(movie_mapping: PropertyMappingModel) -> None:
    """One default entry per exported key, locked only for identity keys."""

    keys = list(MovieModel().to_metadata_object())

    assert [entry.key for entry in movie_mapping.properties] == keys
    assert "watched" in keys and "tags" in keys
    assert all(entry.mapping is PropertyMappingOption.DEFAULT for entry in movie_mapping.properties)
    assert all(entry.new_key == "" for entry in movie_mapping.properties)
    assert {entry.key for entry in movie_mapping.properties if entry.locked} == set(LOCKED_PROPERTY_MAPPINGS)


def test_default_models_follow_media_type_order() -> None:
    assert [model.type for model in default_property_mapping_models()] == list(MEDIA_TYPES)


def test_default_mapping_is_identity(movie_metadata: dict, movie_mapping: PropertyMappingModel) -> None:
    assert apply_property_mappings(movie_metadata, movie_mapping) == movie_metadata
    assert list(apply_property_mappings(movie_metadata, movie_mapping)) == list(movie_metadata)
    assert apply_property_mappings(movie_metadata, None) == movie_metadata


def test_remove_drops_the_key(movie_metadata: dict, movie_mapping: PropertyMappingModel) -> None:
    edited = movie_mapping.copy()
    edited.update_mapping("plot", PropertyMappingOption.REMOVE)

    converted = apply_property_mappings(movie_metadata, edited)

    assert "plot" not in converted
    assert converted["title"] == "Dune"


def test_remap_renames_the_key(movie_metadata: dict, movie_mapping: PropertyMappingModel) -> None:
    edited = movie_mapping.copy()
    edited.update_mapping("title", "remap", "name")

    converted = apply_property_mappings(movie_metadata, edited)

    assert "title" not in converted
    assert converted["name"] == "Dune"


def test_apply_does_not_mutate_inputs(movie_metadata: dict, movie_mapping: PropertyMappingModel) -> None:
    snapshot = dict(movie_metadata)
    edited = movie_mapping.copy()
    edited.update_mapping("year", "remove")

    apply_property_mappings(movie_metadata, edited)

    assert movie_metadata == snapshot


def test_copy_is_independent_of_the_committed_model(movie_mapping: PropertyMappingModel) -> None:
    """Edits made on a copy must not reach the committed model."""

    edited = movie_mapping.copy()
    edited.update_mapping("title", "remap", "name")

    assert movie_mapping.get("title").mapping is PropertyMappingOption.DEFAULT
    assert edited.get("title").new_key == "name"


@pytest.mark.parametrize("key", LOCKED_PROPERTY_MAPPINGS)
def test_locked_keys_cannot_be_remapped_or_removed(movie_mapping: PropertyMappingModel, key: str) -> None:
    edited = movie_mapping.copy()

    with pytest.raises(LockedPropertyError):
        edited.update_mapping(key, "remove")
    with pytest.raises(LockedPropertyError):
        edited.update_mapping(key, "remap", "identifier")
    with pytest.raises(LockedPropertyError):
        edited.get(key).with_mapping(PropertyMappingOption.REMAP, "identifier")

    assert edited.update_mapping(key, "default").mapping is PropertyMappingOption.DEFAULT


def test_entries_are_immutable(movie_mapping: PropertyMappingModel) -> None:
    with pytest.raises(ValidationError):
        movie_mapping.get("id").mapping = PropertyMappingOption.REMOVE  # type: ignore[misc]


def test_persisted_locked_entries_are_coerced_to_default() -> None:
    """Tampered identity entries load as locked defaults instead of failing."""

    entry = PropertyMapping.model_validate(
        {"property": "id", "newProperty": "identifier", "mapping": "remap", "locked": False}
    )
    assert entry.locked is True
    assert entry.mapping is PropertyMappingOption.DEFAULT
    assert entry.new_key == ""

    direct = PropertyMapping(key="dataSource", mapping=PropertyMappingOption.REMOVE)
    assert direct.target_key == "dataSource"


def test_empty_remap_target_is_rejected_at_edit_time(movie_mapping: PropertyMappingModel) -> None:
    with pytest.raises(PropertyMappingError):
        movie_mapping.copy().update_mapping("title", "remap", "   ")


def test_empty_remap_target_from_storage_exports_as_default(movie_metadata: dict) -> None:
    model = PropertyMappingModel(
        type=MediaType.MOVIE,
        properties=[PropertyMapping.model_validate({"key": "title", "mapping": "remap", "newKey": ""})],
    )

    converted = apply_property_mappings(movie_metadata, model)

    assert converted["title"] == "Dune"
    assert model.validate_mappings() == ["title: remap target is empty, exported under its own name"]


def test_colliding_remap_is_rejected(movie_mapping: PropertyMappingModel) -> None:
    edited = movie_mapping.copy()

    with pytest.raises(PropertyMappingError):
        edited.update_mapping("englishTitle", "remap", "title")

    edited.update_mapping("title", "remap", "name")
    edited.update_mapping("englishTitle", "remap", "title")
    assert edited.validate_mappings() == []


def test_unknown_key_edit_is_rejected(movie_mapping: PropertyMappingModel) -> None:
    with pytest.raises(PropertyMappingError):
        movie_mapping.copy().update_mapping("boxOffice", "remove")


def test_stored_duplicate_targets_resolve_deterministically(movie_metadata: dict) -> None:
    """When two keys share a target, the later key in the metadata wins."""

    model = PropertyMappingModel(
        type=MediaType.MOVIE,
        properties=[
            PropertyMapping(key="plot", mapping="remap", new_key="summary"),
            PropertyMapping(key="title", mapping="remap", new_key="summary"),
        ],
    )

    converted = apply_property_mappings(movie_metadata, model)

    assert converted["summary"] == "Spice."
    assert len(model.validate_mappings()) == 1


def test_unmapped_keys_pass_through(movie_mapping: PropertyMappingModel) -> None:
    converted = apply_property_mappings({"title": "Dune", "brandNewField": 3}, movie_mapping)

    assert converted == {"title": "Dune", "brandNewField": 3}


def test_revert_restores_record_keys(movie_metadata: dict, movie_mapping: PropertyMappingModel) -> None:
    edited = movie_mapping.copy()
    edited.update_mapping("title", "remap", "name")
    edited.update_mapping("watched", "remap", "seen")

    exported = apply_property_mappings(movie_metadata, edited)

    assert revert_property_mappings(exported, edited) == movie_metadata


def test_reconcile_extends_stale_models() -> None:
    """Stored choices survive while new keys are added and obsolete ones dropped."""

    stale = PropertyMappingModel(
        type=MediaType.MOVIE,
        properties=[
            PropertyMapping(key="title", mapping="remap", new_key="name"),
            PropertyMapping(key="boxOffice", mapping="remove"),
            PropertyMapping(key="id", locked=False),
        ],
    )

    current = reconcile_property_mapping_model(stale)
    keys = [entry.key for entry in current.properties]

    assert keys[:2] == ["title", "id"]
    assert "boxOffice" not in keys
    assert set(keys) == set(MovieModel().to_metadata_object())
    assert current.get("title").new_key == "name"
    assert current.get("id").locked is True
    assert current.get("plot").mapping is PropertyMappingOption.DEFAULT


def test_unknown_mapping_option_loads_as_default() -> None:
    entry = PropertyMapping.model_validate({"key": "title", "mapping": "rename-please"})

    assert entry.mapping is PropertyMappingOption.DEFAULT


def test_parse_skips_unusable_persisted_entries() -> None:
    models = parse_property_mapping_models(
        [
            {"type": "podcast", "properties": []},
            "junk",
            {"type": "movie", "properties": [{"key": "title", "mapping": "remove"}, {"nokey": 1}, "junk"]},
        ]
    )

    assert len(models) == 1
    assert models[0].type is MediaType.MOVIE
    assert [entry.key for entry in models[0].properties] == ["title"]
