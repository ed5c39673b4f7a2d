"""Tests for layered settings and the JSON settings store."""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.media_db.errors import PropertyMappingError  # noqa: E402
from backend.media_db.media_type import MEDIA_TYPES, MediaType  # noqa: E402
from backend.media_db.media_type_manager import (  # noqa: E402
    get_file_name_template,
    get_folder,
    get_template_path,
)
from backend.media_db.property_mapping import PropertyMapping, PropertyMappingOption  # noqa: E402
from backend.media_db.settings import DEFAULT_FOLDERS, MediaDbSettings, load_settings  # noqa: E402
from backend.media_db.stores import SettingsStore  # noqa: E402
from backend.media_db.utils.paths import default_settings_path  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's environment and .env file out of the tests."""

    monkeypatch.chdir(tmp_path)
    for name in ("MEDIA_DB_TEMPLATES", "MEDIA_DB_USE_DEFAULT_FRONT_MATTER", "MEDIA_DB_FOLDERS"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_cover_every_media_type() -> None:
    settings = load_settings()

    assert settings.templates is True
    assert settings.use_default_front_matter is True
    assert set(settings.file_name_templates) == set(MEDIA_TYPES)
    assert get_folder(settings, MediaType.BOOK) == "Media DB/books"
    assert get_template_path(settings, MediaType.BOOK) == ""
    assert [model.type for model in settings.property_mapping_models] == list(MEDIA_TYPES)


def test_environment_overrides_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MEDIA_DB_TEMPLATES", "false")

    assert load_settings().templates is False
    assert load_settings({"templates": True}).templates is True


def test_environment_tables_merge_with_built_in_tables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MEDIA_DB_FOLDERS", json.dumps({"movie": "Films"}))

    settings = load_settings()

    assert get_folder(settings, MediaType.MOVIE) == "Films"
    assert get_folder(settings, MediaType.GAME) == DEFAULT_FOLDERS[MediaType.GAME]


def test_unknown_kinds_in_environment_tables_are_skipped(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    """A stray kind in an environment table is logged instead of failing every load."""

    monkeypatch.setenv("MEDIA_DB_FOLDERS", json.dumps({"bogus": "x", "movie": "Films"}))

    with caplog.at_level(logging.WARNING, logger="backend.media_db.settings"):
        settings = load_settings()

    assert get_folder(settings, MediaType.MOVIE) == "Films"
    assert get_folder(settings, MediaType.GAME) == DEFAULT_FOLDERS[MediaType.GAME]
    assert "bogus" not in {str(key) for key in settings.folders}
    assert "bogus" in caplog.text


def test_invalid_environment_values_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MEDIA_DB_TEMPLATES", "maybe")

    settings = load_settings({"use_default_front_matter": False})

    assert settings.templates is True
    assert settings.use_default_front_matter is False
    assert get_folder(settings, MediaType.BOOK) == DEFAULT_FOLDERS[MediaType.BOOK]


def test_per_kind_overrides_merge_key_by_key() -> None:
    """Overriding one kind keeps the defaults of the others and ignores unknown kinds."""

    settings = load_settings(
        {
            "file_name_templates": {"movie": "{{ title }}", "podcast": "{{ title }}"},
            "template_paths": {"book": "Templates/book.md"},
        }
    )

    assert get_file_name_template(settings, MediaType.MOVIE) == "{{ title }}"
    assert get_file_name_template(settings, MediaType.SERIES) == "{{ title }} ({{ year }})"
    assert get_template_path(settings, MediaType.BOOK) == "Templates/book.md"
    assert len(settings.file_name_templates) == len(MEDIA_TYPES)


def test_malformed_values_fall_back_to_defaults() -> None:
    settings = load_settings(
        {"templates": "maybe", "folders": "nowhere", "property_mapping_models": "none", "unknown": 1}
    )

    assert settings.templates is True
    assert settings.folders == DEFAULT_FOLDERS
    assert len(settings.property_mapping_models) == len(MEDIA_TYPES)


def test_stored_mappings_are_reconciled_on_load() -> None:
    settings = load_settings(
        {
            "property_mapping_models": [
                {
                    "type": "movie",
                    "properties": [
                        {"key": "title", "mapping": "remap", "newKey": "name"},
                        {"key": "retired", "mapping": "remove"},
                    ],
                }
            ]
        }
    )

    movie = settings.get_property_mapping_model(MediaType.MOVIE)
    assert movie.properties[0].key == "title"
    assert movie.properties[0].mapping is PropertyMappingOption.REMAP
    assert movie.get("retired") is None
    assert movie.get("plot") is not None
    assert settings.get_property_mapping_model(MediaType.BOOK).get("author") is not None


def test_with_property_mapping_model_returns_a_copy() -> None:
    settings = load_settings()
    edited = settings.get_property_mapping_model(MediaType.GAME).copy()
    edited.update_mapping("title", "remove")

    updated = settings.with_property_mapping_model(edited)

    assert updated.get_property_mapping_model(MediaType.GAME).get("title").target_key is None
    assert settings.get_property_mapping_model(MediaType.GAME).get("title").target_key == "title"


def test_default_settings_path_uses_config_directory() -> None:
    path = default_settings_path()

    assert path.name == "settings.json"
    assert "MediaDB" in str(path)


def test_store_reads_defaults_when_file_missing(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "missing.json")

    assert store.read() == load_settings()


def test_store_ignores_corrupt_files(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    assert SettingsStore(path).read().templates is True

    path.write_text("[1, 2]", encoding="utf-8")
    assert SettingsStore(path).read().templates is True


def test_store_round_trips_settings(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "nested" / "settings.json")
    settings = load_settings({"use_default_front_matter": False})
    edited = settings.get_property_mapping_model(MediaType.MOVIE).copy()
    edited.update_mapping("title", "remap", "name")

    saved = store.save(settings.with_property_mapping_model(edited))
    reread = store.read()

    assert store.path.is_file()
    assert reread == saved
    assert reread.use_default_front_matter is False
    assert reread.get_property_mapping_model(MediaType.MOVIE).get("title").new_key == "name"
    stored = json.loads(store.path.read_text(encoding="utf-8"))
    movie_entries = stored["property_mapping_models"][0]["properties"]
    assert next(entry for entry in movie_entries if entry["key"] == "title")["newKey"] == "name"


def test_store_rejects_conflicting_mappings(tmp_path: Path) -> None:
    """Invalid edits never reach the settings file."""

    store = SettingsStore(tmp_path / "settings.json")
    edited = store.read().get_property_mapping_model(MediaType.MOVIE).copy()
    index = next(i for i, entry in enumerate(edited.properties) if entry.key == "plot")
    edited.properties[index] = PropertyMapping(key="plot", mapping="remap", new_key="title")

    with pytest.raises(PropertyMappingError):
        store.save_property_mapping_model(edited)
    assert not store.path.exists()


def test_store_saves_valid_mapping_edits(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    edited = store.read().get_property_mapping_model(MediaType.BOOK).copy()
    edited.update_mapping("pages", "remove")

    saved = store.save_property_mapping_model(edited)

    assert saved.get_property_mapping_model(MediaType.BOOK).get("pages").target_key is None
    assert isinstance(store.read(), MediaDbSettings)
    assert store.read().get_property_mapping_model(MediaType.BOOK).get("pages").target_key is None
