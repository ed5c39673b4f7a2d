"""Layered configuration: built-in defaults, environment, then user overrides."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import Field, ValidationError
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from .media_type import MEDIA_TYPES, MediaType
from .migration import reconcile
from .property_mapping import (
    PropertyMappingModel,
    default_property_mapping_models,
    generate_property_mapping_model,
    parse_property_mapping_models,
    reconcile_property_mapping_model,
)

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME_TEMPLATES: dict[MediaType, str] = {
    MediaType.MOVIE: "{{ title }} ({{ year }})",
    MediaType.SERIES: "{{ title }} ({{ year }})",
    MediaType.COMIC_MANGA: "{{ title }} ({{ year }})",
    MediaType.GAME: "{{ title }} ({{ year }})",
    MediaType.WIKI: "{{ title }}",
    MediaType.MUSIC_RELEASE: "{{ title }} (by {{ ENUM:artists }} - {{ year }})",
    MediaType.BOARD_GAME: "{{ title }} ({{ year }})",
    MediaType.BOOK: "{{ title }} ({{ year }})",
}

DEFAULT_FOLDERS: dict[MediaType, str] = {
    MediaType.MOVIE: "Media DB/movies",
    MediaType.SERIES: "Media DB/series",
    MediaType.COMIC_MANGA: "Media DB/comics",
    MediaType.GAME: "Media DB/games",
    MediaType.WIKI: "Media DB/wiki",
    MediaType.MUSIC_RELEASE: "Media DB/music",
    MediaType.BOARD_GAME: "Media DB/boardgames",
    MediaType.BOOK: "Media DB/books",
}

PER_KIND_DEFAULTS: dict[str, dict[MediaType, str]] = {
    "file_name_templates": DEFAULT_FILE_NAME_TEMPLATES,
    "template_paths": {},
    "folders": DEFAULT_FOLDERS,
}


class KnownKindsSettingsSource(PydanticBaseSettingsSource):
    """Wrap another settings source, dropping per-kind entries for unknown media types."""

    def __init__(self, settings_cls: type[BaseSettings], source: PydanticBaseSettingsSource) -> None:
        super().__init__(settings_cls)
        self._source = source

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self._source.get_field_value(field, field_name)

    def __call__(self) -> dict[str, Any]:
        data = dict(self._source())
        for name in PER_KIND_DEFAULTS:
            value = data.get(name)
            if isinstance(value, Mapping):
                data[name] = _known_kinds(value)
        return data


class MediaDbSettings(BaseSettings):
    """Export settings shared by every media kind."""

    templates: bool = Field(
        default=True, description="Resolve placeholders inside note templates."
    )
    use_default_front_matter: bool = Field(
        default=True,
        description="Write the record's own front matter. When disabled, a template replaces it.",
    )
    file_name_templates: dict[MediaType, str] = Field(
        default_factory=lambda: dict(DEFAULT_FILE_NAME_TEMPLATES),
        description="Placeholder template used to name new notes, per media kind.",
    )
    template_paths: dict[MediaType, str] = Field(
        default_factory=dict, description="Note template file used per media kind."
    )
    folders: dict[MediaType, str] = Field(
        default_factory=lambda: dict(DEFAULT_FOLDERS),
        description="Folder new notes are created in, per media kind.",
    )
    property_mapping_models: list[PropertyMappingModel] = Field(
        default_factory=default_property_mapping_models,
        description="Export property renames and removals, one model per media kind.",
    )

    model_config = SettingsConfigDict(
        env_prefix="MEDIA_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            KnownKindsSettingsSource(settings_cls, env_settings),
            KnownKindsSettingsSource(settings_cls, dotenv_settings),
            file_secret_settings,
        )

    def get_property_mapping_model(self, media_type: MediaType) -> PropertyMappingModel | None:
        for model in self.property_mapping_models:
            if model.type == media_type:
                return model
        return None

    def with_property_mapping_model(self, model: PropertyMappingModel) -> MediaDbSettings:
        """Return a copy of these settings with ``model`` replacing its kind's mapping."""

        models = [
            model.copy() if existing.type == model.type else existing.copy()
            for existing in self.property_mapping_models
        ]
        if all(existing.type != model.type for existing in self.property_mapping_models):
            models.append(model.copy())
        return self.model_copy(update={"property_mapping_models": models}, deep=True)


def _known_kinds(values: Mapping[Any, Any]) -> dict[MediaType, Any]:
    known: dict[MediaType, Any] = {}
    for key, value in values.items():
        try:
            known[MediaType(key)] = value
        except (TypeError, ValueError):
            logger.warning("Ignoring setting for unknown media type %r", key)
    return known


def _layer_property_mapping_models(raw: Any) -> list[PropertyMappingModel]:
    stored = parse_property_mapping_models(raw) if isinstance(raw, list) else []
    by_type = {model.type: model for model in stored}
    return [
        reconcile_property_mapping_model(by_type[media_type])
        if media_type in by_type
        else generate_property_mapping_model(media_type)
        for media_type in MEDIA_TYPES
    ]


def load_settings(overrides: Mapping[str, Any] | None = None) -> MediaDbSettings:
    """Merge user ``overrides`` over the defaults and environment.

    Per-kind tables merge key by key, stored property mappings are brought up
    to date with the current record fields, and values of the wrong shape fall
    back to their defaults.
    """

    try:
        defaults = MediaDbSettings()
    except ValidationError as exc:
        logger.warning("Ignoring invalid environment settings: %s", exc)
        defaults = MediaDbSettings.model_construct()
    layered: dict[str, Any] = dict(overrides) if isinstance(overrides, Mapping) else {}
    for name, builtin in PER_KIND_DEFAULTS.items():
        value = layered.get(name, {})
        if isinstance(value, Mapping):
            layered[name] = {**builtin, **getattr(defaults, name), **_known_kinds(value)}
    layered["property_mapping_models"] = _layer_property_mapping_models(
        layered.get("property_mapping_models")
    )
    return reconcile(defaults, layered)
