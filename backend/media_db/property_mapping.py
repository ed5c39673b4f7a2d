"""User-editable rules for renaming or dropping exported record properties."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .errors import LockedPropertyError, PropertyMappingError
from .media_type import MEDIA_TYPES, MediaType
from .media_type_manager import create_model_from_media_type

logger = logging.getLogger(__name__)

LOCKED_PROPERTY_MAPPINGS: tuple[str, ...] = ("type", "id", "dataSource")


class PropertyMappingOption(str, Enum):
    DEFAULT = "default"
    REMAP = "remap"
    REMOVE = "remove"


class PropertyMapping(BaseModel):
    """Export rule for a single metadata key.

    Instances are immutable; edits go through ``with_mapping`` which returns a
    new entry. Identity keys are always locked to the default mapping.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(validation_alias=AliasChoices("key", "property"))
    new_key: str = Field(
        default="",
        validation_alias=AliasChoices("newKey", "new_key", "newProperty"),
        serialization_alias="newKey",
    )
    mapping: PropertyMappingOption = PropertyMappingOption.DEFAULT
    locked: bool = False

    @model_validator(mode="before")
    @classmethod
    def _enforce_lock(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        key = data.get("key", data.get("property"))
        if not data.get("locked") and key not in LOCKED_PROPERTY_MAPPINGS:
            return data
        cleaned = {
            name: value
            for name, value in data.items()
            if name not in {"newKey", "new_key", "newProperty"}
        }
        cleaned.update(locked=True, mapping=PropertyMappingOption.DEFAULT, newKey="")
        return cleaned

    @field_validator("mapping", mode="before")
    @classmethod
    def _known_option(cls, value: Any) -> Any:
        if isinstance(value, PropertyMappingOption):
            return value
        try:
            return PropertyMappingOption(value)
        except (TypeError, ValueError):
            logger.debug("Unknown property mapping option %r, using default", value)
            return PropertyMappingOption.DEFAULT

    @property
    def target_key(self) -> str | None:
        """Key the property is exported under, or ``None`` when removed."""

        if self.mapping is PropertyMappingOption.REMOVE:
            return None
        if self.mapping is PropertyMappingOption.REMAP and self.new_key:
            return self.new_key
        return self.key

    def with_mapping(
        self, option: PropertyMappingOption | str, new_key: str = ""
    ) -> PropertyMapping:
        """Return a copy of this entry using ``option``."""

        option = PropertyMappingOption(option)
        if self.locked and option is not PropertyMappingOption.DEFAULT:
            raise LockedPropertyError(self.key)
        new_key = new_key.strip()
        if option is PropertyMappingOption.REMAP:
            if not new_key:
                raise PropertyMappingError(f"Property {self.key!r} needs a non-empty name to remap to")
        else:
            new_key = ""
        return self.model_copy(update={"mapping": option, "new_key": new_key})


class PropertyMappingModel(BaseModel):
    """Ordered property mappings for one media kind."""

    model_config = ConfigDict(validate_assignment=True)

    type: MediaType
    properties: list[PropertyMapping] = Field(default_factory=list)

    def copy(self) -> PropertyMappingModel:  # type: ignore[override]
        """Independent deep copy for editing without touching the committed model."""

        return self.model_copy(deep=True)

    def get(self, key: str) -> PropertyMapping | None:
        for entry in self.properties:
            if entry.key == key:
                return entry
        return None

    def update_mapping(
        self, key: str, option: PropertyMappingOption | str, new_key: str = ""
    ) -> PropertyMapping:
        """Apply a user edit to this model and return the updated entry.

        Intended to be called on a ``copy()``. Remap targets that would
        collide with another exported key are rejected.
        """

        for index, entry in enumerate(self.properties):
            if entry.key == key:
                break
        else:
            raise PropertyMappingError(f"No property {key!r} in the {self.type.value} mapping")

        updated = entry.with_mapping(option, new_key)
        target = updated.target_key
        if target is not None:
            for other_index, other in enumerate(self.properties):
                if other_index != index and other.target_key == target:
                    raise PropertyMappingError(
                        f"Cannot export {key!r} as {target!r}: {other.key!r} already uses that name"
                    )
        self.properties[index] = updated
        return updated

    def validate_mappings(self) -> list[str]:
        """Describe entries that cannot be exported as configured."""

        problems: list[str] = []
        owners: dict[str, str] = {}
        for entry in self.properties:
            if entry.mapping is PropertyMappingOption.REMAP and not entry.new_key:
                problems.append(f"{entry.key}: remap target is empty, exported under its own name")
            target = entry.target_key
            if target is None:
                continue
            if target in owners:
                problems.append(f"{entry.key}: exported as {target!r}, which {owners[target]!r} also uses")
            else:
                owners[target] = entry.key
        return problems


def metadata_keys(media_type: MediaType) -> list[str]:
    """Exportable keys for ``media_type``, taken from a default record."""

    return list(create_model_from_media_type({}, media_type).to_metadata_object())


def generate_property_mapping_model(media_type: MediaType) -> PropertyMappingModel:
    return PropertyMappingModel(
        type=media_type,
        properties=[
            PropertyMapping(key=key, locked=key in LOCKED_PROPERTY_MAPPINGS)
            for key in metadata_keys(media_type)
        ],
    )


def default_property_mapping_models() -> list[PropertyMappingModel]:
    return [generate_property_mapping_model(media_type) for media_type in MEDIA_TYPES]


def reconcile_property_mapping_model(model: PropertyMappingModel) -> PropertyMappingModel:
    """Bring a persisted model in line with the kind's current exportable keys.

    Stored choices keep their order, entries for keys no longer exported are
    dropped and new keys are appended with the default mapping.
    """

    keys = metadata_keys(model.type)
    known = set(keys)
    properties: list[PropertyMapping] = []
    seen: set[str] = set()
    for entry in model.properties:
        if entry.key not in known or entry.key in seen:
            logger.debug("Dropping stale %s mapping for %r", model.type.value, entry.key)
            continue
        seen.add(entry.key)
        payload = {**entry.model_dump(by_alias=True), "locked": entry.key in LOCKED_PROPERTY_MAPPINGS}
        properties.append(PropertyMapping.model_validate(payload))
    for key in keys:
        if key not in seen:
            logger.debug("Adding %s mapping for new property %r", model.type.value, key)
            properties.append(PropertyMapping(key=key, locked=key in LOCKED_PROPERTY_MAPPINGS))
    return PropertyMappingModel(type=model.type, properties=properties)


def parse_property_mapping_models(raw: Iterable[Any]) -> list[PropertyMappingModel]:
    """Load persisted models, skipping entries that cannot be understood."""

    models: dict[MediaType, PropertyMappingModel] = {}
    for item in raw:
        if isinstance(item, PropertyMappingModel):
            models[item.type] = item.copy()
            continue
        if not isinstance(item, Mapping):
            logger.warning("Ignoring property mapping model of type %s", type(item).__name__)
            continue
        try:
            media_type = MediaType(item.get("type"))
        except (TypeError, ValueError):
            logger.warning("Ignoring property mapping model for unknown type %r", item.get("type"))
            continue
        properties: list[PropertyMapping] = []
        for entry in item.get("properties") or []:
            try:
                properties.append(PropertyMapping.model_validate(entry))
            except ValidationError:
                logger.warning("Ignoring malformed %s property mapping %r", media_type.value, entry)
        models[media_type] = PropertyMappingModel(type=media_type, properties=properties)
    return list(models.values())


def apply_property_mappings(
    metadata: Mapping[str, Any], model: PropertyMappingModel | None
) -> dict[str, Any]:
    """Return ``metadata`` with the model's renames and removals applied.

    Keys without an entry pass through unchanged. If two keys end up under the
    same name, the one later in ``metadata`` wins.
    """

    if model is None:
        return dict(metadata)
    entries = {entry.key: entry for entry in model.properties}
    converted: dict[str, Any] = {}
    for key, value in metadata.items():
        entry = entries.get(key)
        target = key if entry is None else entry.target_key
        if target is not None:
            converted[target] = value
    return converted


def revert_property_mappings(
    metadata: Mapping[str, Any], model: PropertyMappingModel | None
) -> dict[str, Any]:
    """Map renamed keys of exported metadata back to their record keys."""

    if model is None:
        return dict(metadata)
    originals = {
        entry.new_key: entry.key
        for entry in model.properties
        if entry.mapping is PropertyMappingOption.REMAP and entry.new_key
    }
    return {originals.get(key, key): value for key, value in metadata.items()}
