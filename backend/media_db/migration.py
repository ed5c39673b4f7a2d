"""Reconcile persisted or partial record data against the current record shapes."""
from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

USER_DATA_KEYS = ("userData", "user_data")

_MISSING = object()


def _as_mapping(legacy: Any) -> Mapping[str, Any] | None:
    if isinstance(legacy, BaseModel):
        return legacy.model_dump(by_alias=True)
    if isinstance(legacy, Mapping):
        return legacy
    return None


def _lookup(source: Mapping[str, Any], name: str, alias: str | None) -> Any:
    for key in (alias, name):
        if key and key in source:
            return source[key]
    return _MISSING


def reconcile(reference: ModelT, legacy: Any) -> ModelT:
    """Return a copy of ``reference`` populated from ``legacy`` where compatible.

    The reference's declared fields drive the iteration, so keys that only
    exist in ``legacy`` never reach the result. A legacy value is kept when it
    passes validation for its field and is otherwise replaced by the
    reference's value. Nested models are reconciled recursively when the
    legacy data supplies a mapping for them.

    Reference models must enable ``validate_assignment``. This function never
    raises on malformed input.
    """

    result = reference.model_copy(deep=True)
    source = _as_mapping(legacy)
    if source is None:
        if legacy is not None:
            logger.debug(
                "Ignoring non-mapping legacy data of type %s for %s",
                type(legacy).__name__,
                type(reference).__name__,
            )
        return result

    for name, info in type(reference).model_fields.items():
        value = _lookup(source, name, info.alias)
        if value is _MISSING:
            continue

        current = getattr(reference, name)
        if isinstance(current, BaseModel):
            if _as_mapping(value) is not None:
                setattr(result, name, reconcile(current, value))
            continue

        try:
            setattr(result, name, copy.deepcopy(value))
        except ValidationError:
            logger.debug(
                "Discarding incompatible value %r for %s.%s",
                value,
                type(reference).__name__,
                name,
            )
    return result


def migrate_record(reference: ModelT, legacy: Any) -> ModelT:
    """Migrate a record, including its ``userData`` sub-object.

    Front matter stores user fields flattened next to the catalog fields, so
    when ``legacy`` carries no ``userData`` mapping the user fields are read
    from the top level instead.
    """

    migrated = reconcile(reference, legacy)
    source = _as_mapping(legacy)
    if source is None or any(key in source for key in USER_DATA_KEYS):
        return migrated

    user_data = getattr(reference, "user_data", None)
    if isinstance(user_data, BaseModel):
        migrated.user_data = reconcile(user_data, source)
    return migrated
