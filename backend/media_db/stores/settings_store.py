"""JSON file-backed settings store."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any

from ..errors import PropertyMappingError
from ..property_mapping import PropertyMappingModel
from ..settings import MediaDbSettings, load_settings
from ..utils.paths import default_settings_path, ensure_parent_directory

logger = logging.getLogger(__name__)


class SettingsStore:
    """Thread-safe interface over the persisted settings file.

    Readers always receive a freshly loaded ``MediaDbSettings``; edits are
    made on copies and only reach disk through ``save``.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self._path = Path(path) if path is not None else default_settings_path()
        self._lock = Lock()

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> MediaDbSettings:
        """Return the stored settings merged over the defaults."""

        with self._lock:
            raw = self._read_raw()
        return load_settings(raw)

    def save(self, settings: MediaDbSettings) -> MediaDbSettings:
        """Persist ``settings`` and return them as they will be read back."""

        payload = settings.model_dump(mode="json", by_alias=True)
        with self._lock:
            target = ensure_parent_directory(self._path)
            target.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        logger.info("Saved settings to %s", self._path)
        return load_settings(payload)

    def save_property_mapping_model(self, model: PropertyMappingModel) -> MediaDbSettings:
        """Validate an edited mapping model and commit it."""

        problems = model.validate_mappings()
        if problems:
            raise PropertyMappingError("; ".join(problems))
        return self.save(self.read().with_property_mapping_model(model))

    def _read_raw(self) -> dict[str, Any]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not read settings from %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring settings file %s without a top-level object", self._path)
            return {}
        return data
