"""Turn media records into note front matter, note contents and file names."""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import yaml

from .errors import MissingIdentityError
from .media_type_manager import (
    create_model_from_media_type,
    get_file_name_template,
    get_folder,
    resolve_media_type,
)
from .migration import reconcile
from .models import MediaTypeModel
from .property_mapping import PropertyMappingModel, apply_property_mappings, revert_property_mappings
from .settings import MediaDbSettings
from .templating import (
    fill_placeholders,
    mask_placeholders,
    render_template,
    sanitize_file_name,
    truncate_file_name,
)

logger = logging.getLogger(__name__)

FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(?P<body>.*?\r?\n)??---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
FALLBACK_FILE_NAME = "untitled"


@dataclass(slots=True)
class NoteExport:
    """Everything the note-creation layer needs to write a record to disk."""

    file_name: str
    folder: str
    front_matter: dict[str, Any]
    content: str


def build_front_matter(
    record: MediaTypeModel,
    mapping_model: PropertyMappingModel | None = None,
    *,
    use_default_front_matter: bool = True,
) -> dict[str, Any]:
    """Exported metadata for ``record`` with ``mapping_model`` applied.

    With ``use_default_front_matter`` disabled the user's own fields are left out.
    """

    if use_default_front_matter:
        metadata = record.to_metadata_object()
    else:
        metadata = record.get_without_user_data()
    return apply_property_mappings(metadata, mapping_model)


def render_front_matter(metadata: Mapping[str, Any]) -> str:
    """Serialize ``metadata`` as a YAML front matter block."""

    if not metadata:
        return "---\n---\n"
    body = yaml.safe_dump(dict(metadata), sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"---\n{body}---\n"


def _plain(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, list):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    return value


def _load_block(text: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        logger.warning("Ignoring unreadable front matter: %s", exc)
        return {}
    if not isinstance(data, dict):
        return {}
    return _plain(data)


def parse_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split a note into its front matter mapping and body.

    Dates are returned as ISO strings. A front matter block that is not a
    readable mapping yields an empty mapping and is dropped from the body.
    """

    match = FRONT_MATTER_RE.match(text)
    if match is None:
        return {}, text
    return _load_block(match.group("body") or ""), text[match.end():]


def get_file_name(record: MediaTypeModel, template: str) -> str:
    """Render ``template`` for ``record`` and make the result safe as a file name."""

    name = truncate_file_name(sanitize_file_name(render_template(template, record)))
    if name:
        return name
    fallback = sanitize_file_name(f"{record.get_media_type().value} {record.id}")
    return truncate_file_name(fallback) or FALLBACK_FILE_NAME


def _split_template(
    record: MediaTypeModel, template: str, render: bool
) -> tuple[dict[str, Any] | None, str]:
    # Placeholders in the front matter are masked while the YAML is parsed, so
    # substituted values never change its structure.
    match = FRONT_MATTER_RE.match(template)
    body = template[match.end():] if match is not None else template
    if render:
        body = render_template(body, record)
    if match is None:
        return None, body
    masked, tokens = mask_placeholders(match.group("body") or "")
    metadata = fill_placeholders(_load_block(masked), tokens, record if render else None)
    return metadata, body


def generate_note_content(
    record: MediaTypeModel, settings: MediaDbSettings, template_text: str | None = None
) -> str:
    """Build the full note text for ``record``.

    When the default front matter is enabled, or there is no template, the
    record's mapped metadata is written as front matter. A template's own front
    matter is merged beneath it and its body appended. Otherwise the rendered
    template is the whole note.
    """

    template_metadata: dict[str, Any] | None = None
    body = ""
    if template_text:
        template_metadata, body = _split_template(record, template_text, settings.templates)
        if not settings.use_default_front_matter:
            if template_metadata is None:
                return body
            return render_front_matter(template_metadata) + body

    mapping_model = settings.get_property_mapping_model(record.get_media_type())
    metadata = build_front_matter(record, mapping_model)
    if template_metadata:
        metadata = {**template_metadata, **metadata}
    return render_front_matter(metadata) + body


def export_record(
    record: MediaTypeModel, settings: MediaDbSettings, template_text: str | None = None
) -> NoteExport:
    media_type = record.get_media_type()
    content = generate_note_content(record, settings, template_text)
    front_matter, _ = parse_front_matter(content)
    logger.debug("Exported %s record %r from %s", media_type.value, record.id, record.data_source)
    return NoteExport(
        file_name=get_file_name(record, get_file_name_template(settings, media_type)),
        folder=get_folder(settings, media_type),
        front_matter=front_matter,
        content=content,
    )


def load_record_from_note(text: str, settings: MediaDbSettings) -> MediaTypeModel:
    """Rebuild a record from a previously exported note.

    Renamed properties are mapped back before the metadata is migrated to the
    current record shape.
    """

    metadata, _ = parse_front_matter(text)
    if not metadata.get("type"):
        raise MissingIdentityError("Note front matter has no media type")
    media_type = resolve_media_type(metadata["type"])
    metadata = revert_property_mappings(metadata, settings.get_property_mapping_model(media_type))
    missing = [key for key in ("dataSource", "id") if metadata.get(key) in (None, "")]
    if missing:
        raise MissingIdentityError(f"Note front matter is missing {', '.join(missing)}")
    return create_model_from_media_type(metadata, media_type)


def merge_user_data(fresh: MediaTypeModel, previous: MediaTypeModel) -> MediaTypeModel:
    """Return a copy of ``fresh`` carrying over the user's data from ``previous``."""

    merged = fresh.model_copy(deep=True)
    merged.user_data = reconcile(fresh.user_data, previous.user_data)
    return merged
