"""Command line interface for exporting and migrating Media DB records."""
from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import typer

from backend.media_db.errors import MediaDbError
from backend.media_db.export import export_record, get_file_name, load_record_from_note
from backend.media_db.media_type_manager import (
    create_model_from_media_type,
    get_file_name_template,
    get_template_path,
    resolve_media_type,
)
from backend.media_db.models import MediaTypeModel
from backend.media_db.property_mapping import PropertyMappingOption, generate_property_mapping_model
from backend.media_db.settings import MediaDbSettings
from backend.media_db.stores import SettingsStore

app = typer.Typer(help="Export and migrate Media DB records.")
mappings_app = typer.Typer(help="Inspect and edit export property mappings.")
app.add_typer(mappings_app, name="mappings")


class OutputFormat(str, Enum):
    JSON = "json"
    MARKDOWN = "markdown"


def _settings_option() -> Any:
    return typer.Option(
        None,
        "--settings",
        help="Settings JSON file. Defaults to the per-user configuration directory.",
        envvar="MEDIA_DB_SETTINGS_PATH",
    )


def _type_option() -> Any:
    return typer.Option(
        None,
        "--type",
        "-t",
        help="Media type of the record. Defaults to the record's own 'type' field.",
    )


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _fail(message: str) -> typer.Exit:
    typer.echo(message, err=True)
    return typer.Exit(code=1)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise _fail(f"Cannot read {path}: {exc}") from exc


def _load_record(data_path: Path, media_type: Optional[str]) -> MediaTypeModel:
    try:
        data = json.loads(_read_text(data_path))
    except json.JSONDecodeError as exc:
        raise _fail(f"Invalid JSON in {data_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise _fail(f"{data_path} must contain a JSON object")
    try:
        return create_model_from_media_type(data, media_type or data.get("type"))
    except MediaDbError as exc:
        raise _fail(str(exc)) from exc


def _read_settings(settings_path: Optional[Path]) -> MediaDbSettings:
    return SettingsStore(settings_path).read()


@app.callback()
def configure_logging(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging for every command."""

    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


@app.command("export")
def export_command(
    data_path: Path = typer.Argument(..., help="JSON file holding the record's fields."),
    media_type: Optional[str] = _type_option(),
    template: Optional[Path] = typer.Option(
        None,
        "--template",
        help="Note template file. Defaults to the template configured for the media type.",
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.JSON,
        "--format",
        help="Print the file name, folder and front matter as JSON, or the note as Markdown.",
        show_default=True,
    ),
    settings_path: Optional[Path] = _settings_option(),
) -> None:
    """Export a record as note front matter, content and file name."""

    settings = _read_settings(settings_path)
    record = _load_record(data_path, media_type)
    template_file = template or get_template_path(settings, record.get_media_type())
    template_text = _read_text(Path(template_file)) if template_file else None

    result = export_record(record, settings, template_text)
    if output_format is OutputFormat.MARKDOWN:
        typer.echo(result.content, nl=False)
        return
    _echo_json(
        {
            "file_name": result.file_name,
            "folder": result.folder,
            "front_matter": result.front_matter,
            "content": result.content,
        }
    )


@app.command("file-name")
def file_name_command(
    data_path: Path = typer.Argument(..., help="JSON file holding the record's fields."),
    media_type: Optional[str] = _type_option(),
    template: Optional[str] = typer.Option(
        None, "--template", help="File name template. Defaults to the configured one."
    ),
    settings_path: Optional[Path] = _settings_option(),
) -> None:
    """Print the file name a record would be saved under."""

    settings = _read_settings(settings_path)
    record = _load_record(data_path, media_type)
    if template is None:
        template = get_file_name_template(settings, record.get_media_type())
    typer.echo(get_file_name(record, template))


@app.command("reload")
def reload_command(
    note_path: Path = typer.Argument(..., help="Markdown note previously created by Media DB."),
    settings_path: Optional[Path] = _settings_option(),
) -> None:
    """Read a note back into a record migrated to the current shape."""

    settings = _read_settings(settings_path)
    try:
        record = load_record_from_note(_read_text(note_path), settings)
    except MediaDbError as exc:
        raise _fail(str(exc)) from exc
    _echo_json(record.model_dump(by_alias=True, mode="json"))


@mappings_app.command("show")
def show_mappings(
    media_type: str = typer.Argument(..., help="Media type whose mappings to display."),
    settings_path: Optional[Path] = _settings_option(),
) -> None:
    """Display the property mappings for a media type."""

    try:
        resolved = resolve_media_type(media_type)
    except MediaDbError as exc:
        raise _fail(str(exc)) from exc
    model = _read_settings(settings_path).get_property_mapping_model(resolved)
    if model is None:
        model = generate_property_mapping_model(resolved)
    _echo_json(model.model_dump(mode="json", by_alias=True))


@mappings_app.command("set")
def set_mapping(
    media_type: str = typer.Argument(..., help="Media type whose mapping to edit."),
    key: str = typer.Argument(..., help="Exported property to change."),
    remap: Optional[str] = typer.Option(None, "--remap", help="Export the property under this name."),
    remove: bool = typer.Option(False, "--remove", help="Leave the property out of exports."),
    default: bool = typer.Option(False, "--default", help="Export the property under its own name."),
    settings_path: Optional[Path] = _settings_option(),
) -> None:
    """Change how a single property is exported."""

    if sum((remap is not None, remove, default)) != 1:
        raise _fail("Pass exactly one of --remap, --remove or --default.")

    if remap is not None:
        option = PropertyMappingOption.REMAP
    elif remove:
        option = PropertyMappingOption.REMOVE
    else:
        option = PropertyMappingOption.DEFAULT

    store = SettingsStore(settings_path)
    try:
        resolved = resolve_media_type(media_type)
        committed = store.read().get_property_mapping_model(resolved)
        edited = committed.copy() if committed is not None else generate_property_mapping_model(resolved)
        edited.update_mapping(key, option, remap or "")
        saved = store.save_property_mapping_model(edited)
    except MediaDbError as exc:
        raise _fail(str(exc)) from exc
    _echo_json(saved.get_property_mapping_model(resolved).model_dump(mode="json", by_alias=True))


@mappings_app.command("reset")
def reset_mappings(
    media_type: str = typer.Argument(..., help="Media type whose mappings to reset."),
    settings_path: Optional[Path] = _settings_option(),
) -> None:
    """Restore the default mapping for every property of a media type."""

    store = SettingsStore(settings_path)
    try:
        resolved = resolve_media_type(media_type)
    except MediaDbError as exc:
        raise _fail(str(exc)) from exc
    saved = store.save_property_mapping_model(generate_property_mapping_model(resolved))
    _echo_json(saved.get_property_mapping_model(resolved).model_dump(mode="json", by_alias=True))
