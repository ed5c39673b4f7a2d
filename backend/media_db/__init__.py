"""Normalized media records, schema migration and note export."""

from .errors import (
    LockedPropertyError,
    MediaDbError,
    MissingIdentityError,
    PropertyMappingError,
    UnsupportedMediaTypeError,
)
from .export import (
    NoteExport,
    build_front_matter,
    export_record,
    generate_note_content,
    get_file_name,
    load_record_from_note,
    merge_user_data,
    parse_front_matter,
    render_front_matter,
)
from .media_type import MEDIA_TYPES, MediaType
from .media_type_manager import create_model_from_data, create_model_from_media_type
from .migration import migrate_record, reconcile
from .models import (
    BoardGameModel,
    BookModel,
    ComicMangaModel,
    GameModel,
    MediaTypeModel,
    MovieModel,
    MusicReleaseModel,
    SeriesModel,
    WikiModel,
)
from .property_mapping import (
    LOCKED_PROPERTY_MAPPINGS,
    PropertyMapping,
    PropertyMappingModel,
    PropertyMappingOption,
    apply_property_mappings,
    revert_property_mappings,
)
from .settings import MediaDbSettings, load_settings
from .templating import render_template

__all__ = [
    "BoardGameModel",
    "BookModel",
    "ComicMangaModel",
    "GameModel",
    "LOCKED_PROPERTY_MAPPINGS",
    "LockedPropertyError",
    "MEDIA_TYPES",
    "MediaDbError",
    "MediaDbSettings",
    "MediaType",
    "MediaTypeModel",
    "MissingIdentityError",
    "MovieModel",
    "MusicReleaseModel",
    "NoteExport",
    "PropertyMapping",
    "PropertyMappingError",
    "PropertyMappingModel",
    "PropertyMappingOption",
    "SeriesModel",
    "UnsupportedMediaTypeError",
    "WikiModel",
    "apply_property_mappings",
    "build_front_matter",
    "create_model_from_data",
    "create_model_from_media_type",
    "export_record",
    "generate_note_content",
    "get_file_name",
    "load_record_from_note",
    "load_settings",
    "merge_user_data",
    "migrate_record",
    "parse_front_matter",
    "reconcile",
    "render_front_matter",
    "render_template",
    "revert_property_mappings",
]
