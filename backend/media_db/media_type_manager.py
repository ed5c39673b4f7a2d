"""Variant dispatch and per-kind settings lookup."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .errors import UnsupportedMediaTypeError
from .media_type import MediaType
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

if TYPE_CHECKING:
    from .settings import MediaDbSettings

logger = logging.getLogger(__name__)

MEDIA_TYPE_MODELS: dict[MediaType, type[MediaTypeModel]] = {
    MediaType.MOVIE: MovieModel,
    MediaType.SERIES: SeriesModel,
    MediaType.COMIC_MANGA: ComicMangaModel,
    MediaType.GAME: GameModel,
    MediaType.WIKI: WikiModel,
    MediaType.MUSIC_RELEASE: MusicReleaseModel,
    MediaType.BOARD_GAME: BoardGameModel,
    MediaType.BOOK: BookModel,
}


def resolve_media_type(value: Any) -> MediaType:
    """Return the ``MediaType`` named by ``value`` or raise ``UnsupportedMediaTypeError``."""

    if isinstance(value, MediaType):
        return value
    try:
        return MediaType(value)
    except (TypeError, ValueError) as exc:
        raise UnsupportedMediaTypeError(value) from exc


def create_model_from_media_type(
    data: Mapping[str, Any] | None, media_type: MediaType | str
) -> MediaTypeModel:
    """Build the record variant for ``media_type`` from partial data.

    Unknown kinds are reported rather than defaulted, since guessing a variant
    would permanently give the record the wrong shape.
    """

    resolved = resolve_media_type(media_type)
    model_cls = MEDIA_TYPE_MODELS[resolved]
    logger.debug("Creating %s from %d field(s)", model_cls.__name__, len(data or {}))
    return model_cls.from_data(data)


def create_model_from_data(data: Mapping[str, Any]) -> MediaTypeModel:
    """Build a record from data carrying its own ``type`` discriminant."""

    return create_model_from_media_type(data, data.get("type"))


def get_file_name_template(settings: MediaDbSettings, media_type: MediaType) -> str:
    return settings.file_name_templates.get(media_type, "")


def get_template_path(settings: MediaDbSettings, media_type: MediaType) -> str:
    return settings.template_paths.get(media_type, "")


def get_folder(settings: MediaDbSettings, media_type: MediaType) -> str:
    return settings.folders.get(media_type, "")
