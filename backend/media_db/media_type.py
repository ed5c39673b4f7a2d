"""Closed enumeration of the media kinds handled by Media DB."""
from __future__ import annotations

from enum import Enum


class MediaType(str, Enum):
    """Discriminant shared by every record variant."""

    MOVIE = "movie"
    SERIES = "series"
    COMIC_MANGA = "comicManga"
    GAME = "game"
    WIKI = "wiki"
    MUSIC_RELEASE = "musicRelease"
    BOARD_GAME = "boardgame"
    BOOK = "book"

    def __str__(self) -> str:
        return self.value


MEDIA_TYPES: tuple[MediaType, ...] = (
    MediaType.MOVIE,
    MediaType.SERIES,
    MediaType.COMIC_MANGA,
    MediaType.GAME,
    MediaType.WIKI,
    MediaType.MUSIC_RELEASE,
    MediaType.BOARD_GAME,
    MediaType.BOOK,
)
