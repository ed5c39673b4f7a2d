"""Normalized media records shared by every catalog integration."""
from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel
from typing_extensions import Self

from .media_type import MediaType
from .migration import migrate_record

MEDIA_DB_TAG = "mediaDB"


def _coerce_text(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return value


def _coerce_str_list(value: Any) -> Any:
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, tuple):
        return list(value)
    return value


Text = Annotated[str, BeforeValidator(_coerce_text)]
StrList = Annotated[list[Text], BeforeValidator(_coerce_str_list)]


class MediaDbModel(BaseModel):
    """Base configuration for records: snake_case attributes, camelCase export keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class UserData(MediaDbModel):
    """Fields the user controls rather than the catalog."""


class PersonalData(UserData):
    personal_rating: float = 0
    personal_status: Text = ""
    personal_tags: StrList = Field(default_factory=list)


class WatchedData(PersonalData):
    watched: bool = False
    last_watched: Text = ""


class ReadData(PersonalData):
    read: bool = False
    last_read: Text = ""


class PlayedData(PersonalData):
    played: bool = False


class WikiUserData(UserData):
    personal_tags: StrList = Field(default_factory=list)


class MediaTypeModel(MediaDbModel, ABC):
    """Fields and export behaviour shared by every media kind.

    Concrete variants set ``media_type`` and declare their own fields along
    with a ``user_data`` model. ``type`` is derived from ``media_type`` and
    cannot be assigned.
    """

    media_type: ClassVar[MediaType]

    sub_type: Text = ""
    title: Text = ""
    english_title: Text = ""
    year: Text = ""
    data_source: Text = ""
    url: Text = ""
    id: Text = ""
    api_tags: StrList = Field(default_factory=list)
    genres: StrList = Field(default_factory=list)

    user_data: UserData = Field(default_factory=UserData)

    @classmethod
    def from_data(cls, data: Mapping[str, Any] | None = None) -> Self:
        """Build a fully populated record from partial, possibly stale data."""

        return migrate_record(cls(), data or {})

    @computed_field  # type: ignore[prop-decorator]
    @property
    def type(self) -> MediaType:
        return self.get_media_type()

    def get_media_type(self) -> MediaType:
        return type(self).media_type

    def get_summary(self) -> str:
        """Short string disambiguating this record from similar ones."""

        return f"{self.title} ({self.year})"

    @abstractmethod
    def get_tags(self) -> list[str]:
        """Fixed tag labels attached to every note of this kind."""

    def get_without_user_data(self) -> dict[str, Any]:
        """Return an independent dict copy of the record without ``userData``."""

        payload = self.model_dump(by_alias=True, exclude={"user_data"}, mode="json")
        media_type = payload.pop("type")
        return copy.deepcopy({"type": media_type, **payload})

    def to_metadata_object(self) -> dict[str, Any]:
        """Flatten the record into the payload written as front matter."""

        return {
            **self.get_without_user_data(),
            **self.user_data.model_dump(by_alias=True, mode="json"),
            "tags": "/".join(self.get_tags()),
        }


class MovieModel(MediaTypeModel):
    media_type: ClassVar[MediaType] = MediaType.MOVIE

    plot: Text = ""
    director: StrList = Field(default_factory=list)
    writer: StrList = Field(default_factory=list)
    studio: StrList = Field(default_factory=list)
    duration: Text = ""
    online_rating: float = 0
    actors: StrList = Field(default_factory=list)
    image: Text = ""
    released: bool = False
    streaming_services: StrList = Field(default_factory=list)
    premiere: Text = ""

    user_data: WatchedData = Field(default_factory=WatchedData)

    def get_tags(self) -> list[str]:
        return [MEDIA_DB_TAG, "tv", "movie"]


class SeriesModel(MediaTypeModel):
    media_type: ClassVar[MediaType] = MediaType.SERIES

    plot: Text = ""
    writer: StrList = Field(default_factory=list)
    studio: StrList = Field(default_factory=list)
    episodes: int = 0
    duration: Text = ""
    online_rating: float = 0
    actors: StrList = Field(default_factory=list)
    image: Text = ""
    released: bool = False
    streaming_services: StrList = Field(default_factory=list)
    airing: bool = False
    aired_from: Text = ""
    aired_to: Text = ""

    user_data: WatchedData = Field(default_factory=WatchedData)

    def get_tags(self) -> list[str]:
        return [MEDIA_DB_TAG, "tv", "series"]


class GameModel(MediaTypeModel):
    media_type: ClassVar[MediaType] = MediaType.GAME

    developers: StrList = Field(default_factory=list)
    publishers: StrList = Field(default_factory=list)
    platforms: StrList = Field(default_factory=list)
    composer: StrList = Field(default_factory=list)
    director: StrList = Field(default_factory=list)
    producer: StrList = Field(default_factory=list)
    supervisor: StrList = Field(default_factory=list)
    designer: StrList = Field(default_factory=list)
    programmer: StrList = Field(default_factory=list)
    sound_director: StrList = Field(default_factory=list)
    writer: StrList = Field(default_factory=list)
    cast: StrList = Field(default_factory=list)
    artist: StrList = Field(default_factory=list)
    online_rating: float = 0
    image: Text = ""
    website: Text = ""
    description: Text = ""
    released: bool = False
    release_date: Text = ""

    user_data: PlayedData = Field(default_factory=PlayedData)

    def get_tags(self) -> list[str]:
        return [MEDIA_DB_TAG, "game"]

    def get_summary(self) -> str:
        return f"{self.english_title} ({self.year})"


class BookModel(MediaTypeModel):
    media_type: ClassVar[MediaType] = MediaType.BOOK

    author: Text = ""
    plot: Text = ""
    pages: int = 0
    image: Text = ""
    online_rating: float = 0
    isbn: Text = ""
    isbn13: Text = ""
    released: bool = False

    user_data: ReadData = Field(default_factory=ReadData)

    def get_tags(self) -> list[str]:
        return [MEDIA_DB_TAG, "book"]

    def get_summary(self) -> str:
        return f"{self.title} ({self.year}) - {self.author}"


class ComicMangaModel(MediaTypeModel):
    media_type: ClassVar[MediaType] = MediaType.COMIC_MANGA

    plot: Text = ""
    alternate_titles: StrList = Field(default_factory=list)
    authors: StrList = Field(default_factory=list)
    chapters: int = 0
    volumes: int = 0
    online_rating: float = 0
    image: Text = ""
    released: bool = False
    status: Text = ""
    publishers: StrList = Field(default_factory=list)
    published_from: Text = ""
    published_to: Text = ""

    user_data: ReadData = Field(default_factory=ReadData)

    def get_tags(self) -> list[str]:
        return [MEDIA_DB_TAG, "comicManga"]


class MusicReleaseModel(MediaTypeModel):
    media_type: ClassVar[MediaType] = MediaType.MUSIC_RELEASE

    artists: StrList = Field(default_factory=list)
    language: Text = ""
    image: Text = ""
    rating: float = 0
    release_date: Text = ""

    user_data: PersonalData = Field(default_factory=PersonalData)

    def get_tags(self) -> list[str]:
        tags = [MEDIA_DB_TAG, "music"]
        if self.sub_type:
            tags.append(self.sub_type)
        return tags

    def get_summary(self) -> str:
        return f"{self.title} ({self.year}) - {', '.join(self.artists)}"


class BoardGameModel(MediaTypeModel):
    media_type: ClassVar[MediaType] = MediaType.BOARD_GAME

    online_rating: float = 0
    complexity_rating: float = 0
    min_players: int = 0
    max_players: int = 0
    playtime: Text = ""
    publishers: StrList = Field(default_factory=list)
    image: Text = ""
    released: bool = False

    user_data: PlayedData = Field(default_factory=PlayedData)

    def get_tags(self) -> list[str]:
        return [MEDIA_DB_TAG, "boardgame"]


class WikiModel(MediaTypeModel):
    media_type: ClassVar[MediaType] = MediaType.WIKI

    wiki_url: Text = ""
    last_updated: Text = ""
    length: int = 0
    article: Text = ""

    user_data: WikiUserData = Field(default_factory=WikiUserData)

    def get_tags(self) -> list[str]:
        return [MEDIA_DB_TAG, "wiki"]

    def get_summary(self) -> str:
        return self.title
