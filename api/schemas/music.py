"""
Pydantic schemas for the ``/api/music`` endpoints.

Input models validate multipart form fields and report the first failing
rule with a fixed message (``"Title is required"``, ...).  Output models
serialize ORM rows and statistics reports with camelCase keys.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from api.schemas.envelope import ApiModel
from core.catalog.types import (
    ALBUM_MAX_LENGTH,
    ARTIST_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    StatisticsReport,
)

# field -> (required message, too-long message, cap)
_TEXT_RULES: dict[str, tuple[str, str, int]] = {
    "title": (
        "Title is required",
        f"Title cannot exceed {TITLE_MAX_LENGTH} characters",
        TITLE_MAX_LENGTH,
    ),
    "artist": (
        "Artist is required",
        f"Artist name cannot exceed {ARTIST_MAX_LENGTH} characters",
        ARTIST_MAX_LENGTH,
    ),
    "album": (
        "Album is required",
        f"Album name cannot exceed {ALBUM_MAX_LENGTH} characters",
        ALBUM_MAX_LENGTH,
    ),
}


def _check_text(field: str, value: Any) -> str:
    required, too_long, cap = _TEXT_RULES[field]
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValueError(required)
    value = value.strip()
    if len(value) > cap:
        raise ValueError(too_long)
    return value


def _check_genres(value: Any) -> list[str]:
    if value is None:
        raise ValueError("At least one genre is required")
    genres = value if isinstance(value, list | tuple) else [value]
    if not genres:
        raise ValueError("At least one genre is required")
    if not all(isinstance(g, str) and g.strip() for g in genres):
        raise ValueError("All genres must be non-empty strings")
    return [g.strip() for g in genres]


class MusicCreate(BaseModel):
    """Fields of ``POST /api/music`` (album art arrives as a file)."""

    title: str = Field(default=None, validate_default=True)
    artist: str = Field(default=None, validate_default=True)
    album: str = Field(default=None, validate_default=True)
    genres: list[str] = Field(default=None, validate_default=True)

    @field_validator("title", "artist", "album", mode="before")
    @classmethod
    def text_required(cls, v: Any, info: Any) -> str:
        return _check_text(info.field_name, v)

    @field_validator("genres", mode="before")
    @classmethod
    def genres_required(cls, v: Any) -> list[str]:
        return _check_genres(v)


class MusicUpdate(BaseModel):
    """Partial update; omitted fields are left untouched."""

    title: str | None = None
    artist: str | None = None
    album: str | None = None
    genres: list[str] | None = None

    @field_validator("title", "artist", "album", mode="before")
    @classmethod
    def text_if_present(cls, v: Any, info: Any) -> str | None:
        if v is None:
            return None
        return _check_text(info.field_name, v)

    @field_validator("genres", mode="before")
    @classmethod
    def genres_if_present(cls, v: Any) -> list[str] | None:
        if v is None:
            return None
        return _check_genres(v)


class MusicOut(ApiModel):
    id: str
    title: str
    artist: str
    album: str
    album_art: str
    genres: list[str]
    created_at: datetime | None = None
    updated_at: datetime | None = None
    score: float | None = Field(default=None, description="Relevance score (search only).")


class MusicPayload(ApiModel):
    music: MusicOut


# ---------------------------------------------------------------------------
# /api/music/statistics
# ---------------------------------------------------------------------------


class TotalsOut(ApiModel):
    songs: int
    artists: int
    albums: int
    genres: int


class GenreCountOut(ApiModel):
    genre: str
    count: int


class ArtistStatOut(ApiModel):
    artist: str
    song_count: int
    album_count: int
    albums: list[str]


class AlbumStatOut(ApiModel):
    artist: str
    album: str
    song_count: int


class StatisticsOut(ApiModel):
    totals: TotalsOut
    songs_per_genre: list[GenreCountOut]
    artist_stats: list[ArtistStatOut]
    album_stats: list[AlbumStatOut]

    @classmethod
    def from_report(cls, report: StatisticsReport) -> "StatisticsOut":
        return cls.model_validate(report, from_attributes=True)
