"""Pydantic schemas for ``/api/songs``."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import Field, field_validator

from api.schemas.envelope import ApiModel

Genre = Literal[
    "Rock",
    "Pop",
    "Hip-Hop",
    "Electronic",
    "Jazz",
    "Classical",
    "Country",
    "R&B",
    "Other",
]

MIN_RELEASE_YEAR = 1900


def _check_release_year(value: int | None) -> int | None:
    if value is None:
        return None
    current = datetime.now(UTC).year
    if not MIN_RELEASE_YEAR <= value <= current:
        raise ValueError(f"Release year must be between {MIN_RELEASE_YEAR} and {current}")
    return value


class SongCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=100)
    artist: str = Field(..., min_length=1, max_length=100)
    album: str | None = Field(default=None, max_length=100)
    genre: Genre
    duration: int = Field(..., ge=1, description="Length in seconds.")
    release_year: int | None = None
    file_path: str = Field(..., min_length=1)
    cover_art: str | None = None
    lyrics: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", "artist", "album", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("release_year")
    @classmethod
    def release_year_in_range(cls, v: int | None) -> int | None:
        return _check_release_year(v)


class SongUpdate(ApiModel):
    title: str | None = Field(default=None, min_length=1, max_length=100)
    artist: str | None = Field(default=None, min_length=1, max_length=100)
    album: str | None = Field(default=None, max_length=100)
    genre: Genre | None = None
    duration: int | None = Field(default=None, ge=1)
    release_year: int | None = None
    file_path: str | None = Field(default=None, min_length=1)
    cover_art: str | None = None
    lyrics: str | None = None
    tags: list[str] | None = None

    @field_validator("title", "artist", "album", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("release_year")
    @classmethod
    def release_year_in_range(cls, v: int | None) -> int | None:
        return _check_release_year(v)


class UserRef(ApiModel):
    id: str
    username: str
    profile_pic: str | None = None


class SongOut(ApiModel):
    id: str
    title: str
    artist: str
    album: str | None = None
    genre: str
    duration: int
    formatted_duration: str
    release_year: int | None = None
    file_path: str
    cover_art: str | None = None
    lyrics: str | None = None
    play_count: int = 0
    is_active: bool = True
    tags: list[str] = Field(default_factory=list)
    uploaded_by: UserRef | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_song(cls, song: object) -> "SongOut":
        """Build from a ``db.models.Song``, expanding the uploader reference."""
        data = {name: getattr(song, name) for name in cls.model_fields if name != "uploaded_by"}
        uploader = getattr(song, "uploader", None)
        data["tags"] = list(data["tags"] or [])
        data["uploaded_by"] = UserRef.model_validate(uploader) if uploader else None
        return cls(**data)
