"""Pydantic schemas for ``/api/playlists``."""

from datetime import datetime

from pydantic import Field, field_validator

from api.schemas.envelope import ApiModel
from api.schemas.songs import UserRef


class PlaylistCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_public: bool = False
    cover_art: str | None = None
    tags: list[str] = Field(default_factory=list)
    songs: list[str] = Field(default_factory=list, description="Initial song ids, in order.")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class PlaylistUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_public: bool | None = None
    cover_art: str | None = None
    tags: list[str] | None = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class AddSongRequest(ApiModel):
    song_id: str = Field(..., min_length=1)


class SongRef(ApiModel):
    id: str
    title: str
    artist: str
    duration: int
    formatted_duration: str
    cover_art: str | None = None


class PlaylistEntryOut(ApiModel):
    song: SongRef
    added_at: datetime | None = None
    order: int


class PlaylistOut(ApiModel):
    id: str
    name: str
    description: str | None = None
    is_public: bool = False
    cover_art: str | None = None
    songs: list[PlaylistEntryOut] = Field(default_factory=list)
    song_count: int = 0
    created_by: UserRef | None = None
    play_count: int = 0
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_playlist(cls, playlist: object) -> "PlaylistOut":
        """Build from a ``db.models.Playlist`` with its entries and creator."""
        entries = [
            PlaylistEntryOut(
                song=SongRef.model_validate(entry.song),
                added_at=entry.added_at,
                order=entry.position,
            )
            for entry in playlist.entries
        ]
        creator = playlist.creator
        return cls(
            id=playlist.id,
            name=playlist.name,
            description=playlist.description,
            is_public=playlist.is_public,
            cover_art=playlist.cover_art,
            songs=entries,
            song_count=playlist.song_count,
            created_by=UserRef.model_validate(creator) if creator else None,
            play_count=playlist.play_count,
            tags=list(playlist.tags or []),
            created_at=playlist.created_at,
            updated_at=playlist.updated_at,
        )
