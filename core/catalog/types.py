"""Catalog value objects: pure, immutable, no I/O.

``MusicEntry`` mirrors a persisted music row; the statistics types are
derived reports that are never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

TITLE_MAX_LENGTH = 200
ARTIST_MAX_LENGTH = 100
ALBUM_MAX_LENGTH = 100


@runtime_checkable
class MusicLike(Protocol):
    """Minimal shape shared by ``MusicEntry`` and ``db.models.MusicRecord``."""

    @property
    def title(self) -> str: ...

    @property
    def artist(self) -> str: ...

    @property
    def album(self) -> str: ...

    @property
    def genres(self) -> list[str] | tuple[str, ...]: ...


@dataclass(frozen=True)
class MusicEntry:
    """A single catalog entry.

    Attributes:
        id: Opaque identifier assigned by the store.
        title: Track title, at most 200 characters.
        artist: Artist name, at most 100 characters.
        album: Album name, at most 100 characters.
        album_art: Public URI of the album art image.
        genres: Ordered, non-empty genre names. Duplicates are kept.
        created_at: Creation timestamp.
        updated_at: Last mutation timestamp.
    """

    id: str
    title: str
    artist: str
    album: str
    album_art: str
    genres: tuple[str, ...]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        for name, cap in (
            ("title", TITLE_MAX_LENGTH),
            ("artist", ARTIST_MAX_LENGTH),
            ("album", ALBUM_MAX_LENGTH),
        ):
            value = getattr(self, name)
            if not value.strip():
                raise ValueError(f"{name} must not be empty")
            if len(value) > cap:
                raise ValueError(f"{name} must be <= {cap} characters, got {len(value)}")
        if not self.album_art:
            raise ValueError("album_art must not be empty")
        if not self.genres:
            raise ValueError("genres must contain at least one genre")
        if any(not g.strip() for g in self.genres):
            raise ValueError("genres must be non-empty strings")


@dataclass(frozen=True)
class Totals:
    """Distinct-value cardinalities over the whole catalog."""

    songs: int
    artists: int
    albums: int
    genres: int


@dataclass(frozen=True)
class GenreCount:
    genre: str
    count: int


@dataclass(frozen=True)
class ArtistStat:
    """Per-artist aggregate. ``albums`` is sorted case-insensitively."""

    artist: str
    song_count: int
    album_count: int
    albums: tuple[str, ...] = field(default=())


@dataclass(frozen=True)
class AlbumStat:
    artist: str
    album: str
    song_count: int


@dataclass(frozen=True)
class StatisticsReport:
    """Composite report returned by ``GET /api/music/statistics``."""

    totals: Totals
    songs_per_genre: tuple[GenreCount, ...]
    artist_stats: tuple[ArtistStat, ...]
    album_stats: tuple[AlbumStat, ...]
