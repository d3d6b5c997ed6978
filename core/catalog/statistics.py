"""
Catalog statistics: totals, songs per genre, per-artist and per-album stats.

Two inputs feed the same ordering code:

- ``SnapshotSource`` runs the group-by passes in Python over a list of
  records (stores without native aggregation, and tests).
- ``db.music_store.MusicStore`` implements ``StatisticsSource`` with SQL
  ``GROUP BY`` queries.

``collect_statistics`` only ever sees grouped counts, so sorting and
tie-breaks are identical whichever source produced them.

Ordering rules:
    songsPerGenre  count descending, then genre (case-insensitive, then exact)
    artistStats    artist (case-insensitive, then exact)
    albumStats     album name only (case-insensitive), then artist.  Albums
                   that share a name across artists interleave by name.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Protocol

from core.catalog.types import (
    AlbumStat,
    ArtistStat,
    GenreCount,
    MusicLike,
    StatisticsReport,
    Totals,
)

logger = logging.getLogger(__name__)

AlbumKey = tuple[str, str]


class StatisticsSource(Protocol):
    """Aggregation primitives a record store must offer."""

    def count(self) -> int: ...

    def distinct(self, field: str) -> set[str]: ...

    def genre_counts(self) -> Mapping[str, int]: ...

    def album_counts(self) -> Mapping[AlbumKey, int]: ...


def _name_key(value: str) -> tuple[str, str]:
    return (value.casefold(), value)


# ---------------------------------------------------------------------------
# Ordering (shared by every source)
# ---------------------------------------------------------------------------


def order_genre_counts(counts: Mapping[str, int]) -> tuple[GenreCount, ...]:
    ordered = sorted(counts.items(), key=lambda item: (-item[1], *_name_key(item[0])))
    return tuple(GenreCount(genre=genre, count=count) for genre, count in ordered)


def artist_stats_from_albums(album_counts: Mapping[AlbumKey, int]) -> tuple[ArtistStat, ...]:
    """Fold (artist, album) counts into per-artist stats."""
    songs: Counter[str] = Counter()
    albums: dict[str, set[str]] = {}
    for (artist, album), count in album_counts.items():
        songs[artist] += count
        albums.setdefault(artist, set()).add(album)

    return tuple(
        ArtistStat(
            artist=artist,
            song_count=songs[artist],
            album_count=len(albums[artist]),
            albums=tuple(sorted(albums[artist], key=_name_key)),
        )
        for artist in sorted(songs, key=_name_key)
    )


def album_stats_from_albums(album_counts: Mapping[AlbumKey, int]) -> tuple[AlbumStat, ...]:
    ordered = sorted(
        album_counts.items(),
        key=lambda item: (*_name_key(item[0][1]), *_name_key(item[0][0])),
    )
    return tuple(
        AlbumStat(artist=artist, album=album, song_count=count)
        for (artist, album), count in ordered
    )


# ---------------------------------------------------------------------------
# In-memory passes
# ---------------------------------------------------------------------------


def count_genres(records: Iterable[MusicLike]) -> Counter[str]:
    """Flatten every record's genres and count each occurrence."""
    counts: Counter[str] = Counter()
    for record in records:
        counts.update(record.genres)
    return counts


def count_albums(records: Iterable[MusicLike]) -> Counter[AlbumKey]:
    return Counter((record.artist, record.album) for record in records)


class SnapshotSource:
    """``StatisticsSource`` over records already loaded into memory."""

    def __init__(self, records: Iterable[MusicLike]) -> None:
        self._records = list(records)

    def count(self) -> int:
        return len(self._records)

    def distinct(self, field: str) -> set[str]:
        return {getattr(record, field) for record in self._records}

    def genre_counts(self) -> Mapping[str, int]:
        return count_genres(self._records)

    def album_counts(self) -> Mapping[AlbumKey, int]:
        return count_albums(self._records)


def songs_per_genre(records: Iterable[MusicLike]) -> tuple[GenreCount, ...]:
    return order_genre_counts(count_genres(records))


def artist_stats(records: Iterable[MusicLike]) -> tuple[ArtistStat, ...]:
    return artist_stats_from_albums(count_albums(records))


def album_stats(records: Iterable[MusicLike]) -> tuple[AlbumStat, ...]:
    return album_stats_from_albums(count_albums(records))


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


def collect_statistics(source: StatisticsSource) -> StatisticsReport:
    """Run every pass against *source* and assemble the report.

    Any exception from the source propagates; no partial report is built.
    """
    genre_counts = source.genre_counts()
    album_counts = source.album_counts()

    totals = Totals(
        songs=source.count(),
        artists=len(source.distinct("artist")),
        albums=len(source.distinct("album")),
        genres=len(genre_counts),
    )
    report = StatisticsReport(
        totals=totals,
        songs_per_genre=order_genre_counts(genre_counts),
        artist_stats=artist_stats_from_albums(album_counts),
        album_stats=album_stats_from_albums(album_counts),
    )
    logger.debug(
        "Statistics: %d songs, %d artists, %d albums, %d genres",
        totals.songs,
        totals.artists,
        totals.albums,
        totals.genres,
    )
    return report


def build_report(records: Iterable[MusicLike]) -> StatisticsReport:
    """Compute the full report from an in-memory snapshot."""
    return collect_statistics(SnapshotSource(records))
