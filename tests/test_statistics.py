"""
Tests for core.catalog.statistics.

Covers the two-record reference scenario, ordering and tie-breaks of each
pass, aggregate invariants, and failure propagation.
"""

from unittest.mock import MagicMock

import pytest

from core.catalog.statistics import (
    SnapshotSource,
    album_stats,
    artist_stats,
    build_report,
    collect_statistics,
    order_genre_counts,
    songs_per_genre,
)
from core.catalog.types import AlbumStat, ArtistStat, GenreCount, Totals
from conftest import make_entry


def _two_records() -> list:
    return [
        make_entry(id="1", title="A", artist="X", album="M1", genres=("Rock",)),
        make_entry(id="2", title="B", artist="X", album="M2", genres=("Rock", "Pop")),
    ]


class TestReferenceScenario:
    def test_totals(self) -> None:
        report = build_report(_two_records())
        assert report.totals == Totals(songs=2, artists=1, albums=2, genres=2)

    def test_songs_per_genre(self) -> None:
        report = build_report(_two_records())
        assert report.songs_per_genre == (
            GenreCount(genre="Rock", count=2),
            GenreCount(genre="Pop", count=1),
        )

    def test_artist_stats(self) -> None:
        report = build_report(_two_records())
        assert report.artist_stats == (
            ArtistStat(artist="X", song_count=2, album_count=2, albums=("M1", "M2")),
        )

    def test_album_stats(self) -> None:
        report = build_report(_two_records())
        assert report.album_stats == (
            AlbumStat(artist="X", album="M1", song_count=1),
            AlbumStat(artist="X", album="M2", song_count=1),
        )


class TestEmptyCatalog:
    def test_everything_is_zero(self) -> None:
        report = build_report([])
        assert report.totals == Totals(songs=0, artists=0, albums=0, genres=0)
        assert report.songs_per_genre == ()
        assert report.artist_stats == ()
        assert report.album_stats == ()


class TestSongsPerGenre:
    def test_ties_break_by_name(self) -> None:
        ordered = order_genre_counts({"rock": 1, "Jazz": 1, "Ambient": 3, "blues": 1})
        assert [g.genre for g in ordered] == ["Ambient", "blues", "Jazz", "rock"]

    def test_case_variants_break_on_exact_value(self) -> None:
        ordered = order_genre_counts({"pop": 1, "Pop": 1})
        assert [g.genre for g in ordered] == ["Pop", "pop"]

    def test_duplicate_genres_count_twice(self) -> None:
        (only,) = songs_per_genre([make_entry(genres=("Rock", "Rock"))])
        assert only == GenreCount(genre="Rock", count=2)

    def test_sum_equals_flattened_length(self) -> None:
        records = [
            make_entry(id="1", genres=("Rock", "Pop")),
            make_entry(id="2", genres=("Pop",)),
            make_entry(id="3", genres=("Jazz", "Rock", "Rock")),
        ]
        counts = songs_per_genre(records)
        assert sum(g.count for g in counts) == sum(len(r.genres) for r in records)
        assert build_report(records).totals.genres == len({g for r in records for g in r.genres})


class TestArtistStats:
    def test_sorted_case_insensitively(self) -> None:
        records = [
            make_entry(id="1", artist="beta"),
            make_entry(id="2", artist="Alpha"),
            make_entry(id="3", artist="Gamma"),
        ]
        assert [a.artist for a in artist_stats(records)] == ["Alpha", "beta", "Gamma"]

    def test_album_count_is_distinct(self) -> None:
        records = [
            make_entry(id="1", artist="X", album="b-side"),
            make_entry(id="2", artist="X", album="A-side"),
            make_entry(id="3", artist="X", album="A-side"),
        ]
        (stat,) = artist_stats(records)
        assert stat.song_count == 3
        assert stat.album_count == 2
        assert stat.albums == ("A-side", "b-side")


class TestAlbumStats:
    def test_groups_by_artist_and_album(self) -> None:
        records = [
            make_entry(id="1", artist="X", album="Live"),
            make_entry(id="2", artist="X", album="Live"),
            make_entry(id="3", artist="Y", album="Live"),
        ]
        stats = album_stats(records)
        assert [(s.artist, s.album, s.song_count) for s in stats] == [
            ("X", "Live", 2),
            ("Y", "Live", 1),
        ]

    def test_ordered_by_album_name_only(self) -> None:
        # Known quirk: albums interleave across artists because only the
        # album name drives the ordering.
        records = [
            make_entry(id="1", artist="Aardvark", album="Zebra"),
            make_entry(id="2", artist="Zulu", album="apple"),
            make_entry(id="3", artist="Aardvark", album="Mango"),
        ]
        stats = album_stats(records)
        assert [(s.artist, s.album) for s in stats] == [
            ("Zulu", "apple"),
            ("Aardvark", "Mango"),
            ("Aardvark", "Zebra"),
        ]


class TestCollectStatistics:
    def test_snapshot_source_matches_build_report(self) -> None:
        records = _two_records()
        assert collect_statistics(SnapshotSource(records)) == build_report(records)

    def test_failing_pass_fails_whole_report(self) -> None:
        source = MagicMock()
        source.genre_counts.return_value = {"Rock": 1}
        source.album_counts.side_effect = RuntimeError("store down")
        with pytest.raises(RuntimeError, match="store down"):
            collect_statistics(source)
