"""
Tests for db.music_store against an in-memory SQLite database.

Covers filtered listing, literal substring matching, keyword search
ranking, native aggregation parity with the in-memory passes, and
mutations.
"""

from collections.abc import Iterator

import pytest

from core.catalog.query import Window, build_music_query
from core.catalog.statistics import build_report, collect_statistics
from db.music_store import MusicStore
from db.session import Database


@pytest.fixture()
def database() -> Iterator[Database]:
    db = Database("sqlite://")
    db.open()
    db.create_schema()
    yield db
    db.close()


@pytest.fixture()
def store(database: Database) -> Iterator[MusicStore]:
    with database.session_scope() as session:
        yield MusicStore(session)


def _add(store: MusicStore, title: str, artist: str, album: str, *genres: str):
    return store.create(
        title=title,
        artist=artist,
        album=album,
        album_art=f"http://testserver/uploads/{title}.png",
        genres=list(genres),
    )


@pytest.fixture()
def seeded(store: MusicStore) -> MusicStore:
    _add(store, "A", "X", "M1", "Rock")
    _add(store, "B", "X", "M2", "Rock", "Pop")
    _add(store, "Night Drive", "Neon 100%", "Synth_Wave", "Electronic")
    return store


class TestDatabaseLifecycle:
    def test_session_before_open_raises(self) -> None:
        db = Database("sqlite://")
        assert not db.is_open
        with pytest.raises(RuntimeError, match="not open"):
            db.session()

    def test_open_and_close_are_idempotent(self) -> None:
        db = Database("sqlite://")
        db.open()
        db.open()
        assert db.is_open
        assert db.dialect_name == "sqlite"
        db.close()
        db.close()
        assert not db.is_open


class TestListing:
    def test_conjunctive_filters(self, seeded: MusicStore) -> None:
        records, total = seeded.list_page(build_music_query({"artist": "x", "genre": "pop"}))
        assert total == 1
        assert [r.title for r in records] == ["B"]

    def test_adding_filter_never_grows_result(self, seeded: MusicStore) -> None:
        _, wide = seeded.list_page(build_music_query({"genre": "rock"}))
        _, narrow = seeded.list_page(build_music_query({"genre": "rock", "album": "m2"}))
        assert wide == 2
        assert narrow == 1

    def test_wildcards_are_literal(self, seeded: MusicStore) -> None:
        _, percent = seeded.list_page(build_music_query({"artist": "100%"}))
        _, underscore = seeded.list_page(build_music_query({"album": "h_w"}))
        _, bare_percent = seeded.list_page(build_music_query({"artist": "%"}))
        assert percent == 1
        assert underscore == 1
        assert bare_percent == 1

    def test_sort_and_paginate(self, seeded: MusicStore) -> None:
        query = build_music_query({"sortBy": "title", "sortOrder": "asc", "page": "2", "limit": "2"})
        records, total = seeded.list_page(query)
        assert total == 3
        assert [r.title for r in records] == ["Night Drive"]

    def test_genres_keep_order_and_duplicates(self, store: MusicStore) -> None:
        record = _add(store, "Dup", "Y", "Z", "Pop", "Rock", "Pop")
        assert store.get(record.id).genres == ["Pop", "Rock", "Pop"]

    def test_search_clause_in_listing(self, seeded: MusicStore) -> None:
        records, total = seeded.list_page(build_music_query({"search": "drive", "artist": "neon"}))
        assert total == 1
        assert records[0].title == "Night Drive"


class TestTextSearch:
    def test_ranked_by_hits(self, seeded: MusicStore) -> None:
        _add(seeded, "Drive", "Night Owls", "Night Drive", "Rock")
        hits, total = seeded.text_search("night drive", Window())
        assert total == 2
        assert hits[0][0].title == "Drive"
        assert hits[0][1] > hits[1][1]

    def test_no_terms_matches_nothing(self, seeded: MusicStore) -> None:
        hits, total = seeded.text_search("!!", Window())
        assert hits == []
        assert total == 0

    def test_window(self, seeded: MusicStore) -> None:
        hits, total = seeded.text_search("x a b", Window(page=2, limit=1))
        assert total == 2
        assert len(hits) == 1


class TestAggregation:
    def test_native_grouping_matches_snapshot(self, seeded: MusicStore) -> None:
        records, _ = seeded.list_page(build_music_query({"limit": "100"}))
        assert collect_statistics(seeded) == build_report(records)

    def test_distinct(self, seeded: MusicStore) -> None:
        assert seeded.distinct("artist") == {"X", "Neon 100%"}

    def test_genre_counts_include_duplicates(self, store: MusicStore) -> None:
        _add(store, "Dup", "Y", "Z", "Pop", "Pop")
        assert store.genre_counts() == {"Pop": 2}


class TestMutations:
    def test_update_replaces_genres(self, seeded: MusicStore) -> None:
        record, *_ = seeded.list_page(build_music_query({"genre": "pop"}))[0]
        updated = seeded.update(record.id, {"title": "B2", "genres": ["Jazz"]})
        assert updated.title == "B2"
        assert updated.genres == ["Jazz"]
        assert seeded.genre_counts() == {"Rock": 1, "Jazz": 1, "Electronic": 1}

    def test_update_rejects_unknown_field(self, seeded: MusicStore) -> None:
        with pytest.raises(ValueError, match="Cannot update fields"):
            seeded.update("any", {"id": "new"})

    def test_update_missing_returns_none(self, store: MusicStore) -> None:
        assert store.update("missing", {"title": "t"}) is None

    def test_delete_removes_from_statistics(self, seeded: MusicStore) -> None:
        (record,), _ = seeded.list_page(build_music_query({"genre": "pop"}))
        assert seeded.delete(record.id) is True
        report = collect_statistics(seeded)
        assert report.totals.songs == 2
        assert "Pop" not in {g.genre for g in report.songs_per_genre}
        assert seeded.text_search("b", Window())[1] == 0

    def test_delete_missing(self, store: MusicStore) -> None:
        assert store.delete("missing") is False
