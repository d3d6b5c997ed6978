"""
Tests for core.catalog.query.

Covers clause construction from raw parameters, sort/pagination fallbacks,
and in-memory evaluation of each clause kind.
"""

import pytest

from core.catalog.query import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    MAX_WINDOW_VALUE,
    ClauseKind,
    FilterClause,
    QueryBuilder,
    Window,
    build_music_query,
    build_playlist_query,
    build_song_query,
    parse_positive_int,
    text_terms,
)
from conftest import make_entry


class TestParsePositiveInt:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("3", 3), (" 7 ", 7), (5, 5), ("0", 10), ("-2", 10), ("abc", 10), ("2.5", 10), (None, 10)],
    )
    def test_values(self, raw: object, expected: int) -> None:
        assert parse_positive_int(raw, 10) == expected

    def test_huge_values_are_clamped(self) -> None:
        assert parse_positive_int("99999999999999999999", 10) == MAX_WINDOW_VALUE
        assert parse_positive_int("50", 10, maximum=20) == 20

    def test_huge_page_keeps_skip_in_64_bit_range(self) -> None:
        huge = "99999999999999999999"
        window = QueryBuilder().paginate(huge, huge).build().window
        assert window.skip < 2**63


class TestWindow:
    def test_skip(self) -> None:
        assert Window(page=3, limit=20).skip == 40

    def test_first_page_skips_nothing(self) -> None:
        assert Window().skip == 0

    def test_rejects_zero_page(self) -> None:
        with pytest.raises(ValueError, match="page must be >= 1"):
            Window(page=0)

    def test_rejects_zero_limit(self) -> None:
        with pytest.raises(ValueError, match="limit must be >= 1"):
            Window(limit=0)


class TestBuildMusicQuery:
    def test_empty_params_give_defaults(self) -> None:
        query = build_music_query({})
        assert query.clauses == ()
        assert query.sort.field == "created_at"
        assert query.sort.descending is True
        assert query.window == Window(page=DEFAULT_PAGE, limit=DEFAULT_LIMIT)

    def test_artist_and_genre(self) -> None:
        query = build_music_query({"artist": "x", "genre": "pop"})
        assert [(c.kind, c.field, c.value) for c in query.clauses] == [
            (ClauseKind.SUBSTRING, "artist", "x"),
            (ClauseKind.SET_MEMBERSHIP, "genres", "pop"),
        ]

    def test_search_adds_text_clause(self) -> None:
        query = build_music_query({"search": " night drive "})
        (clause,) = query.clauses
        assert clause.kind is ClauseKind.TEXT_SEARCH
        assert clause.value == "night drive"
        assert clause.fields == ("title", "artist", "album")

    def test_blank_values_are_ignored(self) -> None:
        query = build_music_query({"artist": "  ", "album": "", "genre": None})
        assert query.clauses == ()

    def test_sort_ascending(self) -> None:
        query = build_music_query({"sortBy": "title", "sortOrder": "asc"})
        assert query.sort.field == "title"
        assert query.sort.descending is False

    def test_unknown_sort_falls_back_to_created_at(self) -> None:
        query = build_music_query({"sortBy": "password", "sortOrder": "desc"})
        assert query.sort.field == "created_at"

    def test_any_order_other_than_desc_is_ascending(self) -> None:
        assert build_music_query({"sortOrder": "DESC"}).sort.descending is False

    def test_malformed_pagination_falls_back(self) -> None:
        query = build_music_query({"page": "zero", "limit": "-5"})
        assert query.window == Window(page=1, limit=10)

    def test_pagination(self) -> None:
        query = build_music_query({"page": "2", "limit": "5"})
        assert query.window.skip == 5
        assert query.window.limit == 5


class TestBuildSongQuery:
    def test_always_filters_active(self) -> None:
        query = build_song_query({})
        assert [(c.kind, c.field, c.value) for c in query.clauses] == [
            (ClauseKind.EQUALS, "is_active", True)
        ]

    def test_search_spans_fields(self) -> None:
        query = build_song_query({"search": "blue", "genre": "Jazz", "artist": "miles"})
        kinds = [c.kind for c in query.clauses]
        assert kinds == [
            ClauseKind.EQUALS,
            ClauseKind.EQUALS,
            ClauseKind.SUBSTRING,
            ClauseKind.ANY_SUBSTRING,
        ]
        assert query.clauses[-1].fields == ("title", "artist", "album")


class TestBuildPlaylistQuery:
    @pytest.mark.parametrize(("raw", "expected"), [("true", True), ("false", False)])
    def test_is_public(self, raw: str, expected: bool) -> None:
        (clause,) = build_playlist_query({"isPublic": raw}).clauses
        assert clause.field == "is_public"
        assert clause.value is expected

    def test_is_public_other_values_ignored(self) -> None:
        assert build_playlist_query({"isPublic": "yes"}).clauses == ()

    def test_created_by(self) -> None:
        (clause,) = build_playlist_query({"createdBy": "u-1"}).clauses
        assert (clause.kind, clause.field, clause.value) == (ClauseKind.EQUALS, "created_by", "u-1")


class TestQueryBuilder:
    def test_default_sort_must_be_sortable(self) -> None:
        with pytest.raises(ValueError, match="not in sortable fields"):
            QueryBuilder(sortable={"title": "title"}, default_sort="createdAt")

    def test_chaining_returns_builder(self) -> None:
        builder = QueryBuilder()
        assert builder.substring("artist", "x") is builder
        assert builder.paginate("1", "1") is builder


class TestTextTerms:
    def test_lowercases_and_dedupes(self) -> None:
        assert text_terms("Night NIGHT drive!") == ("night", "drive")

    def test_punctuation_only(self) -> None:
        assert text_terms("?!") == ()


class TestClauseMatching:
    def test_substring_is_case_insensitive(self) -> None:
        clause = FilterClause(ClauseKind.SUBSTRING, "BEAT", ("artist",))
        assert clause.matches(make_entry(artist="The Beatles"))

    def test_set_membership_matches_any_element(self) -> None:
        clause = FilterClause(ClauseKind.SET_MEMBERSHIP, "pop", ("genres",))
        assert clause.matches(make_entry(genres=("Rock", "Synth-Pop")))
        assert not clause.matches(make_entry(genres=("Rock",)))

    def test_text_search_matches_any_term_across_fields(self) -> None:
        clause = FilterClause(ClauseKind.TEXT_SEARCH, "moon river", ("title", "artist", "album"))
        assert clause.matches(make_entry(album="River Deep"))
        assert not clause.matches(make_entry(title="Sunrise"))

    def test_text_search_terms_match_inside_words(self) -> None:
        clause = FilterClause(ClauseKind.TEXT_SEARCH, "rock", ("title", "artist", "album"))
        assert clause.matches(make_entry(title="Rocket Man"))

    def test_text_search_without_word_characters_matches_nothing(self) -> None:
        clause = FilterClause(ClauseKind.TEXT_SEARCH, "!!", ("title", "artist", "album"))
        assert not clause.matches(make_entry())

    def test_substring_is_literal(self) -> None:
        clause = FilterClause(ClauseKind.SUBSTRING, "a.c", ("title",))
        assert not clause.matches(make_entry(title="abc"))
        assert clause.matches(make_entry(title="xa.cx"))


class TestCatalogQueryApply:
    def test_filters_are_conjunctive(self) -> None:
        first = make_entry(id="1", title="A", artist="X", album="M1", genres=("Rock",))
        second = make_entry(id="2", title="B", artist="X", album="M2", genres=("Rock", "Pop"))
        records = [first, second]

        only_artist, total_artist = build_music_query({"artist": "x"}).apply(records)
        both, total_both = build_music_query({"artist": "x", "genre": "pop"}).apply(records)

        assert total_artist == 2
        assert [r.id for r in both] == ["2"]
        assert total_both <= total_artist

    def test_sort_and_window(self) -> None:
        records = [make_entry(id=str(i), title=t) for i, t in enumerate("dbca")]
        page, total = build_music_query(
            {"sortBy": "title", "sortOrder": "asc", "page": "2", "limit": "3"}
        ).apply(records)
        assert total == 4
        assert [r.title for r in page] == ["d"]
