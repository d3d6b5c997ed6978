"""
Query builder for catalog listings.

Turns a bag of optional request parameters into a ``CatalogQuery``: a tuple
of typed filter clauses (combined with AND), one sort field and a
pagination window.  The query is backend-neutral: ``db/`` compiles it to
SQLAlchemy, and ``CatalogQuery.apply`` evaluates it over in-memory records.

Parameters never raise here.  Missing or malformed numbers fall back to
their defaults, unknown sort fields fall back to the default sort.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
# page and limit ceiling; (2**31 - 1) ** 2 stays below the 64-bit OFFSET range
MAX_WINDOW_VALUE = 2**31 - 1

TEXT_SEARCH_FIELDS: tuple[str, ...] = ("title", "artist", "album")

# API sort names -> record attribute names
MUSIC_SORT_FIELDS: dict[str, str] = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "title": "title",
    "artist": "artist",
    "album": "album",
}

_WORD = re.compile(r"\w+", re.UNICODE)


class ClauseKind(Enum):
    TEXT_SEARCH = "text_search"
    SUBSTRING = "substring"
    SET_MEMBERSHIP = "set_membership"
    EQUALS = "equals"
    ANY_SUBSTRING = "any_substring"


def text_terms(query: str) -> tuple[str, ...]:
    """Split a free-text query into lower-cased, de-duplicated word terms."""
    seen: dict[str, None] = {}
    for term in _WORD.findall(query.lower()):
        seen.setdefault(term, None)
    return tuple(seen)


def _contains(haystack: Any, needle: str) -> bool:
    return isinstance(haystack, str) and needle.casefold() in haystack.casefold()


@dataclass(frozen=True)
class FilterClause:
    """One predicate a record must satisfy.

    Attributes:
        kind: Which matching rule applies.
        value: The user-supplied value (query text, substring, exact value).
        fields: Record attribute names the clause inspects.
    """

    kind: ClauseKind
    value: Any
    fields: tuple[str, ...]

    @property
    def field(self) -> str:
        return self.fields[0]

    def matches(self, record: Any) -> bool:
        """Evaluate the clause against a record held in memory."""
        if self.kind is ClauseKind.TEXT_SEARCH:
            terms = text_terms(self.value)
            return any(
                _contains(getattr(record, name, None), term)
                for name in self.fields
                for term in terms
            )
        if self.kind is ClauseKind.SUBSTRING:
            return _contains(getattr(record, self.field, None), self.value)
        if self.kind is ClauseKind.SET_MEMBERSHIP:
            values = getattr(record, self.field, None) or ()
            return any(_contains(v, self.value) for v in values)
        if self.kind is ClauseKind.EQUALS:
            return getattr(record, self.field, None) == self.value
        if self.kind is ClauseKind.ANY_SUBSTRING:
            return any(_contains(getattr(record, name, None), self.value) for name in self.fields)
        raise ValueError(f"Unsupported clause kind: {self.kind!r}")


@dataclass(frozen=True)
class SortSpec:
    field: str
    descending: bool = True


@dataclass(frozen=True)
class Window:
    """Pagination window. ``page`` and ``limit`` are both >= 1."""

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.limit < 1:
            raise ValueError(f"limit must be >= 1, got {self.limit}")

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class CatalogQuery:
    """Conjunction of clauses plus sort and window."""

    clauses: tuple[FilterClause, ...]
    sort: SortSpec
    window: Window

    def matches(self, record: Any) -> bool:
        return all(clause.matches(record) for clause in self.clauses)

    def apply(self, records: Iterable[Any]) -> tuple[list[Any], int]:
        """Filter, sort and slice *records*.

        Returns:
            ``(page_items, total_matching)``.
        """
        matching = [r for r in records if self.matches(r)]
        matching.sort(
            key=lambda r: getattr(r, self.sort.field),
            reverse=self.sort.descending,
        )
        start = self.window.skip
        return matching[start : start + self.window.limit], len(matching)


def parse_positive_int(value: Any, default: int, maximum: int = MAX_WINDOW_VALUE) -> int:
    """Parse *value* as an integer >= 1, returning *default* otherwise.

    Values above *maximum* are clamped to it so ``skip`` always fits a
    64-bit database integer.
    """
    if value is None:
        return default
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return default
    return min(parsed, maximum) if parsed >= 1 else default


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


class QueryBuilder:
    """Accumulates typed clauses, then freezes them into a ``CatalogQuery``.

    Absent values (``None`` or blank strings) are skipped, so callers can
    pass request parameters straight through.

    Example:
        >>> query = (
        ...     QueryBuilder()
        ...     .substring("artist", "x")
        ...     .set_membership("genres", "pop")
        ...     .paginate("2", "5")
        ...     .build()
        ... )
        >>> query.window.skip
        5
    """

    def __init__(
        self,
        *,
        sortable: Mapping[str, str] = MUSIC_SORT_FIELDS,
        default_sort: str = "createdAt",
    ) -> None:
        if default_sort not in sortable:
            raise ValueError(f"default_sort {default_sort!r} is not in sortable fields")
        self._sortable = dict(sortable)
        self._default_sort = default_sort
        self._clauses: list[FilterClause] = []
        self._sort = SortSpec(field=self._sortable[default_sort], descending=True)
        self._window = Window()

    def text_search(
        self, query: str | None, fields: Sequence[str] = TEXT_SEARCH_FIELDS
    ) -> QueryBuilder:
        if _present(query):
            self._clauses.append(FilterClause(ClauseKind.TEXT_SEARCH, query.strip(), tuple(fields)))
        return self

    def substring(self, field: str, value: str | None) -> QueryBuilder:
        if _present(value):
            self._clauses.append(FilterClause(ClauseKind.SUBSTRING, value.strip(), (field,)))
        return self

    def set_membership(self, field: str, value: str | None) -> QueryBuilder:
        if _present(value):
            self._clauses.append(FilterClause(ClauseKind.SET_MEMBERSHIP, value.strip(), (field,)))
        return self

    def equals(self, field: str, value: Any) -> QueryBuilder:
        if _present(value):
            self._clauses.append(FilterClause(ClauseKind.EQUALS, value, (field,)))
        return self

    def any_substring(self, fields: Sequence[str], value: str | None) -> QueryBuilder:
        if _present(value):
            self._clauses.append(
                FilterClause(ClauseKind.ANY_SUBSTRING, value.strip(), tuple(fields))
            )
        return self

    def sort(self, sort_by: str | None, sort_order: str | None) -> QueryBuilder:
        """Set the sort field. Only ``"desc"`` sorts descending."""
        name = sort_by if sort_by in self._sortable else self._default_sort
        order = sort_order or "desc"
        self._sort = SortSpec(field=self._sortable[name], descending=order == "desc")
        return self

    def paginate(self, page: Any, limit: Any) -> QueryBuilder:
        self._window = Window(
            page=parse_positive_int(page, DEFAULT_PAGE),
            limit=parse_positive_int(limit, DEFAULT_LIMIT),
        )
        return self

    def build(self) -> CatalogQuery:
        return CatalogQuery(clauses=tuple(self._clauses), sort=self._sort, window=self._window)


def build_music_query(params: Mapping[str, Any]) -> CatalogQuery:
    """Build the query for ``GET /api/music`` from raw query parameters."""
    return (
        QueryBuilder()
        .text_search(params.get("search"))
        .substring("artist", params.get("artist"))
        .substring("album", params.get("album"))
        .set_membership("genres", params.get("genre"))
        .sort(params.get("sortBy"), params.get("sortOrder"))
        .paginate(params.get("page"), params.get("limit"))
        .build()
    )


SONG_SORT_FIELDS: dict[str, str] = {"createdAt": "created_at", "title": "title"}
PLAYLIST_SORT_FIELDS: dict[str, str] = {"createdAt": "created_at", "name": "name"}


def build_song_query(params: Mapping[str, Any]) -> CatalogQuery:
    """Build the query for ``GET /api/songs``. Inactive songs never match."""
    return (
        QueryBuilder(sortable=SONG_SORT_FIELDS)
        .equals("is_active", True)
        .equals("genre", params.get("genre") or None)
        .substring("artist", params.get("artist"))
        .any_substring(TEXT_SEARCH_FIELDS, params.get("search"))
        .sort(params.get("sortBy"), params.get("sortOrder"))
        .paginate(params.get("page"), params.get("limit"))
        .build()
    )


def build_playlist_query(params: Mapping[str, Any]) -> CatalogQuery:
    """Build the query for ``GET /api/playlists``.

    ``isPublic`` filters only when it is exactly ``"true"`` or ``"false"``.
    """
    flag = params.get("isPublic")
    is_public = {"true": True, "false": False}.get(flag) if isinstance(flag, str) else None
    return (
        QueryBuilder(sortable=PLAYLIST_SORT_FIELDS)
        .equals("is_public", is_public)
        .equals("created_by", params.get("createdBy") or None)
        .sort(params.get("sortBy"), params.get("sortOrder"))
        .paginate(params.get("page"), params.get("limit"))
        .build()
    )
