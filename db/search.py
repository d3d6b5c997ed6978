"""
Compile ``core.catalog.query`` clauses into SQLAlchemy expressions.

Text search uses PostgreSQL full-text search (``to_tsvector`` /
``to_tsquery`` with ``ts_rank``) so the GIN index on ``music`` is used.
Other dialects (SQLite in tests) get a keyword ``ILIKE`` match where each
(term, field) hit scores one point.  Both treat the query as an OR of its
words across the searched fields.

The two backends differ on what counts as a hit.  PostgreSQL matches whole
stemmed words ("rocks" finds "Rock", "rock" does not find "Rocket").  The
``ILIKE`` path matches each term as a substring ("rock" finds "Rocket"),
the same rule ``FilterClause.matches`` applies in memory.

Substring clauses are literal: ``%``, ``_`` and ``\\`` in user input are
escaped before they reach ``LIKE``.
"""

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from sqlalchemy import ColumnElement, and_, case, false, func, literal, literal_column, or_

from core.catalog.query import ClauseKind, FilterClause, text_terms

LIKE_ESCAPE = "\\"

# field name -> callable building an EXISTS over a child collection
CollectionMatcher = Callable[[str], ColumnElement[bool]]


def escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(value: str) -> str:
    return f"%{escape_like(value)}%"


def icontains(column: Any, value: str) -> ColumnElement[bool]:
    """Case-insensitive literal substring match."""
    return column.ilike(contains_pattern(value), escape=LIKE_ESCAPE)


def _ts_document(columns: Sequence[Any]) -> ColumnElement[Any]:
    document = columns[0]
    for column in columns[1:]:
        document = document + " " + column
    return func.to_tsvector(literal_column("'english'"), document)


def _ts_query(terms: Sequence[str]) -> ColumnElement[Any]:
    return func.to_tsquery(literal_column("'english'"), " | ".join(terms))


def text_search_condition(
    dialect: str, columns: Sequence[Any], query: str
) -> ColumnElement[bool]:
    """Match records where any word of *query* appears in any of *columns*."""
    terms = text_terms(query)
    if not terms:
        return false()
    if dialect == "postgresql":
        return _ts_document(columns).op("@@")(_ts_query(terms))
    return or_(*(icontains(column, term) for column in columns for term in terms))


def text_search_score(dialect: str, columns: Sequence[Any], query: str) -> ColumnElement[Any]:
    """Relevance score for ranking text-search hits, highest first."""
    terms = text_terms(query)
    if not terms:
        return literal(0.0)
    if dialect == "postgresql":
        return func.ts_rank(_ts_document(columns), _ts_query(terms))
    hits = [
        case((icontains(column, term), 1), else_=0) for column in columns for term in terms
    ]
    total: ColumnElement[Any] = hits[0]
    for hit in hits[1:]:
        total = total + hit
    return total


def compile_clause(
    clause: FilterClause,
    columns: Mapping[str, Any],
    *,
    dialect: str,
    collections: Mapping[str, CollectionMatcher] | None = None,
) -> ColumnElement[bool]:
    """Translate one clause against a model's column map.

    Args:
        clause: The clause to compile.
        columns: Record field name -> mapped column.
        dialect: Backend name, selects the text-search implementation.
        collections: Field name -> matcher for ``SET_MEMBERSHIP`` clauses.

    Raises:
        ValueError: If the clause names a field the model does not expose.
    """
    try:
        if clause.kind is ClauseKind.TEXT_SEARCH:
            return text_search_condition(
                dialect, [columns[name] for name in clause.fields], clause.value
            )
        if clause.kind is ClauseKind.SUBSTRING:
            return icontains(columns[clause.field], clause.value)
        if clause.kind is ClauseKind.SET_MEMBERSHIP:
            return (collections or {})[clause.field](clause.value)
        if clause.kind is ClauseKind.EQUALS:
            return columns[clause.field] == clause.value
        if clause.kind is ClauseKind.ANY_SUBSTRING:
            return or_(*(icontains(columns[name], clause.value) for name in clause.fields))
    except KeyError as exc:
        raise ValueError(f"Field {exc.args[0]!r} cannot be filtered") from exc
    raise ValueError(f"Unsupported clause kind: {clause.kind!r}")


def compile_clauses(
    clauses: Sequence[FilterClause],
    columns: Mapping[str, Any],
    *,
    dialect: str,
    collections: Mapping[str, CollectionMatcher] | None = None,
) -> ColumnElement[bool] | None:
    """AND every clause together. ``None`` when there are no clauses."""
    compiled = [
        compile_clause(c, columns, dialect=dialect, collections=collections) for c in clauses
    ]
    if not compiled:
        return None
    return and_(*compiled)
