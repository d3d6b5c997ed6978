"""
Record store for music entries.

Implements the store contract the catalog core relies on: filtered find,
count, distinct, native grouping (``genre_counts`` / ``album_counts``,
which also satisfy ``core.catalog.statistics.StatisticsSource``) and
relevance-ranked text search.  Mutations commit immediately.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from core.catalog.query import TEXT_SEARCH_FIELDS, CatalogQuery, FilterClause, Window
from db.models import MusicGenre, MusicRecord
from db.search import compile_clauses, icontains, text_search_condition, text_search_score

logger = logging.getLogger(__name__)

COLUMNS: dict[str, Any] = {
    "id": MusicRecord.id,
    "title": MusicRecord.title,
    "artist": MusicRecord.artist,
    "album": MusicRecord.album,
    "created_at": MusicRecord.created_at,
    "updated_at": MusicRecord.updated_at,
}

COLLECTIONS = {
    "genres": lambda value: MusicRecord.genre_rows.any(icontains(MusicGenre.name, value)),
}

UPDATABLE_FIELDS: frozenset[str] = frozenset({"title", "artist", "album", "album_art", "genres"})


class MusicStore:
    """Music persistence bound to one SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def dialect(self) -> str:
        return self._session.get_bind().dialect.name

    def _filtered(self, stmt: Select[Any], clauses: Sequence[FilterClause]) -> Select[Any]:
        condition = compile_clauses(
            clauses, COLUMNS, dialect=self.dialect, collections=COLLECTIONS
        )
        return stmt if condition is None else stmt.where(condition)

    # -- reads ---------------------------------------------------------------

    def find(self, query: CatalogQuery) -> list[MusicRecord]:
        """Return one page of records matching every clause of *query*."""
        column = COLUMNS[query.sort.field]
        order = column.desc() if query.sort.descending else column.asc()
        stmt = (
            self._filtered(select(MusicRecord), query.clauses)
            .order_by(order, MusicRecord.id)
            .offset(query.window.skip)
            .limit(query.window.limit)
        )
        return list(self._session.scalars(stmt))

    def count(self, clauses: Sequence[FilterClause] = ()) -> int:
        stmt = self._filtered(select(func.count()).select_from(MusicRecord), clauses)
        return int(self._session.scalar(stmt) or 0)

    def list_page(self, query: CatalogQuery) -> tuple[list[MusicRecord], int]:
        return self.find(query), self.count(query.clauses)

    def distinct(self, field: str) -> set[str]:
        column = COLUMNS[field]
        return set(self._session.scalars(select(column).distinct()))

    def genre_counts(self) -> dict[str, int]:
        """Occurrences of each genre across all records (duplicates included)."""
        stmt = select(MusicGenre.name, func.count()).group_by(MusicGenre.name)
        return {name: int(count) for name, count in self._session.execute(stmt)}

    def album_counts(self) -> dict[tuple[str, str], int]:
        stmt = select(MusicRecord.artist, MusicRecord.album, func.count()).group_by(
            MusicRecord.artist, MusicRecord.album
        )
        return {
            (artist, album): int(count) for artist, album, count in self._session.execute(stmt)
        }

    def text_search(
        self, query_text: str, window: Window
    ) -> tuple[list[tuple[MusicRecord, float]], int]:
        """Relevance-ranked full-text search over title, artist and album.

        Returns:
            ``(page, total)`` where *page* holds ``(record, score)`` tuples
            ordered by score descending.
        """
        columns = [COLUMNS[name] for name in TEXT_SEARCH_FIELDS]
        condition = text_search_condition(self.dialect, columns, query_text)
        score = text_search_score(self.dialect, columns, query_text).label("score")

        stmt = (
            select(MusicRecord, score)
            .where(condition)
            .order_by(score.desc(), MusicRecord.created_at.desc(), MusicRecord.id)
            .offset(window.skip)
            .limit(window.limit)
        )
        rows = self._session.execute(stmt).all()
        total = int(
            self._session.scalar(select(func.count()).select_from(MusicRecord).where(condition))
            or 0
        )
        return [(row.MusicRecord, float(row.score)) for row in rows], total

    def get(self, music_id: str) -> MusicRecord | None:
        return self._session.get(MusicRecord, music_id)

    # -- writes --------------------------------------------------------------

    def create(
        self,
        *,
        title: str,
        artist: str,
        album: str,
        album_art: str,
        genres: Sequence[str],
    ) -> MusicRecord:
        record = MusicRecord(title=title, artist=artist, album=album, album_art=album_art)
        record.genres = list(genres)
        self._session.add(record)
        self._session.commit()
        logger.info("Created music %s (%s - %s)", record.id, artist, title)
        return record

    def update(self, music_id: str, changes: Mapping[str, Any]) -> MusicRecord | None:
        """Apply a partial update. Returns ``None`` if the record does not exist.

        Raises:
            ValueError: If *changes* names a field that cannot be updated.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        record = self.get(music_id)
        if record is None:
            return None

        for name, value in changes.items():
            if name == "genres":
                record.genre_rows.clear()
                self._session.flush()
                record.genres = list(value)
            else:
                setattr(record, name, value)
        record.updated_at = datetime.now(UTC)
        self._session.commit()
        return record

    def delete(self, music_id: str) -> bool:
        record = self.get(music_id)
        if record is None:
            return False
        self._session.delete(record)
        self._session.commit()
        logger.info("Deleted music %s", music_id)
        return True
