"""
Song and playlist persistence (the alternate catalog schema).

Songs are soft-deleted: ``is_active`` is cleared and every read filters on
it.  Play counts are bumped with a single ``UPDATE ... SET play_count =
play_count + 1`` so concurrent readers never lose increments.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import Session

from core.catalog.query import CatalogQuery, FilterClause
from db.models import Playlist, PlaylistSong, Song
from db.search import compile_clauses

logger = logging.getLogger(__name__)

SONG_COLUMNS: dict[str, Any] = {
    "title": Song.title,
    "artist": Song.artist,
    "album": Song.album,
    "genre": Song.genre,
    "is_active": Song.is_active,
    "uploaded_by": Song.uploaded_by,
    "created_at": Song.created_at,
}

PLAYLIST_COLUMNS: dict[str, Any] = {
    "name": Playlist.name,
    "is_public": Playlist.is_public,
    "created_by": Playlist.created_by,
    "created_at": Playlist.created_at,
}

SONG_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "artist",
        "album",
        "genre",
        "duration",
        "release_year",
        "file_path",
        "cover_art",
        "lyrics",
        "tags",
    }
)
PLAYLIST_FIELDS: frozenset[str] = frozenset(
    {"name", "description", "is_public", "cover_art", "tags"}
)


class DuplicateEntry(ValueError):
    """The song is already part of the playlist."""


def _apply(
    stmt: Select[Any],
    query: CatalogQuery,
    columns: Mapping[str, Any],
    dialect: str,
) -> Select[Any]:
    condition = compile_clauses(query.clauses, columns, dialect=dialect)
    return stmt if condition is None else stmt.where(condition)


def _count(
    session: Session, model: Any, clauses: Sequence[FilterClause], columns: Mapping[str, Any]
) -> int:
    stmt = select(func.count()).select_from(model)
    condition = compile_clauses(clauses, columns, dialect=session.get_bind().dialect.name)
    if condition is not None:
        stmt = stmt.where(condition)
    return int(session.scalar(stmt) or 0)


def _check_fields(changes: Mapping[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Cannot set fields: {sorted(unknown)}")


class SongStore:
    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def dialect(self) -> str:
        return self._session.get_bind().dialect.name

    def list_page(self, query: CatalogQuery) -> tuple[list[Song], int]:
        column = SONG_COLUMNS[query.sort.field]
        stmt = (
            _apply(select(Song), query, SONG_COLUMNS, self.dialect)
            .order_by(column.desc() if query.sort.descending else column.asc(), Song.id)
            .offset(query.window.skip)
            .limit(query.window.limit)
        )
        songs = list(self._session.scalars(stmt).unique())
        return songs, _count(self._session, Song, query.clauses, SONG_COLUMNS)

    def get(self, song_id: str) -> Song | None:
        song = self._session.get(Song, song_id)
        if song is None or not song.is_active:
            return None
        return song

    def play(self, song_id: str) -> Song | None:
        """Increment the play count atomically and return the fresh row."""
        result = self._session.execute(
            update(Song)
            .where(Song.id == song_id, Song.is_active.is_(True))
            .values(play_count=Song.play_count + 1)
            .execution_options(synchronize_session=False)
        )
        self._session.commit()
        if result.rowcount == 0:
            return None
        song = self._session.get(Song, song_id, populate_existing=True)
        return song

    def create(self, *, uploaded_by: str, **fields: Any) -> Song:
        _check_fields(fields, SONG_FIELDS)
        song = Song(uploaded_by=uploaded_by, **fields)
        self._session.add(song)
        self._session.commit()
        logger.info("Created song %s", song.id)
        return song

    def update(self, song_id: str, changes: Mapping[str, Any]) -> Song | None:
        _check_fields(changes, SONG_FIELDS)
        song = self.get(song_id)
        if song is None:
            return None
        for name, value in changes.items():
            setattr(song, name, value)
        self._session.commit()
        return song

    def deactivate(self, song_id: str) -> bool:
        song = self.get(song_id)
        if song is None:
            return False
        song.is_active = False
        self._session.commit()
        logger.info("Deactivated song %s", song_id)
        return True


class PlaylistStore:
    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def dialect(self) -> str:
        return self._session.get_bind().dialect.name

    def list_page(self, query: CatalogQuery) -> tuple[list[Playlist], int]:
        column = PLAYLIST_COLUMNS[query.sort.field]
        stmt = (
            _apply(select(Playlist), query, PLAYLIST_COLUMNS, self.dialect)
            .order_by(column.desc() if query.sort.descending else column.asc(), Playlist.id)
            .offset(query.window.skip)
            .limit(query.window.limit)
        )
        playlists = list(self._session.scalars(stmt).unique())
        return playlists, _count(self._session, Playlist, query.clauses, PLAYLIST_COLUMNS)

    def get(self, playlist_id: str) -> Playlist | None:
        return self._session.get(Playlist, playlist_id)

    def play(self, playlist_id: str) -> Playlist | None:
        result = self._session.execute(
            update(Playlist)
            .where(Playlist.id == playlist_id)
            .values(play_count=Playlist.play_count + 1)
            .execution_options(synchronize_session=False)
        )
        self._session.commit()
        if result.rowcount == 0:
            return None
        return self._session.get(Playlist, playlist_id, populate_existing=True)

    def create(self, *, created_by: str, song_ids: Sequence[str] = (), **fields: Any) -> Playlist:
        _check_fields(fields, PLAYLIST_FIELDS)
        playlist = Playlist(created_by=created_by, **fields)
        playlist.entries = [
            PlaylistSong(song_id=song_id, position=i)
            for i, song_id in enumerate(dict.fromkeys(song_ids), start=1)
        ]
        self._session.add(playlist)
        self._session.commit()
        logger.info("Created playlist %s", playlist.id)
        return playlist

    def update(self, playlist_id: str, changes: Mapping[str, Any]) -> Playlist | None:
        _check_fields(changes, PLAYLIST_FIELDS)
        playlist = self.get(playlist_id)
        if playlist is None:
            return None
        for name, value in changes.items():
            setattr(playlist, name, value)
        self._session.commit()
        return playlist

    def add_song(self, playlist: Playlist, song_id: str) -> Playlist:
        """Append *song_id* at the end of *playlist*.

        Raises:
            DuplicateEntry: If the song is already in the playlist.
        """
        if any(entry.song_id == song_id for entry in playlist.entries):
            raise DuplicateEntry(song_id)
        playlist.entries.append(
            PlaylistSong(song_id=song_id, position=len(playlist.entries) + 1)
        )
        self._session.commit()
        return playlist

    def remove_song(self, playlist: Playlist, song_id: str) -> Playlist:
        """Drop *song_id* and renumber the remaining entries 1..n."""
        playlist.entries = [e for e in playlist.entries if e.song_id != song_id]
        for position, entry in enumerate(playlist.entries, start=1):
            entry.position = position
        self._session.commit()
        return playlist

    def delete(self, playlist_id: str) -> bool:
        playlist = self.get(playlist_id)
        if playlist is None:
            return False
        self._session.delete(playlist)
        self._session.commit()
        logger.info("Deleted playlist %s", playlist_id)
        return True
