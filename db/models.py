"""
SQLAlchemy ORM models for the music catalog.

Genres are normalised into ``music_genres`` (one row per position) so the
genre filter and the genre statistics are plain SQL on every dialect.  On
PostgreSQL a GIN index backs full-text search over title/artist/album.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    literal_column,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now
    )


class User(TimestampMixin, Base):
    """Account owning songs and playlists.  ``password_hash`` is bcrypt."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(254), unique=True, index=True)
    username: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(128))
    profile_pic: Mapped[str | None] = mapped_column(String(512), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class MusicGenre(Base):
    """One genre of one music entry, at a fixed position."""

    __tablename__ = "music_genres"

    id: Mapped[int] = mapped_column(primary_key=True)
    music_id: Mapped[str] = mapped_column(
        ForeignKey("music.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer)
    name: Mapped[str] = mapped_column(String(100), index=True)

    music: Mapped["MusicRecord"] = relationship(back_populates="genre_rows")


class MusicRecord(TimestampMixin, Base):
    """Persisted music entry."""

    __tablename__ = "music"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(200))
    artist: Mapped[str] = mapped_column(String(100), index=True)
    album: Mapped[str] = mapped_column(String(100), index=True)
    album_art: Mapped[str] = mapped_column(String(512))

    genre_rows: Mapped[list[MusicGenre]] = relationship(
        back_populates="music",
        cascade="all, delete-orphan",
        order_by=MusicGenre.position,
        lazy="selectin",
    )

    @property
    def genres(self) -> list[str]:
        return [row.name for row in self.genre_rows]

    @genres.setter
    def genres(self, names: list[str]) -> None:
        self.genre_rows = [MusicGenre(position=i, name=name) for i, name in enumerate(names)]


MUSIC_TEXT_DOCUMENT = func.to_tsvector(
    literal_column("'english'"),
    MusicRecord.title + " " + MusicRecord.artist + " " + MusicRecord.album,
)

Index("ix_music_text_search", MUSIC_TEXT_DOCUMENT, postgresql_using="gin").ddl_if(
    dialect="postgresql"
)


class Song(TimestampMixin, Base):
    """Uploaded audio file metadata.  Deleting a song only clears ``is_active``."""

    __tablename__ = "songs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(100))
    artist: Mapped[str] = mapped_column(String(100))
    album: Mapped[str | None] = mapped_column(String(100), nullable=True)
    genre: Mapped[str] = mapped_column(String(32), index=True)
    duration: Mapped[int] = mapped_column(Integer)
    release_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    file_path: Mapped[str] = mapped_column(String(512))
    cover_art: Mapped[str | None] = mapped_column(String(512), nullable=True)
    lyrics: Mapped[str | None] = mapped_column(Text, nullable=True)
    play_count: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    uploaded_by: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)

    uploader: Mapped[User] = relationship(lazy="joined")

    __table_args__ = (Index("ix_songs_title_artist", "title", "artist"),)

    @property
    def formatted_duration(self) -> str:
        minutes, seconds = divmod(self.duration, 60)
        return f"{minutes}:{seconds:02d}"


class PlaylistSong(Base):
    """Membership of a song in a playlist at a 1-based ``position``."""

    __tablename__ = "playlist_songs"

    id: Mapped[int] = mapped_column(primary_key=True)
    playlist_id: Mapped[str] = mapped_column(
        ForeignKey("playlists.id", ondelete="CASCADE"), index=True
    )
    song_id: Mapped[str] = mapped_column(ForeignKey("songs.id"), index=True)
    position: Mapped[int] = mapped_column(Integer)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    song: Mapped[Song] = relationship(lazy="joined")
    playlist: Mapped["Playlist"] = relationship(back_populates="entries")

    __table_args__ = (UniqueConstraint("playlist_id", "song_id", name="uq_playlist_song"),)


class Playlist(TimestampMixin, Base):
    __tablename__ = "playlists"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    cover_art: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_by: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    play_count: Mapped[int] = mapped_column(Integer, default=0)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)

    creator: Mapped[User] = relationship(lazy="joined")
    entries: Mapped[list[PlaylistSong]] = relationship(
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by=PlaylistSong.position,
        lazy="selectin",
    )

    __table_args__ = (Index("ix_playlists_name_creator", "name", "created_by"),)

    @property
    def song_count(self) -> int:
        return len(self.entries)
