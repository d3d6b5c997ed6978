"""
Database handle with an explicit open/close lifecycle.

The API lifespan constructs one ``Database`` from ``AppConfig``, opens it
on startup, stores it on ``app.state`` and closes it on shutdown.  Nothing
connects at import time.

SQLite URLs (used by the test suite) get a ``StaticPool`` so an in-memory
database is shared by every session of the handle.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.config import AppConfig
from db.models import Base

logger = logging.getLogger(__name__)


class Database:
    """Owns the SQLAlchemy engine and session factory for one process.

    Args:
        url: SQLAlchemy connection URL.
        pool_size: Persistent pool connections (non-SQLite only).
        max_overflow: Burst connections above ``pool_size`` (non-SQLite only).
    """

    def __init__(self, url: str, *, pool_size: int = 5, max_overflow: int = 10) -> None:
        self._url = make_url(url)
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._engine: Engine | None = None
        self._sessionmaker: sessionmaker[Session] | None = None

    @classmethod
    def from_config(cls, config: AppConfig) -> Database:
        return cls(
            config.database_url,
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
        )

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def dialect_name(self) -> str:
        return self._url.get_backend_name()

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    def open(self) -> None:
        """Create the engine and session factory. Idempotent."""
        if self._engine is not None:
            return
        if self.dialect_name == "sqlite":
            self._engine = create_engine(
                self._url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self._engine = create_engine(
                self._url,
                pool_pre_ping=True,
                pool_size=self._pool_size,
                max_overflow=self._max_overflow,
            )
        self._sessionmaker = sessionmaker(
            bind=self._engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )
        logger.info(
            "Database opened (dialect=%s, database=%s)",
            self.dialect_name,
            self._url.database,
        )

    def close(self) -> None:
        """Dispose of pooled connections. Safe to call when already closed."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database closed")

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not open")
        return self._sessionmaker()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Yield a session, closing it on exit."""
        session = self.session()
        try:
            yield session
        finally:
            session.close()
