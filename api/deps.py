"""
FastAPI dependency providers.

Everything hangs off ``app.state``: the ``AppConfig``, the opened
``Database`` and the upload storage are created by ``create_app`` and its
lifespan, so tests can build isolated apps without touching module
globals.  Sessions are opened per request and closed afterwards.
"""

import logging
from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from core.config import AppConfig
from core.errors import Unauthorized
from db.models import User
from db.music_store import MusicStore
from db.song_store import PlaylistStore, SongStore
from db.user_store import UserStore
from infrastructure.auth import InvalidToken, decode_access_token
from infrastructure.metrics import record_auth_failure
from infrastructure.uploads import UploadStorage

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a SQLAlchemy session for FastAPI dependency injection."""
    with request.app.state.database.session_scope() as session:
        yield session


DbSession = Annotated[Session, Depends(get_db)]


def get_music_store(db: DbSession) -> MusicStore:
    return MusicStore(db)


def get_user_store(db: DbSession) -> UserStore:
    return UserStore(db)


def get_song_store(db: DbSession) -> SongStore:
    return SongStore(db)


def get_playlist_store(db: DbSession) -> PlaylistStore:
    return PlaylistStore(db)


def get_upload_storage(request: Request) -> UploadStorage:
    return request.app.state.uploads


def get_current_user(
    request: Request,
    users: Annotated[UserStore, Depends(get_user_store)],
    config: Annotated[AppConfig, Depends(get_config)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> User:
    """Resolve the caller from ``Authorization: Bearer <token>``.

    Raises:
        Unauthorized: Missing or invalid token, or the user no longer exists.
    """
    if credentials is None or not credentials.credentials:
        record_auth_failure("missing_token")
        raise Unauthorized("Access denied. No token provided.")
    try:
        user_id = decode_access_token(credentials.credentials, secret=config.jwt_secret)
    except InvalidToken as exc:
        record_auth_failure("invalid_token")
        logger.warning(
            "Rejected bearer token: %s [request_id=%s]",
            exc,
            getattr(request.state, "request_id", None),
        )
        raise Unauthorized("Invalid token") from exc
    user = users.get(user_id)
    if user is None:
        record_auth_failure("unknown_user")
        raise Unauthorized("Token is no longer valid. User not found.")
    request.state.user_id = user.id
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
Config = Annotated[AppConfig, Depends(get_config)]
Uploads = Annotated[UploadStorage, Depends(get_upload_storage)]
Music = Annotated[MusicStore, Depends(get_music_store)]
Users = Annotated[UserStore, Depends(get_user_store)]
Songs = Annotated[SongStore, Depends(get_song_store)]
Playlists = Annotated[PlaylistStore, Depends(get_playlist_store)]
