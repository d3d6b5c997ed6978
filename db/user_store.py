"""User account persistence. Email and username are unique."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from db.models import User

logger = logging.getLogger(__name__)


class UserStore:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str) -> User | None:
        return self._session.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        return self._session.scalar(select(User).where(User.email == email))

    def find_conflict(
        self,
        *,
        email: str | None = None,
        username: str | None = None,
        exclude_id: str | None = None,
    ) -> User | None:
        """Return another user already holding *email* or *username*, if any."""
        conditions = []
        if email is not None:
            conditions.append(User.email == email)
        if username is not None:
            conditions.append(User.username == username)
        if not conditions:
            return None
        stmt = select(User).where(or_(*conditions))
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return self._session.scalars(stmt).first()

    def create(self, *, email: str, username: str, password_hash: str) -> User:
        user = User(email=email, username=username, password_hash=password_hash)
        self._session.add(user)
        self._session.commit()
        logger.info("Registered user %s (%s)", user.id, username)
        return user

    def update(
        self,
        user: User,
        *,
        email: str | None = None,
        username: str | None = None,
        profile_pic: str | None = None,
    ) -> User:
        if email is not None:
            user.email = email
        if username is not None:
            user.username = username
        if profile_pic is not None:
            user.profile_pic = profile_pic
        self._session.commit()
        return user

    def record_login(self, user: User) -> User:
        user.last_login = datetime.now(UTC)
        self._session.commit()
        return user
