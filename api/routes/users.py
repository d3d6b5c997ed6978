"""
Account routes: registration, login, profile and logout.

Tokens are stateless JWTs, so logout only acknowledges the request; the
client is expected to discard its token.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, File, Form, UploadFile

from api.deps import Config, CurrentUser, Uploads, Users
from api.schemas.envelope import Envelope
from api.schemas.users import (
    AuthPayload,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserOut,
    UserPayload,
)
from core.config import AppConfig
from core.errors import BadRequest, Conflict, Unauthorized
from db.models import User
from db.user_store import UserStore
from infrastructure.auth import create_access_token, hash_password, verify_password
from infrastructure.metrics import record_auth_failure
from infrastructure.uploads import profile_pic_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


def _issue_token(user: User, config: AppConfig) -> str:
    return create_access_token(
        user.id,
        secret=config.jwt_secret,
        expires_in=config.jwt_expires_seconds,
    )


def _ensure_unique(
    users: UserStore,
    *,
    email: str | None,
    username: str | None,
    exclude_id: str | None = None,
) -> None:
    """Raise ``Conflict`` naming the first of email/username already taken."""
    taken = users.find_conflict(email=email, username=username, exclude_id=exclude_id)
    if taken is None:
        return
    if email is not None and taken.email == email:
        raise Conflict("Email already exists")
    raise Conflict("Username already exists")


@router.post("/register", status_code=201, response_model=Envelope[AuthPayload])
def register(body: RegisterRequest, users: Users, config: Config) -> Envelope:
    _ensure_unique(users, email=body.email, username=body.username)
    user = users.create(
        email=body.email,
        username=body.username,
        password_hash=hash_password(body.password),
    )
    return Envelope(
        message="User registered successfully",
        data=AuthPayload(user=UserOut.model_validate(user), token=_issue_token(user, config)),
    )


@router.post("/login", response_model=Envelope[AuthPayload])
def login(body: LoginRequest, users: Users, config: Config) -> Envelope:
    user = users.get_by_email(body.email)
    if user is None or not user.is_active or not verify_password(body.password, user.password_hash):
        record_auth_failure("bad_credentials")
        logger.warning("Failed login for %s", body.email)
        raise Unauthorized("Invalid credentials")
    users.record_login(user)
    return Envelope(
        message="Login successful",
        data=AuthPayload(user=UserOut.model_validate(user), token=_issue_token(user, config)),
    )


@router.get("/profile", response_model=Envelope[UserPayload])
def get_profile(user: CurrentUser) -> Envelope:
    return Envelope(
        message="Profile retrieved successfully",
        data=UserPayload(user=UserOut.model_validate(user)),
    )


@router.put("/profile", response_model=Envelope[UserPayload])
def update_profile(
    user: CurrentUser,
    users: Users,
    uploads: Uploads,
    username: Annotated[str | None, Form()] = None,
    email: Annotated[str | None, Form()] = None,
    profile_pic: Annotated[UploadFile | None, File(alias="profilePic")] = None,
) -> Envelope:
    """Change username, email and/or profile picture (JPEG/PNG up to 2 MB)."""
    changes = ProfileUpdate(username=username, email=email)
    _ensure_unique(
        users,
        email=changes.email,
        username=changes.username,
        exclude_id=user.id,
    )
    picture_url = None
    if profile_pic is not None and profile_pic.filename:
        error = profile_pic_error(profile_pic)
        if error is not None:
            raise BadRequest(error)
        picture_url = uploads.save(profile_pic)
    users.update(
        user,
        email=changes.email,
        username=changes.username,
        profile_pic=picture_url,
    )
    return Envelope(
        message="Profile updated successfully",
        data=UserPayload(user=UserOut.model_validate(user)),
    )


@router.post("/logout", response_model=Envelope[dict], response_model_exclude_none=True)
def logout(user: CurrentUser) -> Envelope:
    logger.info("User %s logged out", user.id)
    return Envelope(message="Logout successful")
