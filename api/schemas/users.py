"""Pydantic schemas for ``/api/users``."""

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from api.schemas.envelope import ApiModel
from infrastructure.auth import PASSWORD_MAX_BYTES, password_too_long

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 6


def normalize_email(value: Any) -> str:
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value.strip()):
        raise ValueError("Please provide a valid email")
    return value.strip().lower()


def check_username(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
        )
    value = value.strip()
    if not USERNAME_MIN_LENGTH <= len(value) <= USERNAME_MAX_LENGTH:
        raise ValueError(
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
        )
    if not USERNAME_PATTERN.match(value):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return value


class RegisterRequest(BaseModel):
    email: str = Field(default=None, validate_default=True)
    username: str = Field(default=None, validate_default=True)
    password: str = Field(default=None, validate_default=True)

    @field_validator("email", mode="before")
    @classmethod
    def email_valid(cls, v: Any) -> str:
        return normalize_email(v)

    @field_validator("username", mode="before")
    @classmethod
    def username_valid(cls, v: Any) -> str:
        return check_username(v)

    @field_validator("password", mode="before")
    @classmethod
    def password_length(cls, v: Any) -> str:
        if not isinstance(v, str) or len(v) < PASSWORD_MIN_LENGTH:
            raise ValueError(
                f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
            )
        if password_too_long(v):
            raise ValueError(f"Password cannot exceed {PASSWORD_MAX_BYTES} bytes")
        return v


class LoginRequest(BaseModel):
    email: str = Field(default=None, validate_default=True)
    password: str = Field(default=None, validate_default=True)

    @field_validator("email", mode="before")
    @classmethod
    def email_valid(cls, v: Any) -> str:
        return normalize_email(v)

    @field_validator("password", mode="before")
    @classmethod
    def password_present(cls, v: Any) -> str:
        if not isinstance(v, str) or not v:
            raise ValueError("Password is required")
        return v


class ProfileUpdate(BaseModel):
    """Text fields of ``PUT /api/users/profile``; the picture is a file part."""

    email: str | None = None
    username: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def email_valid(cls, v: Any) -> str | None:
        return None if v is None else normalize_email(v)

    @field_validator("username", mode="before")
    @classmethod
    def username_valid(cls, v: Any) -> str | None:
        return None if v is None else check_username(v)


class UserOut(ApiModel):
    """Public view of an account. Never includes the password hash."""

    id: str
    email: str
    username: str
    profile_pic: str | None = None
    is_active: bool = True
    last_login: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserPayload(ApiModel):
    user: UserOut


class AuthPayload(ApiModel):
    user: UserOut
    token: str
