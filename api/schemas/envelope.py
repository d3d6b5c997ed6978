"""
Response envelope shared by every endpoint.

Success:  ``{success: true, message?, data?}``
Listing:  ``{success: true, message?, data: [...], count, total, page, pages}``
Failure:  ``{success: false, message, error?, data?}``

Routes serialize with ``response_model_exclude_none=True`` so optional
keys are absent rather than ``null``.  JSON keys are camelCase.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.catalog.envelope import PageMeta

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base for wire models: camelCase aliases, built from ORM attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(ApiModel, Generic[T]):
    success: bool = Field(default=True, description="Always true for 2xx responses.")
    message: str | None = Field(default=None, description="Human-readable outcome.")
    data: T | None = Field(default=None, description="Endpoint payload.")


class PageEnvelope(ApiModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: list[T] = Field(default_factory=list)
    count: int = Field(..., description="Items on this page.")
    total: int = Field(..., description="Matching records overall.")
    page: int = Field(..., description="1-based page number.")
    pages: int = Field(..., description="ceil(total / limit).")


class ErrorEnvelope(ApiModel):
    success: bool = False
    message: str
    error: str | None = Field(default=None, description="Diagnostic detail.")
    data: dict[str, Any] | None = None


def paginated(items: list[Any], meta: PageMeta, *, message: str | None = None) -> PageEnvelope:
    return PageEnvelope(
        message=message,
        data=items,
        count=meta.count,
        total=meta.total,
        page=meta.page,
        pages=meta.pages,
    )


def failure(
    message: str, *, error: str | None = None, data: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Serialized failure envelope, ready for ``JSONResponse``."""
    return ErrorEnvelope(message=message, error=error, data=data).model_dump(
        by_alias=True, exclude_none=True, mode="json"
    )
