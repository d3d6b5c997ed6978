"""
Domain error kinds shared by the store and HTTP layers.

Each error carries the HTTP status it maps to so ``api/errors.py`` can
translate it into the failure envelope without a lookup table.
"""


class CatalogError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str, *, error: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.error = error


class BadRequest(CatalogError):
    status_code = 400


class ValidationFailure(BadRequest):
    """Malformed or missing input. ``error`` holds the first failing rule."""

    def __init__(self, error: str, *, message: str = "Validation failed") -> None:
        super().__init__(message, error=error)


class Unauthorized(CatalogError):
    status_code = 401


class NotFound(CatalogError):
    status_code = 404


class Conflict(CatalogError):
    status_code = 409
