"""
Exception handlers translating errors into the failure envelope.

``CatalogError`` subclasses carry their own status code.  Request and model
validation errors become ``400 Validation failed`` with the first failing
rule as ``error``.  Unmatched routes become ``404 Route not found``.  Anything
else is a 500; the traceback is attached only outside production.
"""

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.schemas.envelope import failure
from core.errors import CatalogError

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def first_error_message(errors: list[dict[str, Any]]) -> str:
    """Render the first pydantic error the way clients see it.

    Messages raised by our own validators are passed through verbatim;
    built-in constraint failures are prefixed with the offending field.
    """
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid value"))
    if first.get("type") == "value_error":
        return message.removeprefix(_VALUE_ERROR_PREFIX)
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    return f"{loc[-1]}: {message}" if loc else message


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s [request_id=%s]", exc.message, _request_id(request))
    return JSONResponse(
        status_code=exc.status_code,
        content=failure(exc.message, error=exc.error),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError | ValidationError
) -> JSONResponse:
    error = first_error_message(list(exc.errors()))
    logger.info(
        "Validation failed on %s %s: %s [request_id=%s]",
        request.method,
        request.url.path,
        error,
        _request_id(request),
    )
    return JSONResponse(status_code=400, content=failure("Validation failed", error=error))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content=failure("Route not found", data={"path": request.url.path}),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=failure(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def _unhandled_error_handler(debug: bool):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error on %s %s [request_id=%s]",
            request.method,
            request.url.path,
            _request_id(request),
        )
        error = "".join(traceback.format_exception(exc)) if debug else None
        return JSONResponse(
            status_code=500,
            content=failure("Internal server error", error=error),
        )

    return handler


def register_exception_handlers(app: FastAPI, *, debug: bool) -> None:
    """Install every handler on *app*.

    Args:
        debug: Attach tracebacks to 500 responses.
    """
    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler(debug))
