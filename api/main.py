"""
Application factory.

``create_app`` wires configuration, the database lifecycle, middleware,
exception handlers and routers.  ``uvicorn api.main:app`` serves the
module-level instance built from the environment.
"""

import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from api.errors import register_exception_handlers
from api.routes.music import router as music_router
from api.routes.playlists import router as playlists_router
from api.routes.songs import router as songs_router
from api.routes.users import router as users_router
from api.schemas.envelope import failure
from core.config import AppConfig, load_config
from db.session import Database
from infrastructure.metrics import (
    LatencyTimer,
    get_metrics_response,
    record_rate_limited,
    record_request,
)
from infrastructure.rate_limiter import RateLimiter
from infrastructure.uploads import UploadStorage

logger = logging.getLogger(__name__)

RATE_LIMITED_PATH_PREFIX = "/api/"


def _client_id(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def create_app(
    config: AppConfig | None = None,
    *,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    """Build the FastAPI app.

    Args:
        config: Settings; read from the environment when omitted.
        rate_limiter: Limiter for ``/api/`` requests; built from
            ``config.redis_url`` when omitted.
    """
    config = config or load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    limiter = rate_limiter or RateLimiter(
        max_requests=config.rate_limit_max_requests,
        window_seconds=config.rate_limit_window_seconds,
        redis_url=config.redis_url,
    )
    database = Database.from_config(config)
    started_at = time.monotonic()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        database.open()
        if config.auto_create_schema:
            database.create_schema()
        logger.info("Music catalog API started (environment=%s)", config.environment)
        try:
            yield
        finally:
            database.close()

    app = FastAPI(title="Music Catalog API", lifespan=lifespan)
    app.state.config = config
    app.state.database = database
    app.state.uploads = UploadStorage(config.upload_dir, config.public_base_url)
    app.state.rate_limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def observe(request: Request, call_next) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        quota = None
        if request.url.path.startswith(RATE_LIMITED_PATH_PREFIX):
            quota = await run_in_threadpool(limiter.hit, _client_id(request))
            if not quota.allowed:
                record_rate_limited()
                return JSONResponse(
                    status_code=429,
                    content=failure("Too many requests from this IP, please try again later."),
                    headers={"X-Request-Id": request_id, **quota.headers()},
                )

        with LatencyTimer() as timer:
            response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        if quota is not None:
            response.headers.update(quota.headers())
        record_request(
            method=request.method,
            route=_route_template(request),
            status=response.status_code,
            latency_seconds=timer.elapsed,
        )
        logger.info(
            "%s %s -> %d (%.1f ms) [request_id=%s]",
            request.method,
            request.url.path,
            response.status_code,
            timer.elapsed * 1000,
            request_id,
        )
        return response

    register_exception_handlers(app, debug=not config.is_production)

    app.include_router(users_router)
    app.include_router(music_router)
    app.include_router(songs_router)
    app.include_router(playlists_router)

    @app.get("/api")
    def welcome() -> dict:
        """Service banner with the endpoint map."""
        return {
            "success": True,
            "message": "Welcome to the Music Catalog API",
            "data": {
                "version": "1.0.0",
                "endpoints": {
                    "users": "/api/users",
                    "music": "/api/music",
                    "songs": "/api/songs",
                    "playlists": "/api/playlists",
                    "health": "/api/health",
                },
            },
        }

    @app.get("/api/health")
    def health() -> dict:
        """Liveness check with uptime in seconds."""
        return {
            "success": True,
            "message": "Music Catalog API is running",
            "data": {
                "timestamp": datetime.now(UTC).isoformat(),
                "uptime": round(time.monotonic() - started_at, 3),
                "environment": config.environment,
            },
        }

    @app.get("/metrics")
    def metrics() -> Response:
        """Prometheus metrics endpoint (text exposition format)."""
        body, content_type = get_metrics_response()
        return Response(content=body, media_type=content_type)

    app.mount(
        "/uploads",
        StaticFiles(directory=config.upload_dir, check_dir=False),
        name="uploads",
    )
    return app


app = create_app()
