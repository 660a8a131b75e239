"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers, and
lifespan events into a single ``FastAPI`` instance.

Tags:
    fleet-core, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fleet.api.deps import get_settings
from fleet.api.middleware.errors import problem_response, unhandled_exception_handler
from fleet.api.middleware.request_id import RequestIDMiddleware
from fleet.api.middleware.timing import TimingMiddleware
from fleet.api.settings import FleetAPISettings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: configure logging and create the schema."""

    from fleet.core.connection import create_connection
    from fleet.core.logging import configure_logging, get_logger

    settings: FleetAPISettings = app.state.settings
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    log = get_logger("fleet.api")
    log.info("fleet_api_starting", version=app.version)

    conn, info = create_connection(
        settings.database_url,
        init_schema=True,
        data_dir=settings.data_dir,
    )
    conn.close()
    log.info("database_initialized", backend=info.backend, path=info.resolved_path)

    yield
    log.info("fleet_api_stopping")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map request-body validation errors to a 400 ProblemDetail."""
    return problem_response(
        status=400,
        title="Request validation failed",
        detail="VALIDATION_FAILED",
        instance=str(request.url.path),
        errors=[
            {
                "code": err.get("type", "invalid"),
                "message": err.get("msg", ""),
                "field": ".".join(str(p) for p in err.get("loc", ())),
            }
            for err in exc.errors()
        ],
    )


def create_app(
    *,
    settings: FleetAPISettings | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : FleetAPISettings | None
        Override settings (useful for testing).  When ``None`` the cached
        singleton from :func:`get_settings` is used.
    """

    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    # Stash settings on app state for middleware and lifespan access
    app.state.settings = settings

    # Override DI so endpoints use the provided settings
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware (outermost → innermost) ────────────────────────────
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from fleet.api.routers import assignments, health, heartbeat, progress, studies, workers

    prefix = settings.api_prefix

    # Health endpoints at root level (no prefix) for container healthchecks
    app.include_router(health.router, tags=["health"])

    app.include_router(heartbeat.router, prefix=prefix, tags=["heartbeat"])
    app.include_router(assignments.router, prefix=prefix, tags=["assignments"])
    app.include_router(progress.router, prefix=prefix, tags=["progress"])
    app.include_router(workers.router, prefix=prefix, tags=["workers"])
    app.include_router(studies.router, prefix=prefix, tags=["super-studies"])

    return app
