"""
FastAPI application factory.

``create_app()`` wires routers, error handlers and lifespan events into a
single ``FastAPI`` instance.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hl7spine import __version__
from hl7spine.api.deps import get_settings
from hl7spine.api.errors import hl7spine_error_handler
from hl7spine.core.errors import Hl7SpineError
from hl7spine.core.settings import Hl7SpineSettings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging and make sure the schema exists."""
    from hl7spine.core.logging import get_logger
    from hl7spine.wiring import get_engine, setup_logging

    settings: Hl7SpineSettings = app.state.settings
    setup_logging(settings)
    log = get_logger("hl7spine.api")
    get_engine(settings.database_url, settings.database_echo)
    log.info("api.starting", version=app.version, database=settings.database_url)
    yield
    log.info("api.stopping")


def create_app(*, settings: Hl7SpineSettings | None = None) -> FastAPI:
    """Build and return a configured FastAPI application.

    Parameters
    ----------
    settings : Hl7SpineSettings | None
        Override settings (useful for testing).  When ``None`` the cached
        singleton from :func:`get_settings` is used.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="hl7spine",
        version=__version__,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_exception_handler(Hl7SpineError, hl7spine_error_handler)

    from hl7spine.api.routers import health, hl7

    app.include_router(health.router, tags=["health"])
    app.include_router(hl7.router, prefix=settings.api_prefix, tags=["hl7"])
    return app
