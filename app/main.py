from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.lms import router as lms_router
from app.api.lms_admin import router as lms_admin_router
from app.api.observability import router as observability_router
from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import RequestContextMiddleware, install_log_filter
from app.services.container import LmsServices, build_services

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_log_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    if getattr(app.state, "lms", None) is not None:
        # services injected by the caller (tests); the caller owns them
        yield
        return

    services = await build_services(SETTINGS)
    app.state.lms = services
    try:
        yield
    finally:
        await services.close()


def create_app(services: LmsServices | None = None) -> FastAPI:
    app = FastAPI(
        title="lms-progress-service",
        lifespan=lifespan,
        docs_url="/docs" if SETTINGS.is_dev else None,
        redoc_url="/redoc" if SETTINGS.is_dev else None,
    )
    app.state.lms = services

    # last-added runs first: RequestContext -> Metrics -> route handler
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(observability_router)
    app.include_router(lms_router)
    app.include_router(lms_admin_router)
    return app


app = create_app()

logger.info(
    "lms-progress-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
