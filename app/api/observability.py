"""Liveness, readiness and Prometheus scrape endpoints.

/health answers "is the process alive": always 200, with per-dependency
status in the body.  /ready answers "should the load balancer send traffic
here": 503 while the database is unreachable.  Redis only carries
notifications, so a Redis outage degrades /health but never fails /ready.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from app.services.container import LmsServices

logger = logging.getLogger(__name__)

router = APIRouter(tags=["observability"])


async def _database_status(services: LmsServices) -> str:
    if services.database is None:
        return "not_configured"
    try:
        await services.database.ping()
    except Exception:
        logger.exception("Database ping failed")
        return "down"
    return "ok"


async def _redis_status(services: LmsServices) -> str:
    if services.redis is None:
        return "not_configured"
    try:
        await services.redis.ping()
    except Exception:
        logger.warning("Redis ping failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health(request: Request) -> dict:
    services: LmsServices = request.app.state.lms
    checks = {
        "database": await _database_status(services),
        "redis": await _redis_status(services),
    }
    overall = "ok" if all(v in ("ok", "not_configured") for v in checks.values()) else "degraded"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready(request: Request) -> Response:
    if await _database_status(request.app.state.lms) == "down":
        return Response(status_code=503)
    return Response(status_code=200)


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
