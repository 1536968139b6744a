"""Health, readiness and metrics endpoints.

/health (liveness): 200 while the process can answer, with per-dependency
status in the body.  "degraded" never turns into a non-200 here, so the
orchestrator does not restart a pod that merely lost Redis.

/ready (readiness): 503 when the submission store is unreachable.  Without
it autosave writes would fail and learners would type into a form whose
answers only live in memory, so the instance should leave rotation.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text

from assessment_service.db.engine import engine
from assessment_service.db.redis import redis_pool
from assessment_service.services.backends import session_registry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["observability"])


async def _check_database() -> str:
    if engine is None:
        return "not_configured"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "ok"
    except Exception:
        logger.exception("Database health check failed")
        return "degraded"


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
        return "ok"
    except Exception:
        logger.exception("Redis health check failed")
        return "degraded"


@router.get("/health")
async def health() -> dict:
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {
        "status": overall,
        "checks": checks,
        "active_sessions": len(session_registry),
    }


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus text exposition, not JSON."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
