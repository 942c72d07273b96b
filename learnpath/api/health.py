"""Liveness and readiness endpoints.

/health answers "is the process alive" and reports each backing
dependency; it returns 200 even when degraded so an orchestrator does
not restart the container for a partial outage.  /ready answers "can
this instance take traffic".  Every dependency has an in-memory or
fallback mode, so readiness only fails when a configured database is
unreachable.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from learnpath.db import engine as db_engine
from learnpath.db import redis as db_redis
from learnpath.services import content_client as content

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_database() -> str:
    if db_engine.engine is None:
        return "not_configured"
    try:
        async with db_engine.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database health check failed")
        return "degraded"
    return "ok"


async def _check_redis() -> str:
    if db_redis.redis_pool is None:
        return "not_configured"
    try:
        await db_redis.redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.exception("Redis health check failed")
        return "degraded"
    return "ok"


def _check_content_service() -> str:
    configured = getattr(content.content_client, "configured", True)
    return "configured" if configured else "not_configured"


@router.get("/health")
async def health() -> dict:
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
        "content_service": _check_content_service(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
