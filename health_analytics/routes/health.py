"""
Health check endpoints with document store and notification store checks.
"""

import time

from fastapi import APIRouter, Depends

from health_analytics.container import ServiceContainer
from health_analytics.infrastructure.observability.logging import log_health_check
from health_analytics.routes.dependencies import get_container

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "health-analytics"}


@router.get("/readyz")
async def readyz(container: ServiceContainer = Depends(get_container)):
    """
    Readiness check covering MongoDB and Redis.
    """
    checks = {}
    overall_ok = True

    # 1) MongoDB
    t0 = time.time()
    if container.mongo is None:
        checks["mongodb"] = {"ok": False, "error": "Mongo client not configured"}
        overall_ok = False
    else:
        mongo_health = await container.mongo.health_check()
        mongo_ok = bool(mongo_health.get("healthy", False))
        checks["mongodb"] = {"ok": mongo_ok, "latency_ms": round((time.time() - t0) * 1000, 1)}
        if not mongo_ok:
            checks["mongodb"]["error"] = mongo_health.get("error", "MongoDB unhealthy")
        log_health_check(
            "mongodb", mongo_ok, checks["mongodb"]["latency_ms"], checks["mongodb"].get("error")
        )
        overall_ok = overall_ok and mongo_ok

    # 2) Redis
    t0 = time.time()
    if container.redis is None:
        checks["redis"] = {"ok": False, "error": "Redis client not configured"}
        overall_ok = False
    else:
        redis_ok = await container.redis.ping()
        checks["redis"] = {"ok": redis_ok, "latency_ms": round((time.time() - t0) * 1000, 1)}
        log_health_check("redis", redis_ok, checks["redis"]["latency_ms"])
        overall_ok = overall_ok and redis_ok

    checks["configuration"] = {
        "ok": True,
        "environment": container.settings.environment,
        "summary_timezone": container.settings.SUMMARY_TIMEZONE,
    }

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
