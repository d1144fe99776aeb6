"""Health and metrics endpoints.

`/health` reports the database, the Temporal connection used by the cascade
sweep, and how many archived tenants still wait for their cascade. Results
are cached briefly so probes do not hammer the database.
"""

import secrets
import time
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from prometheus_fastapi_instrumentator import Instrumentator

from src.app.core.config import get_settings
from src.app.core.db import get_session
from src.app.repositories import ProjectRepository
from src.app.temporal.client import get_temporal_client

HEALTH_CACHE_TTL = 10  # seconds

_health_cache: dict[str, Any] | None = None
_health_cache_time: float = 0


def reset_health_cache() -> None:
    """Reset health cache (for testing)."""
    global _health_cache, _health_cache_time
    _health_cache = None
    _health_cache_time = 0


async def _check_database() -> tuple[str, int | None]:
    """Database status and the number of tenants with an unfinished cascade."""
    try:
        async with get_session() as session:
            pending = await ProjectRepository(session).list_tenants_pending_cascade()
    except Exception as e:
        return f"unhealthy: {e!s}", None
    return "healthy", len(pending)


async def _check_temporal() -> str:
    try:
        await get_temporal_client()
    except Exception as e:
        return f"unhealthy: {e!s}"
    return "healthy"


def _overall_status(database: str, temporal: str) -> str:
    # Without Temporal only the sweep stops; membership operations still work
    if database != "healthy":
        return "unhealthy"
    if temporal != "healthy":
        return "degraded"
    return "healthy"


def _respond(body: dict[str, Any]) -> JSONResponse:
    status_code = 503 if body["status"] == "unhealthy" else 200
    return JSONResponse(content=body, status_code=status_code)


def setup_health_endpoint(app: FastAPI) -> None:
    """Configure the health check endpoint."""

    @app.get("/health")
    async def health() -> JSONResponse:
        global _health_cache, _health_cache_time

        now = time.time()
        age = now - _health_cache_time
        if _health_cache and age < HEALTH_CACHE_TTL:
            return _respond({**_health_cache, "cached": True, "cache_age_seconds": round(age, 1)})

        database, pending_cascades = await _check_database()
        temporal = await _check_temporal()
        body: dict[str, Any] = {
            "status": _overall_status(database, temporal),
            "database": database,
            "temporal": temporal,
            "pending_cascades": pending_cascades,
            "cached": False,
            "timestamp": now,
        }

        _health_cache = body
        _health_cache_time = now
        return _respond(body)


def setup_metrics(app: FastAPI) -> None:
    """Expose Prometheus metrics, behind X-Metrics-Key when one is configured."""
    settings = get_settings()
    instrumentator = Instrumentator().instrument(app)

    if not settings.metrics_api_key:
        instrumentator.expose(app, endpoint="/metrics")
        return

    api_key_header = APIKeyHeader(name="X-Metrics-Key", auto_error=False)

    async def verify_metrics_key(api_key: str | None = Depends(api_key_header)) -> None:
        expected = settings.metrics_api_key
        if api_key is None or expected is None or not secrets.compare_digest(api_key, expected):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or missing metrics API key",
            )

    instrumentator.expose(app, endpoint="/metrics", dependencies=[Depends(verify_metrics_key)])
