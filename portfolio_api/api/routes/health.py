"""
Health check endpoints for the portfolio contact API.

Provides:
- /health - Liveness plus a summary of configured backends
- /health/redis - Rate limiter store check (only meaningful with RATE_LIMIT_BACKEND=redis)
"""
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from portfolio_api.api import deps
from portfolio_api.core.config import settings
from portfolio_api.core.rate_limiter import FixedWindowRateLimiter

router = APIRouter(tags=["health"])


class ServiceHealth(BaseModel):
    """Health status of an individual service."""

    status: Literal["healthy", "degraded", "unhealthy"]
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    environment: str
    timestamp: datetime
    backends: List[str]
    default_backend: str
    rate_limiter: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health(
    request: Request,
    limiter: Optional[FixedWindowRateLimiter] = Depends(deps.get_rate_limiter),
):
    """Liveness probe. Always 200 while the process serves requests."""
    adapters = getattr(request.app.state, "adapters", {}) or {}
    return HealthResponse(
        status="healthy" if settings.SUBMISSION_BACKEND in adapters else "degraded",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        timestamp=datetime.now(timezone.utc),
        backends=sorted(adapters),
        default_backend=settings.SUBMISSION_BACKEND,
        rate_limiter=limiter.stats() if limiter is not None else {},
    )


@router.get("/health/redis", response_model=ServiceHealth)
async def health_redis(
    limiter: Optional[FixedWindowRateLimiter] = Depends(deps.get_rate_limiter),
):
    backend = getattr(limiter, "backend", None)
    if backend is None or backend.name != "redis":
        return ServiceHealth(status="degraded", message="Rate limiter uses in-memory store")
    try:
        start = time.perf_counter()
        backend.ping()
        latency = (time.perf_counter() - start) * 1000
        return ServiceHealth(status="healthy", latency_ms=round(latency, 2))
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content=ServiceHealth(status="unhealthy", message=str(e)[:100]).model_dump(),
        )
