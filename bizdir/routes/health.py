# bizdir/routes/health.py
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.core.config import settings
from bizdir.core.logging import get_structlog_logger
from bizdir.db.session import get_session

logger = get_structlog_logger(__name__)

router = APIRouter(tags=["health"])

_STARTED = time.time()


class HealthCheckResponse(BaseModel):
    status: str
    service: str
    environment: str
    timestamp: str
    uptime: float
    checks: Dict[str, Dict[str, str]]


async def check_database(session: AsyncSession) -> Dict[str, str]:
    """Check database connectivity."""
    start = time.perf_counter()
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("health.database_failed", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "response_time_ms": f"{(time.perf_counter() - start) * 1000:.2f}"}


@router.get("/health", response_model=HealthCheckResponse)
async def health(session: AsyncSession = Depends(get_session)):
    checks = {"database": await check_database(session)}
    healthy = all(c["status"] == "healthy" for c in checks.values())
    body = HealthCheckResponse(
        status="healthy" if healthy else "unhealthy",
        service="bizdir",
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime=time.time() - _STARTED,
        checks=checks,
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(),
    )
