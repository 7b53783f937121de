# bizdir/main.py
from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from bizdir.core.config import settings
from bizdir.core.exceptions import BaseAPIException
from bizdir.core.logging import configure_structlog, get_structlog_logger
from bizdir.db.session import dispose_engine
from bizdir.middleware.logging import LoggingMiddleware
from bizdir.middleware.request_id import RequestIdMiddleware
from bizdir.routes import (
    businesses_router,
    categories_router,
    claims_router,
    health_router,
    leads_router,
)
from bizdir.schemas.common import APIError

configure_structlog()
logger = get_structlog_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("application.starting", environment=settings.environment)

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            integrations=[
                AsyncioIntegration(),
                FastApiIntegration(),
                StarletteIntegration(),
            ],
            traces_sample_rate=1.0 if settings.is_development else 0.1,
            send_default_pii=False,
        )
        logger.info("sentry.initialized")

    logger.info("application.started")
    yield

    logger.info("application.shutting_down")
    await dispose_engine()
    logger.info("application.shutdown_complete")


app = FastAPI(
    title="Business Directory API",
    version="1.0.0",
    description="Business resolution and lead-routing engine",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins(),
    allow_credentials=True,
    allow_methods=settings.methods(),
    allow_headers=settings.allowed_headers.split(","),
    expose_headers=["X-Request-ID", "X-Response-Time"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(LoggingMiddleware)
# Added last so it runs first and the access log carries the request id.
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException):
    logger.warning(
        "api.exception",
        status_code=exc.status_code,
        code=exc.code,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "loc": list(error.get("loc", [])),
            "msg": error.get("msg", "Validation error"),
            "type": error.get("type", "value_error"),
        }
        for error in exc.errors()
    ]
    logger.warning("validation.error", path=request.url.path, method=request.method, errors=errors)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=APIError(
            code="validation_error",
            message="Request validation failed",
            details={"errors": errors},
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_id = f"err_{int(time.time())}_{uuid.uuid4().hex[:8]}"
    logger.error(
        "unhandled.exception",
        error_id=error_id,
        error_type=type(exc).__name__,
        error=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=exc,
    )
    message = f"Internal server error: {exc}" if settings.is_development else "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=APIError(code="internal_error", message=message, details={"error_id": error_id}).model_dump(),
        headers={"X-Error-ID": error_id},
    )


app.include_router(health_router, prefix=settings.api_prefix)
app.include_router(businesses_router, prefix=settings.api_prefix)
app.include_router(categories_router, prefix=settings.api_prefix)
app.include_router(claims_router, prefix=settings.api_prefix)
app.include_router(leads_router, prefix=settings.api_prefix)

if not settings.is_testing:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/")
async def root():
    return {
        "name": "Business Directory API",
        "version": app.version,
        "environment": settings.environment,
        "health": f"{settings.api_prefix}/health",
    }


logger.info("application.configured", environment=settings.environment)
