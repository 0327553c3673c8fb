"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.fm_common.database import async_session_factory, check_database, engine
from src.fm_common.errors import AppError, InternalError
from src.fm_common.redis_client import check_redis, close_redis
from src.fm_common.response import error_response
from src.fm_gateway.middleware.request_log import RequestLogMiddleware
from src.fm_load.api.router import router as load_router
from src.fm_matching.api.router import router as matching_router
from src.fm_notify.application.queue import get_notification_queue
from src.fm_notify.infrastructure.redis_publisher import RedisNotificationPublisher
from src.fm_offer.api.router import router as offer_router
from src.fm_offer.application.sweeper import OfferExpirySweeper
from src.fm_pricing.api.router import router as pricing_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, start notification drain and offer sweeper.
    Shutdown: stop background tasks, dispose."""
    # Startup
    await check_database()
    await check_redis()
    notifications = get_notification_queue()
    notifications.start(RedisNotificationPublisher())
    sweeper = OfferExpirySweeper(async_session_factory)
    sweeper.start()
    yield
    # Shutdown
    await sweeper.stop()
    await notifications.stop()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Storage error on %s %s", request.method, request.url.path, exc_info=exc)
    internal = InternalError()
    resp = error_response(internal.code, internal.message, request)
    return JSONResponse(
        status_code=internal.http_status,
        content=resp.model_dump(),
    )


app.include_router(pricing_router, prefix="/api/v1")
app.include_router(matching_router, prefix="/api/v1")
app.include_router(offer_router, prefix="/api/v1")
app.include_router(load_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
