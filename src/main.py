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
from sqlalchemy import text

from config.settings import settings
from src.hv_account.api.router import router as account_router
from src.hv_admin.api.router import router as admin_router
from src.hv_catalog.api.router import router as catalog_router
from src.hv_common.database import engine
from src.hv_common.errors import AppError
from src.hv_common.logging_config import configure_logging
from src.hv_common.redis_client import close_redis, get_redis
from src.hv_common.response import error_response
from src.hv_gateway.api.router import router as auth_router
from src.hv_gateway.middleware.rate_limit import RateLimitMiddleware
from src.hv_gateway.middleware.request_log import RequestLogMiddleware
from src.hv_ledger.api.router import router as ledger_router
from src.hv_unlock.api.router import router as unlock_router
from src.hv_unlock.api.router import unlock_service

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: stop timers, dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()
    logger.info("%s started", settings.APP_NAME)
    yield
    unlock_service.shutdown()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

# Added last = outermost: request_id exists before the rate limiter runs
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    if exc.http_status >= 500:
        logger.error("AppError %d on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(auth_router, prefix="/api/v1")
app.include_router(account_router, prefix="/api/v1")
app.include_router(catalog_router, prefix="/api/v1")
app.include_router(unlock_router, prefix="/api/v1")
app.include_router(ledger_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
