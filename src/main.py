"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.mb_common.database import engine
from src.mb_common.errors import AppError, RateLimitError
from src.mb_common.redis_client import close_redis, get_redis
from src.mb_common.response import error_response
from src.mb_game.api.router import router as game_router
from src.mb_gateway.api.router import router as auth_router
from src.mb_gateway.middleware.rate_limit import RateLimitMiddleware
from src.mb_gateway.middleware.request_log import RequestLogMiddleware
from src.mb_ledger.api.router import admin_router as ledger_admin_router
from src.mb_ledger.api.router import router as account_router
from src.mb_payment.api.router import router as payment_router
from src.mb_payment.infrastructure.indexer_client import get_indexer_client
from src.mb_purchase.api.router import router as purchase_router
from src.mb_withdrawal.api.router import admin_router as withdrawal_admin_router
from src.mb_withdrawal.api.router import router as withdrawal_router

API_PREFIX = "/api/v1"
RATE_LIMITED_PREFIXES = (
    f"{API_PREFIX}/purchases",
    f"{API_PREFIX}/payments",
    f"{API_PREFIX}/withdrawals",
    f"{API_PREFIX}/games",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()
    await get_indexer_client().startup()
    yield
    await get_indexer_client().shutdown()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(
    RateLimitMiddleware,
    limit_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    protected_prefixes=RATE_LIMITED_PREFIXES,
)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, exc.data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
        headers=headers,
    )


app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(account_router, prefix=API_PREFIX)
app.include_router(ledger_admin_router, prefix=API_PREFIX)
app.include_router(payment_router, prefix=API_PREFIX)
app.include_router(purchase_router, prefix=API_PREFIX)
app.include_router(withdrawal_router, prefix=API_PREFIX)
app.include_router(withdrawal_admin_router, prefix=API_PREFIX)
app.include_router(game_router, prefix=API_PREFIX)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
