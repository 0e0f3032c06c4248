"""Fixed-window rate limiting for money-moving endpoints.

Redis INCR + EXPIRE per (client, path group, window):
    key = "ratelimit:{client}:{group}:{window_start}"

Only paths under ``protected_prefixes`` are counted. Client identity is the
first X-Forwarded-For hop (reverse-proxy aware), falling back to the socket
peer. If Redis is unreachable the request is allowed and a warning logged;
balances are protected by the ledger, not by this limiter.
"""

import logging
import time
from collections.abc import Awaitable, Callable, Sequence

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from src.mb_common.errors import RateLimitError
from src.mb_common.redis_client import get_redis
from src.mb_common.response import error_response

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        limit_per_minute: int,
        protected_prefixes: Sequence[str],
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(app)
        self._limit = limit_per_minute
        self._prefixes = tuple(protected_prefixes)
        self._redis_factory = redis_factory
        self._clock = clock

    def _group(self, path: str) -> str | None:
        for prefix in self._prefixes:
            if path.startswith(prefix):
                return prefix
        return None

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        group = self._group(request.url.path)
        if group is None or request.method == "GET":
            return await call_next(request)

        now = int(self._clock())
        window_start = now - (now % _WINDOW_SECONDS)
        key = f"ratelimit:{client_key(request)}:{group}:{window_start}"
        try:
            redis = await self._redis_factory()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, _WINDOW_SECONDS)
        except RedisError as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return await call_next(request)

        if count > self._limit:
            err = RateLimitError(retry_after=window_start + _WINDOW_SECONDS - now)
            resp = error_response(err.code, err.message)
            resp.request_id = getattr(request.state, "request_id", resp.request_id)
            return JSONResponse(
                status_code=err.http_status,
                content=resp.model_dump(),
                headers={"Retry-After": str(err.retry_after)},
            )
        return await call_next(request)
