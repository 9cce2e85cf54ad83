"""Fixed-window rate limiting for credit-moving endpoints.

Only POSTs to unlock, undo and top-up submission are counted. The client
key is the JWT subject when a valid access token is present, otherwise the
client IP. Counting uses Redis INCR + EXPIRE:

    key   = "ratelimit:{client}:{group}"
    count = INCR key; if count == 1: EXPIRE key 60

If Redis is unreachable the request is let through and a warning is
logged; balances never depend on Redis.
"""

import logging
import re

from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from config.settings import settings
from src.hv_common.errors import AppError, RateLimitError
from src.hv_common.redis_client import get_redis
from src.hv_common.response import error_response
from src.hv_gateway.auth.dependencies import client_ip
from src.hv_gateway.auth.jwt_handler import decode_token

logger = logging.getLogger("hv.ratelimit")

WINDOW_SECONDS = 60

_LIMITED_ROUTES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^/api/v1/songs/[^/]+/unlock$"), "unlock"),
    (re.compile(r"^/api/v1/songs/[^/]+/undo$"), "undo"),
    (re.compile(r"^/api/v1/credits/top-ups$"), "top-up"),
)


def route_group(method: str, path: str) -> str | None:
    """Return the rate-limit group for a request, or None if unlimited."""
    if method != "POST":
        return None
    for pattern, group in _LIMITED_ROUTES:
        if pattern.match(path):
            return group
    return None


def client_key(request: Request) -> str:
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        try:
            sub = decode_token(auth[7:], expected_type="access").get("sub")
        except AppError:
            sub = None
        if sub:
            return f"user:{sub}"
    return f"ip:{client_ip(request) or 'unknown'}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        group = route_group(request.method, request.url.path)
        if group is None:
            return await call_next(request)

        key = f"ratelimit:{client_key(request)}:{group}"
        try:
            redis = await get_redis()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, WINDOW_SECONDS)
        except RedisError as exc:
            logger.warning("Rate limiter unavailable, allowing %s: %s", key, exc)
            return await call_next(request)

        if count > settings.RATE_LIMIT_PER_MINUTE:
            err = RateLimitError()
            logger.warning("Rate limit exceeded: %s count=%d", key, count)
            body = error_response(err.code, err.message)
            request_id = getattr(request.state, "request_id", None)
            if request_id:
                body.request_id = request_id
            return JSONResponse(
                status_code=err.http_status,
                content=body.model_dump(),
                headers={"Retry-After": str(WINDOW_SECONDS)},
            )
        return await call_next(request)
