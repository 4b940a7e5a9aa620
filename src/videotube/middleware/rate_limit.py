"""Per-client request quota over fixed Redis windows."""

import time
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from videotube.redis_client import get_optional_redis

logger = structlog.get_logger()

_UNMETERED_PATHS = frozenset({"/health", "/ready"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Count requests per client address in `window_seconds` buckets.

    Without a Redis pool, or when Redis errors, requests are not metered.
    """

    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    def _bucket_key(self, request: Request) -> str:
        client = request.client.host if request.client else "unknown"
        return f"ratelimit:{client}:{int(time.time()) // self.window_seconds}"

    async def _record_hit(self, redis: Redis, key: str) -> int:
        pipe = redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.window_seconds + 1)
        hits, _ = await pipe.execute()
        return int(hits)

    def _quota_headers(self, hits: int) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.requests_per_window),
            "X-RateLimit-Remaining": str(max(0, self.requests_per_window - hits)),
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        redis = get_optional_redis()
        if redis is None or request.url.path in _UNMETERED_PATHS:
            return await call_next(request)

        try:
            hits = await self._record_hit(redis, self._bucket_key(request))
        except RedisError:
            logger.warning("rate_limit_unavailable", path=request.url.path)
            return await call_next(request)

        if hits > self.requests_per_window:
            logger.info("rate_limited", path=request.url.path, hits=hits)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later.", "error": "TOO_MANY_REQUESTS"},
                headers={"Retry-After": str(self.window_seconds), **self._quota_headers(hits)},
            )

        response = await call_next(request)
        response.headers.update(self._quota_headers(hits))
        return response
