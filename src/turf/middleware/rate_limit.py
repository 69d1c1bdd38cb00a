"""Per-client fixed window rate limiting backed by Redis counters."""

import time
from collections.abc import Iterable
from typing import Any

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Count requests per client IP in fixed windows and answer 429 past the limit.

    The limiter fails open: with no client on ``app.state.redis``, or when
    Redis errors, requests are served without limit headers.
    """

    def __init__(
        self,
        app: Any,  # noqa: ANN401
        requests_per_window: int = 100,
        window_seconds: int = 60,
        exempt_paths: Iterable[str] = ("/health", "/ready"),
    ) -> None:
        super().__init__(app)
        self.limit = requests_per_window
        self.window_seconds = window_seconds
        self.exempt_paths = frozenset(exempt_paths)

    def _key(self, request: Request) -> str:
        client_ip = request.client.host if request.client else "unknown"
        return f"ratelimit:{client_ip}:{int(time.time()) // self.window_seconds}"

    async def _hit(self, request: Request) -> int | None:
        """Increment this client's counter; None means the limiter is unavailable."""
        redis = getattr(request.app.state, "redis", None)
        if redis is None:
            return None
        key = self._key(request)
        try:
            pipe = redis.pipeline()
            pipe.incr(key)
            pipe.expire(key, self.window_seconds + 1)
            count, _ = await pipe.execute()
        except (RedisError, OSError) as exc:
            logger.warning("rate_limit_unavailable", error=str(exc))
            return None
        return int(count)

    def _headers(self, remaining: int) -> dict[str, str]:
        return {"X-RateLimit-Remaining": str(remaining), "X-RateLimit-Limit": str(self.limit)}

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        count = await self._hit(request)
        if count is None:
            return await call_next(request)

        if count > self.limit:
            logger.info("rate_limited", count=count, limit=self.limit)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later.", "error": "rate_limited", "retryable": True},
                headers={"Retry-After": str(self.window_seconds), **self._headers(0)},
            )

        response = await call_next(request)
        response.headers.update(self._headers(max(0, self.limit - count)))
        return response
