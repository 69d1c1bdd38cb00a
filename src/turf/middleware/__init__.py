"""HTTP middleware, exception handlers and logging setup."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from turf.config import Settings
from turf.middleware.error_handler import setup_error_handlers
from turf.middleware.logging import setup_logging
from turf.middleware.rate_limit import RateLimitMiddleware
from turf.middleware.request_id import RequestIdMiddleware

# Headers a browser map client needs to read back.
_EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Wire logging, handlers and the middleware stack onto ``app``.

    Starlette runs middleware outermost-last-added. The resulting order is
    CORS, then request id, then rate limiting, so throttled responses still
    carry CORS headers and a request id.
    """
    setup_logging(settings)
    setup_error_handlers(app)

    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
        exempt_paths=frozenset(settings.rate_limit_exempt_paths),
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=_EXPOSED_HEADERS,
    )
