"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mindbreaker.config import Settings
from mindbreaker.middleware.error_handler import setup_error_handlers
from mindbreaker.middleware.logging import setup_logging
from mindbreaker.middleware.rate_limit import RateLimitMiddleware
from mindbreaker.middleware.request_id import RequestIdMiddleware

# Headers the web frontend reads from API responses
_EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and the middleware stack.

    Starlette runs middleware in reverse-add order, so CORS (added last) is
    outermost and also decorates 429s from the rate limiter.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=_EXPOSED_HEADERS,
    )
