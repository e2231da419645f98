"""HTTP hardening for the JSON API: response headers and the shared rate limiter."""

from fastapi import FastAPI
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from petcare.core.config import settings


# Quota and billing responses are per-user and must never be cached or framed
API_RESPONSE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}

HSTS_HEADER = "max-age=31536000; includeSubDomains"


class APIHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp API_RESPONSE_HEADERS (plus HSTS in production) on every response."""

    async def dispatch(self, request, call_next):
        response = await call_next(request)

        for name, value in API_RESPONSE_HEADERS.items():
            response.headers[name] = value
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = HSTS_HEADER

        return response


# Routers decorate endpoints with @limiter.limit(...); keyed by client address
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URL,
    strategy="fixed-window",
    headers_enabled=True,
)


def configure_rate_limiting(app: FastAPI) -> Limiter:
    """
    Attach the shared limiter to the app and answer 429 when a limit trips.

    Returns:
        The shared Limiter
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    return limiter


def add_security_headers(app: FastAPI) -> None:
    """Install APIHeadersMiddleware."""
    app.add_middleware(APIHeadersMiddleware)
