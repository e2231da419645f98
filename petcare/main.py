"""
PetCare - Main FastAPI Application

Entry point for the entitlement API. Mounts all module routers.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from petcare.core.config import settings
from petcare.core.database import init_db, close_db, check_db
from petcare.core.middleware import configure_rate_limiting, add_security_headers
from petcare.core.sentry import capture_business_error
from petcare.modules.billing.routes import router as billing_router
from petcare.modules.entitlements.errors import ConfigurationError
from petcare.modules.entitlements.routes import router as usage_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan events.

    Runs on startup and shutdown.
    """
    # Startup
    print(f"Starting {settings.APP_NAME}...")
    print(f"Environment: {settings.ENVIRONMENT}")

    # Initialize Sentry error monitoring
    from petcare.core.sentry import init_sentry
    init_sentry()

    # Initialize database (only in development - use Alembic in production)
    if settings.ENVIRONMENT == "development":
        await init_db()

    yield

    # Shutdown
    print("Shutting down...")
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Pet-health app AI quota, subscription and promo code service",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,  # Disable docs in production
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:8000"] if settings.DEBUG else [settings.APP_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate Limiting - protect endpoints from abuse (promo codes are guessable)
limiter = configure_rate_limiting(app)

# Security Headers - applied to all responses
add_security_headers(app)

# Mount routers
app.include_router(usage_router, prefix="/ai", tags=["ai-usage"])
app.include_router(billing_router, prefix="/billing", tags=["billing"])


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """
    Broken tier catalog. Reported as fatal so operators are paged; the client
    only sees a generic 503.
    """
    capture_business_error(
        error=exc,
        context={"path": request.url.path, "operation": "resolve_tier"},
        level="fatal",
    )
    return JSONResponse(
        status_code=503,
        content={"detail": "Service temporarily unavailable"},
    )


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring.

    Used by Docker and load balancers.

    Status:
    - healthy: database reachable
    - unhealthy: database down
    """
    try:
        database_ok = await check_db()
    except Exception as e:
        logger.error(f"Health check database probe failed: {e}")
        database_ok = False

    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "status": "healthy" if database_ok else "unhealthy",
        "database": "ok" if database_ok else "unreachable",
    }
