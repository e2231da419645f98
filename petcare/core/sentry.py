"""
Error reporting to Sentry.

Sentry is optional (SENTRY_DSN). When it is off, capture_business_error
still writes the log line, so operators lose nothing but the dashboard.

What gets reported:
- Unhandled exceptions in routes and Celery tasks (via the integrations)
- ERROR-level log records
- Handled entitlement faults passed to capture_business_error: a broken tier
  catalog (fatal), lost usage writes, promo conflicts that need a refund
"""

import logging
import sentry_sdk
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from petcare.core.config import settings

logger = logging.getLogger(__name__)


# Substrings of keys whose values are replaced before an event leaves the process
SENSITIVE_KEYS = (
    "authorization",
    "token",
    "secret",
    "password",
    "api_key",
    "jwt",
    "cookie",
)

REDACTED = "[REDACTED]"


def is_sensitive(key) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)


def _redact(obj):
    if isinstance(obj, dict):
        for key, value in obj.items():
            if is_sensitive(key):
                obj[key] = REDACTED
            else:
                _redact(value)
    elif isinstance(obj, list):
        for item in obj:
            _redact(item)


def filter_sensitive_data(event, hint):
    """before_send hook: scrub bearer tokens and payment secrets from an event."""
    for section in ("request", "extra", "contexts"):
        if event.get(section):
            _redact(event[section])
    return event


def init_sentry():
    """Start the Sentry SDK if a DSN is configured. Called once from the app lifespan."""
    if not settings.SENTRY_DSN:
        logger.info("SENTRY_DSN not set, error reporting goes to logs only")
        return

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        release=f"petcare@{settings.APP_VERSION}",
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            CeleryIntegration(),
            # INFO lines become breadcrumbs, ERROR lines become events
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        send_default_pii=False,
        max_breadcrumbs=50,
        before_send=filter_sensitive_data,
    )

    logger.info(f"Sentry enabled for {settings.ENVIRONMENT}")


def capture_business_error(
    error: Exception,
    context: dict,
    level: str = "error"
):
    """
    Report a handled fault that still needs a human.

    Args:
        error: The exception being handled
        context: user_id, month_key, payment_id, ... (sensitive keys are dropped)
        level: info, warning, error or fatal

    Example:
        capture_business_error(
            error=e,
            context={"user_id": str(user_id), "operation": "record_usage"},
            level="warning"
        )
    """
    safe_context = {k: v for k, v in context.items() if not is_sensitive(k)}

    sentry_sdk.capture_exception(error, level=level, extras=safe_context)

    log = logger.critical if level == "fatal" else logger.error
    log(
        f"{type(error).__name__} reported at {level}: {error}",
        extra=safe_context,
        exc_info=error,
    )
