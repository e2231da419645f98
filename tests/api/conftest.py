"""Fixtures for route tests: the app with its stores swapped for in-memory fakes."""

import pytest
from fastapi.testclient import TestClient

from petcare.core.middleware import limiter
from petcare.core.security import create_access_token
from petcare.main import app
from petcare.modules.billing.activation import SubscriptionActivator
from petcare.modules.billing.checkout import CheckoutService
from petcare.modules.billing.dependencies import get_checkout_service
from petcare.modules.entitlements.dependencies import (
    get_promo_validator,
    get_quota_gate,
    get_tier_catalog,
    get_usage_recorder,
)
from petcare.modules.entitlements.promo import PromoCodeValidator
from petcare.modules.entitlements.quota import QuotaGate
from petcare.modules.entitlements.recorder import UsageRecorder
from petcare.modules.entitlements.resolver import EntitlementResolver


@pytest.fixture
def client(catalog, subscriptions, ledger, promo_codes, payments, session):
    """TestClient without lifespan (no database, no Sentry)."""
    validator = PromoCodeValidator(promo_codes, catalog)
    app.dependency_overrides[get_tier_catalog] = lambda: catalog
    app.dependency_overrides[get_quota_gate] = lambda: QuotaGate(
        EntitlementResolver(catalog, subscriptions), ledger, low_remaining_threshold=3
    )
    app.dependency_overrides[get_usage_recorder] = lambda: UsageRecorder(ledger)
    app.dependency_overrides[get_promo_validator] = lambda: validator
    app.dependency_overrides[get_checkout_service] = lambda: CheckoutService(
        session=session,
        catalog=catalog,
        validator=validator,
        payments=payments,
        activator=SubscriptionActivator(session, subscriptions, promo_codes, period_months=1),
    )
    limiter.reset()

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}
