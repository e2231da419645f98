"""
Route tests for /billing.
"""

import uuid

from petcare.models.payment import PaymentStatus
from petcare.models.promo_code import DiscountType

from tests.conftest import make_promo


SECRET_HEADER = {"X-Payment-Secret": "test-payment-secret"}


class TestTiers:
    def test_lists_active_tiers_cheapest_first(self, client):
        response = client.get("/billing/tiers")

        assert response.status_code == 200
        names = [t["name"] for t in response.json()["tiers"]]
        assert names == ["free", "basic", "pro"]


class TestValidatePromoCode:
    def test_requires_auth(self, client):
        response = client.post("/billing/promo-codes/validate", json={"code": "SAVE20"})

        assert response.status_code in [401, 403]

    def test_valid_code(self, client, auth_headers, promo_codes, basic_tier):
        promo_codes.add(make_promo("SAVE20"))

        response = client.post(
            "/billing/promo-codes/validate",
            json={"code": "save20", "tier_id": str(basic_tier.id)},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is True
        assert body["final_amount"] == 80000

    def test_rejection_is_200_with_reason(self, client, auth_headers, basic_tier):
        response = client.post(
            "/billing/promo-codes/validate",
            json={"code": "NOPE", "tier_id": str(basic_tier.id)},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["reason"] == "INVALID_CODE"

    def test_validation_is_rate_limited(self, client, auth_headers, basic_tier):
        payload = {"code": "GUESS", "tier_id": str(basic_tier.id)}

        statuses = [
            client.post("/billing/promo-codes/validate", json=payload, headers=auth_headers).status_code
            for _ in range(11)
        ]

        assert statuses[:10] == [200] * 10
        assert statuses[10] == 429


class TestCheckout:
    def test_paid_checkout(self, client, auth_headers, basic_tier):
        response = client.post("/billing/checkout", json={"tier_id": str(basic_tier.id)}, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "pending"
        assert body["final_amount"] == 100000
        assert body["activated"] is False

    def test_bad_promo_is_400_with_reason(self, client, auth_headers, basic_tier):
        response = client.post(
            "/billing/checkout",
            json={"tier_id": str(basic_tier.id), "promo_code": "NOPE"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"]["reason"] == "INVALID_CODE"

    def test_zero_cost_checkout_activates(self, client, auth_headers, promo_codes, pro_tier):
        promo_codes.add(make_promo("FREEPRO", DiscountType.FREE_TIER, 0, free_tier_id=pro_tier.id))

        body = client.post(
            "/billing/checkout",
            json={"tier_id": str(pro_tier.id), "promo_code": "FREEPRO"},
            headers=auth_headers,
        ).json()
        usage = client.get("/ai/usage", headers=auth_headers).json()

        assert body["activated"] is True
        assert body["subscription_expires_at"] is not None
        assert usage["tier_name"] == "pro"
        assert usage["remaining"] == 200


class TestConfirmPayment:
    def start(self, client, auth_headers, tier):
        return client.post("/billing/checkout", json={"tier_id": str(tier.id)}, headers=auth_headers).json()

    def test_missing_secret(self, client, auth_headers, basic_tier):
        started = self.start(client, auth_headers, basic_tier)

        response = client.post(f"/billing/payments/{started['payment_id']}/confirm", json={"status": "OK"})

        assert response.status_code == 401

    def test_wrong_secret(self, client, auth_headers, basic_tier):
        started = self.start(client, auth_headers, basic_tier)

        response = client.post(
            f"/billing/payments/{started['payment_id']}/confirm",
            json={"status": "OK"},
            headers={"X-Payment-Secret": "guess"},
        )

        assert response.status_code == 403

    def test_confirmation_activates_subscription(self, client, auth_headers, payments, basic_tier):
        started = self.start(client, auth_headers, basic_tier)

        response = client.post(
            f"/billing/payments/{started['payment_id']}/confirm",
            json={"status": "OK", "transaction_id": "txn-42"},
            headers=SECRET_HEADER,
        )
        usage = client.get("/ai/usage", headers=auth_headers).json()

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert payments.payments[uuid.UUID(started["payment_id"])].status == PaymentStatus.COMPLETED.value
        assert usage["tier_name"] == "basic"

    def test_failed_status(self, client, auth_headers, basic_tier):
        started = self.start(client, auth_headers, basic_tier)

        response = client.post(
            f"/billing/payments/{started['payment_id']}/confirm",
            json={"status": "FAILED"},
            headers=SECRET_HEADER,
        )

        assert response.json()["status"] == "failed"

    def test_unknown_payment(self, client):
        response = client.post(
            f"/billing/payments/{uuid.uuid4()}/confirm",
            json={"status": "OK"},
            headers=SECRET_HEADER,
        )

        assert response.status_code == 404
