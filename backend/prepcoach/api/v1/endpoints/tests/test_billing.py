"""API tests for billing endpoints.

Drives the real webhook processor and checkout broker over fakes and checks
the HTTP contract: status codes, camelCase bodies, and side effects.
"""

import json
import time

import pytest

from prepcoach.adapters.payment.fake import FakePaymentGateway
from prepcoach.core.exceptions import StorageUnavailableError, UpstreamRetryableError
from prepcoach.domains.billing.exceptions import BillingNotAvailableError
from prepcoach.models import SubscriptionRecord

SIG = FakePaymentGateway.VALID_SIGNATURE


def _checkout_completed(event_id: str = "evt_1", user_id: str = "U1") -> bytes:
    return json.dumps(
        {
            "id": event_id,
            "type": "checkout.session.completed",
            "created": int(time.time()),
            "data": {
                "object": {
                    "id": "cs_1",
                    "customer": "cus_1",
                    "subscription": "sub_1",
                    "amount_total": 19999,
                    "metadata": {"userId": user_id, "priceId": "price_yearly"},
                }
            },
        }
    ).encode()


class TestWebhook:
    """Tests for POST /billing/webhook."""

    @pytest.mark.asyncio
    async def test_valid_delivery_acknowledged(self, client, fake_subscription_repo):
        response = await client.post(
            "/billing/webhook", content=_checkout_completed(), headers={"Stripe-Signature": SIG}
        )

        assert response.status_code == 200
        assert response.json() == {"received": True, "duplicate": False}
        record = fake_subscription_repo._store["U1"]
        assert record.plan_id == "premium_yearly"
        assert record.status == "active"

    @pytest.mark.asyncio
    async def test_redelivery_acknowledged_as_duplicate(
        self, client, fake_subscription_repo, fake_event_repo
    ):
        headers = {"Stripe-Signature": SIG}
        await client.post("/billing/webhook", content=_checkout_completed(), headers=headers)

        response = await client.post(
            "/billing/webhook", content=_checkout_completed(), headers=headers
        )

        assert response.status_code == 200
        assert response.json()["duplicate"] is True
        assert fake_subscription_repo.call_count("upsert") == 1
        assert len(fake_event_repo.events) == 1

    @pytest.mark.asyncio
    async def test_bad_signature_is_400(self, client, fake_event_repo):
        response = await client.post(
            "/billing/webhook",
            content=_checkout_completed(),
            headers={"Stripe-Signature": "t=1,v1=forged"},
        )

        assert response.status_code == 400
        assert fake_event_repo.events == []

    @pytest.mark.asyncio
    async def test_missing_signature_is_400(self, client, fake_payment_gateway, fake_event_repo):
        response = await client.post("/billing/webhook", content=_checkout_completed())

        assert response.status_code == 400
        assert fake_payment_gateway.call_count("verify_webhook_signature") == 1
        assert fake_event_repo.events == []

    @pytest.mark.asyncio
    async def test_malformed_body_is_500(self, client):
        response = await client.post(
            "/billing/webhook", content=b"{oops", headers={"Stripe-Signature": SIG}
        )

        assert response.status_code == 500

    @pytest.mark.asyncio
    async def test_storage_failure_is_500_so_sender_retries(
        self, client, fake_subscription_repo, fake_event_repo
    ):
        fake_subscription_repo.fail_upsert_with(StorageUnavailableError())

        response = await client.post(
            "/billing/webhook", content=_checkout_completed(), headers={"Stripe-Signature": SIG}
        )

        assert response.status_code == 500


class TestCheckoutSession:
    """Tests for POST /billing/checkout-session."""

    @pytest.mark.asyncio
    async def test_creates_session(self, client, fake_payment_gateway):
        response = await client.post(
            "/billing/checkout-session", json={"userId": "U1", "priceId": "price_monthly"}
        )

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"sessionId", "url"}
        assert body["url"].startswith("https://checkout.stripe.test/")
        assert fake_payment_gateway.call_count("create_customer") == 1

    @pytest.mark.parametrize(
        "payload",
        [{"priceId": "price_monthly"}, {"userId": "U1"}, {"userId": "", "priceId": "price_x"}],
    )
    @pytest.mark.asyncio
    async def test_missing_fields_are_400(self, client, fake_payment_gateway, payload):
        response = await client.post("/billing/checkout-session", json=payload)

        assert response.status_code == 400
        assert fake_payment_gateway._calls == []

    @pytest.mark.asyncio
    async def test_unknown_price_is_400(self, client):
        response = await client.post(
            "/billing/checkout-session", json={"userId": "U1", "priceId": "price_gold"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_exhausted_retries_are_503(self, client, fake_payment_gateway):
        fake_payment_gateway.fail_next(
            "create_customer", *[UpstreamRetryableError("Stripe", 503) for _ in range(4)]
        )

        response = await client.post(
            "/billing/checkout-session", json={"userId": "U1", "priceId": "price_monthly"}
        )

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_billing_disabled_is_503(self, client, fake_payment_gateway):
        fake_payment_gateway.fail_next("create_customer", BillingNotAvailableError())

        response = await client.post(
            "/billing/checkout-session", json={"userId": "U1", "priceId": "price_monthly"}
        )

        assert response.status_code == 503
        assert "not enabled" in response.json()["detail"]


class TestPortalSession:
    """Tests for POST /billing/portal-session."""

    @pytest.mark.asyncio
    async def test_portal_url(self, client, fake_subscription_repo):
        fake_subscription_repo.seed(
            "U1",
            SubscriptionRecord(
                user_id="U1",
                plan_id="premium_monthly",
                status="active",
                stripe_customer_id="cus_7",
                cancel_at_period_end=False,
            ),
        )

        response = await client.post("/billing/portal-session", json={"userId": "U1"})

        assert response.status_code == 200
        assert response.json() == {"url": "https://billing.stripe.test/p/cus_7"}

    @pytest.mark.asyncio
    async def test_no_customer_is_404(self, client):
        response = await client.post("/billing/portal-session", json={"userId": "ghost"})

        assert response.status_code == 404


class TestReads:
    """Tests for the read-only billing endpoints."""

    @pytest.mark.asyncio
    async def test_plans(self, client):
        response = await client.get("/billing/plans")

        assert response.status_code == 200
        plans = {p["id"]: p for p in response.json()}
        assert set(plans) == {"free", "premium_monthly", "premium_yearly"}
        assert plans["free"]["monthlyQuestionLimit"] == 5
        assert plans["premium_yearly"]["monthlyQuestionLimit"] is None

    @pytest.mark.asyncio
    async def test_subscription_defaults_to_free(self, client):
        response = await client.get("/billing/subscription/new-user")

        assert response.status_code == 200
        body = response.json()
        assert body["planId"] == "free"
        assert body["status"] == "active"
        assert body["isPremium"] is False

    @pytest.mark.asyncio
    async def test_subscription_after_checkout(self, client):
        await client.post(
            "/billing/webhook", content=_checkout_completed(), headers={"Stripe-Signature": SIG}
        )

        response = await client.get("/billing/subscription/U1")

        assert response.json()["planId"] == "premium_yearly"
        assert response.json()["isPremium"] is True

    @pytest.mark.asyncio
    async def test_analytics(self, client):
        await client.post(
            "/billing/webhook", content=_checkout_completed(), headers={"Stripe-Signature": SIG}
        )

        response = await client.get("/billing/analytics/U1")

        assert response.status_code == 200
        body = response.json()
        assert body["eventCount"] == 1
        assert body["subscriptionStart"] is not None
