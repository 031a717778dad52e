"""Tests for CheckoutBroker and SubscriptionQueryService."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from prepcoach.core.exceptions import (
    UpstreamFatalError,
    UpstreamRetryableError,
    UpstreamUnavailableError,
    ValidationError,
)
from prepcoach.domains.billing.exceptions import BillingNotFoundError, PaymentGatewayError
from prepcoach.domains.billing.tests.conftest import (
    DEFAULT_USER_ID,
    SITE_URL,
    _make_db,
    _make_record,
)
from prepcoach.models import ProcessedEvent


class TestCheckoutSession:
    @pytest.mark.asyncio
    async def test_creates_customer_once_and_binds_it(self, broker, gateway, subscription_repo):
        db = _make_db()

        first = await broker.create_checkout_session(
            db, user_id=DEFAULT_USER_ID, price_id="price_monthly"
        )
        second = await broker.create_checkout_session(
            db, user_id=DEFAULT_USER_ID, price_id="price_yearly"
        )

        record = await subscription_repo.get_by_user_id(db, user_id=DEFAULT_USER_ID)
        assert gateway.call_count("create_customer") == 1
        assert record.stripe_customer_id == "cus_0001"
        assert record.status == "incomplete"
        assert first.session_id != second.session_id
        assert first.url.startswith("https://checkout.stripe.test/")

    @pytest.mark.asyncio
    async def test_existing_customer_reused(self, broker, gateway, subscription_repo):
        subscription_repo.seed(DEFAULT_USER_ID, _make_record(stripe_customer_id="cus_known"))

        await broker.create_checkout_session(
            _make_db(), user_id=DEFAULT_USER_ID, price_id="price_monthly"
        )

        assert gateway.call_count("create_customer") == 0
        call = next(c for c in gateway._calls if c[0] == "create_checkout_session")
        assert call[1] == "cus_known"

    @pytest.mark.asyncio
    async def test_session_metadata_and_default_urls(self, broker, gateway):
        await broker.create_checkout_session(
            _make_db(), user_id=DEFAULT_USER_ID, price_id="price_yearly"
        )

        call = next(c for c in gateway._calls if c[0] == "create_checkout_session")
        _, _, price_id, success_url, cancel_url, metadata, client_reference_id = call
        assert price_id == "price_yearly"
        assert success_url == f"{SITE_URL}/subscription/success"
        assert cancel_url == f"{SITE_URL}/pricing"
        assert metadata == {"userId": DEFAULT_USER_ID, "priceId": "price_yearly"}
        assert client_reference_id == DEFAULT_USER_ID

    @pytest.mark.asyncio
    async def test_customer_creation_uses_idempotency_key(self, broker, gateway):
        await broker.create_checkout_session(
            _make_db(), user_id=DEFAULT_USER_ID, price_id="price_monthly"
        )

        call = next(c for c in gateway._calls if c[0] == "create_customer")
        assert call[3] == f"customer-{DEFAULT_USER_ID}"

    @pytest.mark.asyncio
    async def test_explicit_urls_honored(self, broker, gateway):
        await broker.create_checkout_session(
            _make_db(),
            user_id=DEFAULT_USER_ID,
            price_id="price_monthly",
            success_url="https://app.test/ok",
            cancel_url="https://app.test/back",
        )

        call = next(c for c in gateway._calls if c[0] == "create_checkout_session")
        assert call[3] == "https://app.test/ok"
        assert call[4] == "https://app.test/back"

    @pytest.mark.parametrize(
        "user_id,price_id", [("", "price_monthly"), (DEFAULT_USER_ID, ""), ("U1", "price_gold")]
    )
    @pytest.mark.asyncio
    async def test_invalid_input_has_no_side_effects(self, broker, gateway, user_id, price_id):
        with pytest.raises(ValidationError):
            await broker.create_checkout_session(_make_db(), user_id=user_id, price_id=price_id)

        assert gateway._calls == []

    @pytest.mark.asyncio
    async def test_transient_gateway_errors_retried(self, broker, gateway):
        gateway.fail_next("create_checkout_session", UpstreamRetryableError("Stripe", 500))

        result = await broker.create_checkout_session(
            _make_db(), user_id=DEFAULT_USER_ID, price_id="price_monthly"
        )

        assert result.session_id
        assert gateway.call_count("create_checkout_session") == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_surface_unavailable(self, broker, gateway):
        gateway.fail_next(
            "create_customer", *[UpstreamRetryableError("Stripe", 503) for _ in range(4)]
        )

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await broker.create_checkout_session(
                _make_db(), user_id=DEFAULT_USER_ID, price_id="price_monthly"
            )

        assert exc_info.value.attempts == 4

    @pytest.mark.asyncio
    async def test_fatal_gateway_error_wrapped(self, broker, gateway):
        gateway.fail_next("create_customer", UpstreamFatalError("Stripe", 400, "bad request"))

        with pytest.raises(PaymentGatewayError):
            await broker.create_checkout_session(
                _make_db(), user_id=DEFAULT_USER_ID, price_id="price_monthly"
            )

        assert gateway.call_count("create_customer") == 1


class TestPortalSession:
    @pytest.mark.asyncio
    async def test_portal_for_bound_customer(self, broker, gateway, subscription_repo):
        subscription_repo.seed(DEFAULT_USER_ID, _make_record(stripe_customer_id="cus_42"))

        url = await broker.create_portal_session(_make_db(), user_id=DEFAULT_USER_ID)

        assert url == "https://billing.stripe.test/p/cus_42"
        call = next(c for c in gateway._calls if c[0] == "create_portal_session")
        assert call[2] == f"{SITE_URL}/profile"

    @pytest.mark.asyncio
    async def test_no_customer_on_file(self, broker, gateway):
        with pytest.raises(BillingNotFoundError):
            await broker.create_portal_session(_make_db(), user_id="nobody")

        assert gateway.call_count("create_portal_session") == 0


class TestSubscriptionQueries:
    @pytest.mark.asyncio
    async def test_missing_record_is_free(self, query_service):
        snapshot = await query_service.get_subscription(_make_db(), user_id="new-user")

        assert snapshot.plan_id == "free"
        assert snapshot.status == "active"
        assert snapshot.is_premium is False
        assert snapshot.current_period_end is None

    @pytest.mark.asyncio
    async def test_premium_snapshot(self, query_service, subscription_repo):
        subscription_repo.seed(DEFAULT_USER_ID, _make_record(plan_id="premium_yearly"))

        snapshot = await query_service.get_subscription(_make_db(), user_id=DEFAULT_USER_ID)

        assert snapshot.plan_id == "premium_yearly"
        assert snapshot.is_premium is True
        assert await query_service.is_premium(_make_db(), user_id=DEFAULT_USER_ID) is True

    @pytest.mark.asyncio
    async def test_past_due_is_not_premium(self, query_service, subscription_repo):
        subscription_repo.seed(DEFAULT_USER_ID, _make_record(status="past_due"))

        assert await query_service.is_premium(_make_db(), user_id=DEFAULT_USER_ID) is False

    @pytest.mark.asyncio
    async def test_analytics_from_event_log(self, query_service, event_repo):
        now = datetime.now(timezone.utc)
        event_repo.seed(
            ProcessedEvent(
                event_id="evt_1",
                type="checkout.session.completed",
                user_id=DEFAULT_USER_ID,
                amount=Decimal("19.99"),
                plan="premium_monthly",
                processed_at=now,
            )
        )
        event_repo.seed(
            ProcessedEvent(
                event_id="evt_2",
                type="invoice.paid",
                user_id=DEFAULT_USER_ID,
                amount=Decimal("19.99"),
                plan="premium_monthly",
                processed_at=now,
            )
        )

        analytics = await query_service.get_analytics(_make_db(), user_id=DEFAULT_USER_ID)

        assert analytics.subscription_start == now
        assert analytics.total_spent == Decimal("19.99")
        assert analytics.renewals == 0
