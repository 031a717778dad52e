"""Checkout broker: hosted checkout and billing portal sessions.

A user's Stripe customer is looked up in the subscription store before one
is created, and the binding is written with a single conditional upsert,
so one user never ends up with two billing identities.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.core.exceptions import ValidationError
from prepcoach.core.logging import logger
from prepcoach.core.protocols.payment import CheckoutSessionResult, PaymentGatewayProtocol
from prepcoach.core.resilience import ResilientInvoker
from prepcoach.domains.billing.exceptions import BillingNotFoundError, wrap_gateway_errors
from prepcoach.domains.billing.protocols import CheckoutBrokerProtocol
from prepcoach.domains.billing.repository import SubscriptionRepositoryProtocol
from prepcoach.domains.billing.types import PricePlanMap


class CheckoutBroker(CheckoutBrokerProtocol):
    """Creates checkout and portal sessions through the payment gateway."""

    def __init__(
        self,
        payment_gateway: PaymentGatewayProtocol,
        subscription_repo: SubscriptionRepositoryProtocol,
        prices: PricePlanMap,
        invoker: ResilientInvoker,
        site_url: str,
    ) -> None:
        """Initialize with gateway, store, price map and redirect base URL."""
        self._payment_gateway = payment_gateway
        self._subscription_repo = subscription_repo
        self._prices = prices
        self._invoker = invoker
        self._site_url = site_url.rstrip("/")

    @wrap_gateway_errors
    async def create_checkout_session(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        price_id: str,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> CheckoutSessionResult:
        """Start a subscription checkout for ``user_id``.

        Raises:
            ValidationError: Missing user id or unknown price id.
        """
        if not user_id:
            raise ValidationError("userId is required")
        if not price_id:
            raise ValidationError("priceId is required")
        if not self._prices.is_known_price(price_id):
            raise ValidationError(f"Unknown priceId: {price_id}")

        log = logger.with_context(user_id=user_id, price_id=price_id)
        customer_id = await self._resolve_customer(db, user_id)
        metadata = {"userId": user_id, "priceId": price_id}

        session = await self._invoker.invoke(
            lambda: self._payment_gateway.create_checkout_session(
                customer_id=customer_id,
                price_id=price_id,
                success_url=success_url or f"{self._site_url}/subscription/success",
                cancel_url=cancel_url or f"{self._site_url}/pricing",
                metadata=metadata,
                client_reference_id=user_id,
            )
        )
        log.info(f"Created checkout session {session.session_id}")
        return session

    @wrap_gateway_errors
    async def create_portal_session(
        self, db: AsyncSession, *, user_id: str, return_url: Optional[str] = None
    ) -> str:
        """Open the billing portal for ``user_id``.

        Raises:
            BillingNotFoundError: The user has no Stripe customer on file.
        """
        if not user_id:
            raise ValidationError("userId is required")
        record = await self._subscription_repo.get_by_user_id(db, user_id=user_id)
        if record is None or not record.stripe_customer_id:
            raise BillingNotFoundError("No billing account found for this user")

        customer_id = record.stripe_customer_id
        return await self._invoker.invoke(
            lambda: self._payment_gateway.create_portal_session(
                customer_id=customer_id,
                return_url=return_url or f"{self._site_url}/profile",
            )
        )

    async def _resolve_customer(self, db: AsyncSession, user_id: str) -> str:
        """Return the user's Stripe customer, creating and binding one if needed."""
        record = await self._subscription_repo.get_by_user_id(db, user_id=user_id)
        if record is not None and record.stripe_customer_id:
            return record.stripe_customer_id

        # Same key for every attempt so a retried create returns the same customer.
        created = await self._invoker.invoke(
            lambda: self._payment_gateway.create_customer(
                user_id=user_id,
                metadata={"userId": user_id},
                idempotency_key=f"customer-{user_id}",
            )
        )
        bound = await self._subscription_repo.bind_customer(
            db, user_id=user_id, stripe_customer_id=created
        )
        if bound != created:
            logger.with_context(user_id=user_id).warning(
                f"Customer {created} not bound; user already has {bound}"
            )
        return bound
