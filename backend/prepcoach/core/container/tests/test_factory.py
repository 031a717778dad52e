"""Tests for create_container wiring decisions."""

import pytest

from prepcoach.adapters.inference.anthropic import AnthropicInferenceClient
from prepcoach.adapters.payment.null import NullPaymentGateway
from prepcoach.adapters.payment.stripe import StripePaymentGateway
from prepcoach.core.config import Settings
from prepcoach.core import container as container_mod
from prepcoach.core.container import create_container


def _settings(**overrides) -> Settings:
    values = {"STRIPE_SECRET_KEY": "", "ANTHROPIC_API_KEY": None}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestCreateContainer:
    def test_without_credentials(self):
        container = create_container(_settings())

        assert isinstance(container.payment_gateway, NullPaymentGateway)
        assert container.inference_client is None
        assert container.coaching_service.is_live is False
        assert container.engine is not None

    def test_with_credentials(self):
        container = create_container(
            _settings(
                STRIPE_SECRET_KEY="sk_test_wiring",
                STRIPE_WEBHOOK_SECRET="whsec_wiring",
                ANTHROPIC_API_KEY="test-key",
            )
        )

        assert isinstance(container.payment_gateway, StripePaymentGateway)
        assert isinstance(container.inference_client, AnthropicInferenceClient)
        assert container.coaching_service.is_live is True

    def test_blank_inference_key_means_mocks(self):
        container = create_container(_settings(ANTHROPIC_API_KEY="   "))

        assert container.inference_client is None

    def test_services_share_repositories(self):
        container = create_container(_settings())

        assert container.checkout_broker._subscription_repo is container.subscription_repo
        assert container.billing_webhook._event_repo is container.event_repo

    def test_replace_returns_new_container(self):
        original = create_container(_settings())
        gateway = NullPaymentGateway()

        modified = original.replace(payment_gateway=gateway)

        assert modified.payment_gateway is gateway
        assert original.payment_gateway is not gateway


class TestGlobalContainer:
    @pytest.fixture(autouse=True)
    def _reset(self):
        container_mod.set_container(None)
        yield
        container_mod.set_container(None)

    def test_initialize_sets_global(self):
        container_mod.initialize_container(_settings())

        assert container_mod.container is not None

    def test_initialize_twice_fails(self):
        container_mod.initialize_container(_settings())

        with pytest.raises(RuntimeError):
            container_mod.initialize_container(_settings())
