"""Tests for the gateway adapters and the gateway factory."""

import pytest
import stripe
from checkout.config import reset_settings
from checkout.errors import ErrorKind
from checkout.payment.gateway import get_gateway, reset_gateway, set_gateway
from checkout.payment.gateway.fake_adapter import FakeGateway
from checkout.payment.gateway.port import GatewayError, GatewayStatus
from checkout.payment.gateway.stripe_adapter import StripeGateway, _translate, intent_id_from_secret


class TestFakeGateway:
    @pytest.mark.asyncio
    async def test_create_is_idempotent(self):
        gateway = FakeGateway()
        first = await gateway.create_intent(3600, "GBP", "ada@example.com", {}, idempotency_key="k-1")
        second = await gateway.create_intent(3600, "GBP", "ada@example.com", {}, idempotency_key="k-1")

        assert first == second
        assert first.currency == "gbp"
        assert first.client_secret.startswith(f"{first.intent_id}_secret_")

    @pytest.mark.asyncio
    async def test_confirm_and_retrieve(self):
        gateway = FakeGateway()
        handle = await gateway.create_intent(3600, "GBP", None, {}, idempotency_key="k-1")

        state = await gateway.confirm_intent(handle.client_secret, "pm_card_visa")
        retrieved = await gateway.retrieve_intent(handle.client_secret)

        assert state.gateway_status == GatewayStatus.SUCCEEDED
        assert retrieved.gateway_status == GatewayStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_configured_failure(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_code="insufficient_funds", failure_message="Insufficient funds")
        handle = await gateway.create_intent(3600, "GBP", None, {}, idempotency_key="k-1")

        with pytest.raises(GatewayError) as exc:
            await gateway.confirm_intent(handle.client_secret, "pm_card_visa")

        assert exc.value.kind == ErrorKind.DECLINED
        assert exc.value.code == "insufficient_funds"
        assert exc.value.error_type == "card_error"

    @pytest.mark.asyncio
    async def test_unknown_secret(self):
        with pytest.raises(GatewayError):
            await FakeGateway().retrieve_intent("pi_nope_secret_x")


class TestGatewayFactory:
    def test_defaults_to_fake(self):
        assert isinstance(get_gateway(), FakeGateway)
        assert get_gateway() is get_gateway()

    def test_set_and_reset(self):
        custom = FakeGateway()
        set_gateway(custom)
        assert get_gateway() is custom
        reset_gateway()
        assert get_gateway() is not custom

    def test_stripe_without_key_fails_loudly(self, monkeypatch):
        monkeypatch.setenv("CHECKOUT_GATEWAY", "stripe")
        monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
        reset_settings()
        reset_gateway()

        with pytest.raises(GatewayError):
            get_gateway()


class TestStripeTranslation:
    def test_intent_id_from_secret(self):
        assert intent_id_from_secret("pi_123_secret_abc") == "pi_123"

    def test_card_error(self):
        error = _translate(stripe.CardError("Your card has insufficient funds.", None, "insufficient_funds"))
        assert error.kind == ErrorKind.DECLINED
        assert error.code == "insufficient_funds"
        assert error.error_type == "card_error"

    def test_card_error_with_validation_code(self):
        error = _translate(stripe.CardError("Your card's security code is incorrect.", "cvc", "incorrect_cvc"))
        assert error.kind == ErrorKind.VALIDATION

    def test_connection_error(self):
        error = _translate(stripe.APIConnectionError("Network down"))
        assert error.kind == ErrorKind.NETWORK
        assert error.code == "api_connection_error"

    def test_rate_limit(self):
        assert _translate(stripe.RateLimitError("Slow down")).kind == ErrorKind.SERVER

    def test_invalid_request(self):
        error = _translate(stripe.InvalidRequestError("No such payment_intent", "intent", code="resource_missing"))
        assert error.kind == ErrorKind.VALIDATION

    def test_missing_api_key(self):
        with pytest.raises(GatewayError) as exc:
            StripeGateway(api_key="")
        assert exc.value.code == "authentication_error"
