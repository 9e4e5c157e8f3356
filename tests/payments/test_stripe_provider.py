import hashlib
import hmac
import json
import time
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import stripe

from gameon.core.errors import PaymentProviderError, ValidationError
from gameon.models import ReservationStatus
from gameon.payments.stripe_provider import StripePaymentProvider, to_minor_units

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def provider():
    return StripePaymentProvider(api_key="sk_test_123", webhook_secret=WEBHOOK_SECRET)


def signed(event: dict):
    payload = json.dumps(event)
    timestamp = int(time.time())
    signature = hmac.new(
        WEBHOOK_SECRET.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256
    ).hexdigest()
    return payload.encode(), f"t={timestamp},v1={signature}"


def intent_event(event_type: str, intent_id: str = "pi_123"):
    return {
        "id": "evt_1",
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": intent_id, "object": "payment_intent"}},
    }


class TestStripePaymentProvider:

    def test_minor_units(self):
        assert to_minor_units(Decimal("25.00")) == 2500
        assert to_minor_units(Decimal("0.01")) == 1

    def test_open_reservation(self, provider):
        intent = MagicMock(id="pi_123", client_secret="pi_123_secret_abc")
        with patch.object(stripe.PaymentIntent, "create", return_value=intent) as create:
            reservation = provider.open_reservation(Decimal("25"), "usd", {"game_id": "1"})

        assert reservation.reference == "pi_123"
        assert reservation.client_secret == "pi_123_secret_abc"
        kwargs = create.call_args.kwargs
        assert kwargs["amount"] == 2500
        assert kwargs["currency"] == "usd"
        assert kwargs["metadata"] == {"game_id": "1"}

    def test_open_reservation_provider_down(self, provider):
        with patch.object(stripe.PaymentIntent, "create", side_effect=stripe.APIConnectionError("unreachable")):
            with pytest.raises(PaymentProviderError):
                provider.open_reservation(Decimal("25"), "usd", {})

    @pytest.mark.parametrize("stripe_status,expected", [
        ("succeeded", ReservationStatus.SUCCEEDED),
        ("processing", ReservationStatus.PENDING),
        ("requires_payment_method", ReservationStatus.PENDING),
        ("canceled", ReservationStatus.FAILED),
    ])
    def test_reservation_status(self, provider, stripe_status, expected):
        with patch.object(stripe.PaymentIntent, "retrieve", return_value=MagicMock(status=stripe_status)):
            assert provider.get_reservation_status("pi_123") == expected

    def test_unknown_intent_is_failed(self, provider):
        error = stripe.InvalidRequestError("No such payment_intent", param="intent")
        with patch.object(stripe.PaymentIntent, "retrieve", side_effect=error):
            assert provider.get_reservation_status("pi_missing") == ReservationStatus.FAILED

    def test_status_lookup_provider_down(self, provider):
        with patch.object(stripe.PaymentIntent, "retrieve", side_effect=stripe.APIConnectionError("timeout")):
            with pytest.raises(PaymentProviderError):
                provider.get_reservation_status("pi_123")

    def test_succeeded_event(self, provider):
        payload, signature = signed(intent_event("payment_intent.succeeded"))
        notification = provider.parse_notification(payload, signature)
        assert notification.reference == "pi_123"
        assert notification.status == ReservationStatus.SUCCEEDED

    def test_failed_event(self, provider):
        payload, signature = signed(intent_event("payment_intent.payment_failed"))
        assert provider.parse_notification(payload, signature).status == ReservationStatus.FAILED

    def test_unrelated_event(self, provider):
        payload, signature = signed(intent_event("customer.created"))
        assert provider.parse_notification(payload, signature) is None

    def test_forged_signature(self, provider):
        payload, _ = signed(intent_event("payment_intent.succeeded"))
        with pytest.raises(ValidationError):
            provider.parse_notification(payload, "t=1,v1=deadbeef")
