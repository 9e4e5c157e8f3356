import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

import stripe

from gameon.core.errors import PaymentProviderError, ValidationError
from gameon.models import ReservationStatus
from gameon.payments.provider import PaymentNotification, PaymentProvider, Reservation

logger = logging.getLogger(__name__)

# PaymentIntent statuses that will never turn into a successful charge.
_FAILED_STATUSES = {"canceled"}

_EVENT_STATUSES = {
    "payment_intent.succeeded": ReservationStatus.SUCCEEDED,
    "payment_intent.payment_failed": ReservationStatus.FAILED,
    "payment_intent.canceled": ReservationStatus.FAILED,
}


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripePaymentProvider(PaymentProvider):
    """PaymentProvider backed by Stripe PaymentIntents."""

    def __init__(self, api_key: str, webhook_secret: str):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def open_reservation(self, amount: Decimal, currency: str, metadata: Dict[str, str]) -> Reservation:
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=to_minor_units(amount),
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as e:
            logger.error("Stripe refused to create a payment intent: %s", e)
            raise PaymentProviderError(f"Could not open payment reservation: {e.user_message or e}")
        return Reservation(reference=intent.id, client_secret=intent.client_secret)

    def get_reservation_status(self, reference: str) -> ReservationStatus:
        try:
            intent = stripe.PaymentIntent.retrieve(reference, api_key=self.api_key)
        except stripe.InvalidRequestError:
            # Unknown or expired intent on Stripe's side.
            return ReservationStatus.FAILED
        except stripe.StripeError as e:
            logger.error("Stripe status lookup failed for %s: %s", reference, e)
            raise PaymentProviderError(f"Could not check payment status: {e.user_message or e}")
        if intent.status == "succeeded":
            return ReservationStatus.SUCCEEDED
        if intent.status in _FAILED_STATUSES:
            return ReservationStatus.FAILED
        return ReservationStatus.PENDING

    def parse_notification(self, payload: bytes, signature: str) -> Optional[PaymentNotification]:
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise ValidationError(f"Invalid payment notification: {e}")
        status = _EVENT_STATUSES.get(event["type"])
        if status is None:
            logger.debug("Ignoring Stripe event %s", event["type"])
            return None
        return PaymentNotification(reference=event["data"]["object"]["id"], status=status)
