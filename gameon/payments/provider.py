"""
Contract between the payment coordination service and an external payment
provider. The service only needs to open a reservation for an amount, ask
for its status, and decode pushed status notifications.
"""
import abc
from decimal import Decimal
from typing import Dict, NamedTuple, Optional

from gameon.models import ReservationStatus


class Reservation(NamedTuple):
    reference: str
    client_secret: str


class PaymentNotification(NamedTuple):
    reference: str
    status: ReservationStatus


class PaymentProvider(abc.ABC):

    @abc.abstractmethod
    def open_reservation(self, amount: Decimal, currency: str, metadata: Dict[str, str]) -> Reservation:
        """Asks the provider to hold ``amount``. Raises PaymentProviderError."""

    @abc.abstractmethod
    def get_reservation_status(self, reference: str) -> ReservationStatus:
        """Raises PaymentProviderError when the provider cannot answer."""

    @abc.abstractmethod
    def parse_notification(self, payload: bytes, signature: str) -> Optional[PaymentNotification]:
        """
        Verifies and decodes a pushed notification. Returns None for events
        that do not change a reservation.

        Raises ValidationError for bad signatures or unreadable payloads.
        """
