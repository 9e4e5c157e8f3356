import logging
from typing import Optional

from gameon.core.errors import AlreadyPaidError, NotFoundError, NotJoinedError, PaymentNotCompletedError
from gameon.models import GameParticipant, PaymentReservation, ReservationStatus
from gameon.payments.provider import PaymentNotification, PaymentProvider
from gameon.repositories.base import GameRepository
from gameon.schemas import payment_schemas
from gameon.services import ledger
from gameon.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Bridges an unpaid participation and the external payment provider.

    A confirmation can arrive twice: once from the client and once from the
    provider's webhook. Both paths funnel into ``_settle`` where the
    reservation reference is claimed exactly once, so the participant is
    marked paid and the referrer credited a single time.
    """

    def __init__(self, repository: GameRepository, provider: PaymentProvider,
                 settlement: Optional[SettlementService] = None, currency: str = "usd"):
        self.repository = repository
        self.provider = provider
        self.settlement = settlement or SettlementService(repository)
        self.currency = currency

    def create_payment_reservation(self, game_id: int, user_id: int) -> payment_schemas.PaymentIntentRead:
        game = self.repository.get_game(game_id)
        if game is None:
            raise NotFoundError("Game not found")
        participant = self.repository.get_participant(game_id, user_id)
        if participant is None:
            raise NotJoinedError("Join the game before paying the entry fee")
        if participant.has_paid:
            raise AlreadyPaidError("Entry fee already paid")

        amount = ledger.to_money(game.entry_fee)
        reservation = self.provider.open_reservation(
            amount,
            self.currency,
            metadata={"game_id": str(game_id), "user_id": str(user_id), "participant_id": str(participant.id)},
        )
        self.repository.create_reservation(
            reservation.reference, game_id, user_id, participant.id, amount, self.currency
        )
        logger.info("Opened reservation %s of %s for user %s in game %s", reservation.reference, amount, user_id, game_id)
        return payment_schemas.PaymentIntentRead(
            reference=reservation.reference,
            client_secret=reservation.client_secret,
            amount=amount,
            currency=self.currency,
        )

    def confirm_payment(self, reference: str, game_id: int, user_id: int) -> GameParticipant:
        reservation = self.repository.get_reservation(reference)
        if reservation is None or reservation.game_id != game_id or reservation.user_id != user_id:
            raise NotFoundError("Payment reservation not found")
        participant = self.repository.get_participant(game_id, user_id)
        if participant is None:
            raise NotJoinedError("Not a participant of this game")
        if participant.has_paid:
            if reservation.status != ReservationStatus.SUCCEEDED.value:
                logger.warning("Participant %s already paid; reservation %s is a second charge attempt",
                               participant.id, reference)
            else:
                logger.debug("Reservation %s confirmed again; participant %s already paid", reference, participant.id)
            return participant

        status = self.provider.get_reservation_status(reference)
        if status != ReservationStatus.SUCCEEDED:
            if status == ReservationStatus.FAILED:
                self.repository.mark_reservation_failed(reference)
            raise PaymentNotCompletedError(f"Payment {reference} has not completed")
        return self._settle(reservation)

    def handle_notification(self, payload: bytes, signature: str) -> Optional[GameParticipant]:
        notification = self.provider.parse_notification(payload, signature)
        if notification is None:
            return None
        return self.apply_notification(notification)

    def apply_notification(self, notification: PaymentNotification) -> Optional[GameParticipant]:
        reservation = self.repository.get_reservation(notification.reference)
        if reservation is None:
            logger.warning("Discarding payment notification for unknown reservation %s", notification.reference)
            return None
        if notification.status == ReservationStatus.FAILED:
            self.repository.mark_reservation_failed(notification.reference)
            logger.info("Reservation %s failed", notification.reference)
            return None
        if notification.status == ReservationStatus.SUCCEEDED:
            return self._settle(reservation)
        return None

    def _settle(self, reservation: PaymentReservation) -> GameParticipant:
        with self.repository.atomic():
            if not self.repository.claim_reservation(reservation.reference):
                logger.debug("Reservation %s already settled", reservation.reference)
                return self.repository.get_participant(reservation.game_id, reservation.user_id)

            participant = self.repository.get_participant(reservation.game_id, reservation.user_id)
            if participant is None:
                raise NotJoinedError("Not a participant of this game")
            was_paid = participant.has_paid
            participant = self.repository.set_participant_paid(participant.id, True)
            if was_paid:
                # Two reservations for one entry fee both succeeded; the extra charge needs a refund.
                logger.warning("Reservation %s succeeded but participant %s had already paid",
                               reservation.reference, participant.id)
            else:
                game = self.repository.get_game(reservation.game_id)
                self.settlement.credit_referral(game, participant)

        logger.info("Payment %s confirmed for user %s in game %s",
                    reservation.reference, reservation.user_id, reservation.game_id)
        return participant
