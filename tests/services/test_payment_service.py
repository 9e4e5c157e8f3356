import logging
from decimal import Decimal

import pytest

from gameon.core.errors import (
    AlreadyPaidError,
    NotFoundError,
    NotJoinedError,
    PaymentNotCompletedError,
    ValidationError,
)
from gameon.models import EarningType, ReservationStatus
from gameon.services.game_service import GameService
from gameon.services.payment_service import PaymentService


@pytest.fixture
def game_service(repository):
    return GameService(repository)


@pytest.fixture
def payment_service(repository, payment_provider):
    return PaymentService(repository, payment_provider, currency="usd")


@pytest.fixture
def referred_player(game_service, make_game, make_user):
    """A game with one unpaid participant who was referred by ``referrer``."""
    game = make_game(entry_fee=Decimal("25"))
    referrer = make_user("referrer")
    player = make_user()
    game_service.join_game(game.id, player.id, referred_by=referrer.id)
    return game, player, referrer


class TestCreateReservation:

    def test_reservation_is_for_the_entry_fee(self, payment_service, payment_provider, repository, referred_player):
        game, player, _ = referred_player

        intent = payment_service.create_payment_reservation(game.id, player.id)

        assert intent.amount == Decimal("25.00")
        assert intent.currency == "usd"
        assert intent.client_secret == f"{intent.reference}_secret"
        opened = payment_provider.opened[0]
        assert opened["amount"] == Decimal("25.00")
        assert opened["metadata"]["game_id"] == str(game.id)
        assert opened["metadata"]["user_id"] == str(player.id)
        reservation = repository.get_reservation(intent.reference)
        assert reservation.status == ReservationStatus.PENDING.value

    def test_missing_game(self, payment_service, make_user):
        with pytest.raises(NotFoundError):
            payment_service.create_payment_reservation(999, make_user().id)

    def test_not_a_participant(self, payment_service, payment_provider, make_game, make_user):
        game = make_game()
        with pytest.raises(NotJoinedError):
            payment_service.create_payment_reservation(game.id, make_user().id)
        assert payment_provider.opened == []

    def test_already_paid(self, payment_service, payment_provider, referred_player):
        game, player, _ = referred_player
        intent = payment_service.create_payment_reservation(game.id, player.id)
        payment_provider.succeed(intent.reference)
        payment_service.confirm_payment(intent.reference, game.id, player.id)

        with pytest.raises(AlreadyPaidError):
            payment_service.create_payment_reservation(game.id, player.id)


class TestConfirmPayment:

    def test_confirmation_marks_paid_and_credits_referrer(self, payment_service, payment_provider, repository,
                                                          referred_player):
        game, player, referrer = referred_player
        intent = payment_service.create_payment_reservation(game.id, player.id)
        payment_provider.succeed(intent.reference)

        participant = payment_service.confirm_payment(intent.reference, game.id, player.id)

        assert participant.has_paid is True
        referral = repository.find_referral(referrer.id, player.id, game.id)
        assert referral.earnings == Decimal("2.50")
        earnings = repository.list_earnings(referrer.id)
        assert [(e.type, e.amount, e.game_id) for e in earnings] == [
            (EarningType.REFERRER.value, Decimal("2.50"), game.id)
        ]
        assert repository.get_reservation(intent.reference).status == ReservationStatus.SUCCEEDED.value

    def test_double_confirmation_credits_once(self, payment_service, payment_provider, repository, referred_player):
        game, player, referrer = referred_player
        intent = payment_service.create_payment_reservation(game.id, player.id)
        payment_provider.succeed(intent.reference)

        payment_service.confirm_payment(intent.reference, game.id, player.id)
        participant = payment_service.confirm_payment(intent.reference, game.id, player.id)

        assert participant.has_paid is True
        assert len(repository.list_earnings(referrer.id)) == 1
        assert repository.find_referral(referrer.id, player.id, game.id).earnings == Decimal("2.50")

    def test_unreferred_player_credits_nobody(self, payment_service, payment_provider, game_service, repository,
                                              make_game, make_user):
        game = make_game()
        player = make_user()
        game_service.join_game(game.id, player.id)
        intent = payment_service.create_payment_reservation(game.id, player.id)
        payment_provider.succeed(intent.reference)

        payment_service.confirm_payment(intent.reference, game.id, player.id)

        assert repository.get_participant(game.id, player.id).has_paid is True
        assert repository.list_earnings(player.id) == []

    def test_pending_payment_is_not_completed(self, payment_service, repository, referred_player):
        game, player, referrer = referred_player
        intent = payment_service.create_payment_reservation(game.id, player.id)

        with pytest.raises(PaymentNotCompletedError):
            payment_service.confirm_payment(intent.reference, game.id, player.id)

        assert repository.get_participant(game.id, player.id).has_paid is False
        assert repository.get_reservation(intent.reference).status == ReservationStatus.PENDING.value
        assert repository.list_earnings(referrer.id) == []

    def test_failed_payment_marks_reservation_failed(self, payment_service, payment_provider, repository,
                                                     referred_player):
        game, player, _ = referred_player
        intent = payment_service.create_payment_reservation(game.id, player.id)
        payment_provider.fail(intent.reference)

        with pytest.raises(PaymentNotCompletedError):
            payment_service.confirm_payment(intent.reference, game.id, player.id)

        assert repository.get_reservation(intent.reference).status == ReservationStatus.FAILED.value
        assert repository.get_participant(game.id, player.id).has_paid is False

    def test_unknown_reference(self, payment_service, referred_player):
        game, player, _ = referred_player
        with pytest.raises(NotFoundError):
            payment_service.confirm_payment("pi_unknown", game.id, player.id)

    def test_reference_belongs_to_someone_else(self, payment_service, payment_provider, game_service,
                                               referred_player, make_user):
        game, player, _ = referred_player
        other = make_user()
        game_service.join_game(game.id, other.id)
        intent = payment_service.create_payment_reservation(game.id, player.id)
        payment_provider.succeed(intent.reference)

        with pytest.raises(NotFoundError):
            payment_service.confirm_payment(intent.reference, game.id, other.id)


class TestPaymentNotifications:

    def test_webhook_settles_payment(self, payment_service, payment_provider, repository, referred_player):
        game, player, referrer = referred_player
        intent = payment_service.create_payment_reservation(game.id, player.id)

        participant = payment_service.handle_notification(
            payment_provider.notification(intent.reference, "succeeded"), "valid"
        )

        assert participant.has_paid is True
        assert repository.sum_earnings(referrer.id) == Decimal("2.50")

    def test_webhook_and_client_confirmation_credit_once(self, payment_service, payment_provider, repository,
                                                         referred_player):
        game, player, referrer = referred_player
        intent = payment_service.create_payment_reservation(game.id, player.id)
        payment_provider.succeed(intent.reference)
        body = payment_provider.notification(intent.reference, "succeeded")

        payment_service.handle_notification(body, "valid")
        payment_service.confirm_payment(intent.reference, game.id, player.id)
        payment_service.handle_notification(body, "valid")

        assert len(repository.list_earnings(referrer.id)) == 1
        assert repository.find_referral(referrer.id, player.id, game.id).earnings == Decimal("2.50")

    def test_unknown_reservation_is_ignored(self, payment_service, payment_provider):
        result = payment_service.handle_notification(payment_provider.notification("pi_elsewhere", "succeeded"),
                                                     "valid")
        assert result is None

    def test_failed_notification(self, payment_service, payment_provider, repository, referred_player):
        game, player, _ = referred_player
        intent = payment_service.create_payment_reservation(game.id, player.id)

        result = payment_service.handle_notification(payment_provider.notification(intent.reference, "failed"),
                                                     "valid")

        assert result is None
        assert repository.get_reservation(intent.reference).status == ReservationStatus.FAILED.value
        assert repository.get_participant(game.id, player.id).has_paid is False

    def test_irrelevant_event_is_ignored(self, payment_service, payment_provider, repository, referred_player):
        game, player, _ = referred_player
        intent = payment_service.create_payment_reservation(game.id, player.id)

        result = payment_service.handle_notification(
            payment_provider.notification(intent.reference, "succeeded", event_type="customer.created"), "valid"
        )

        assert result is None
        assert repository.get_reservation(intent.reference).status == ReservationStatus.PENDING.value

    def test_bad_signature_rejected(self, payment_service, payment_provider):
        with pytest.raises(ValidationError):
            payment_service.handle_notification(payment_provider.notification("pi_1", "succeeded"), "forged")


class TestDuplicateCharges:

    def test_second_succeeded_reservation_is_flagged(self, payment_service, payment_provider, repository,
                                                     referred_player, caplog):
        game, player, referrer = referred_player
        # Two checkout tabs: both reservations are opened while the player is still unpaid.
        first = payment_service.create_payment_reservation(game.id, player.id)
        second = payment_service.create_payment_reservation(game.id, player.id)
        payment_provider.succeed(first.reference)
        payment_provider.succeed(second.reference)

        payment_service.confirm_payment(first.reference, game.id, player.id)
        with caplog.at_level(logging.WARNING, logger="gameon.services.payment_service"):
            participant = payment_service.handle_notification(
                payment_provider.notification(second.reference, "succeeded"), "valid"
            )

        assert participant.has_paid is True
        assert second.reference in caplog.text
        assert "already paid" in caplog.text
        assert len(repository.list_earnings(referrer.id)) == 1
        assert repository.find_referral(referrer.id, player.id, game.id).earnings == Decimal("2.50")

    def test_client_confirmation_of_second_reservation_is_flagged(self, payment_service, payment_provider,
                                                                  referred_player, caplog):
        game, player, _ = referred_player
        first = payment_service.create_payment_reservation(game.id, player.id)
        second = payment_service.create_payment_reservation(game.id, player.id)
        payment_provider.succeed(first.reference)
        payment_service.confirm_payment(first.reference, game.id, player.id)

        with caplog.at_level(logging.WARNING, logger="gameon.services.payment_service"):
            participant = payment_service.confirm_payment(second.reference, game.id, player.id)

        assert participant.has_paid is True
        assert "second charge attempt" in caplog.text
