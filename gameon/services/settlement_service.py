import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from gameon.core.errors import ValidationError
from gameon.models import Earning, EarningType, Game, GameParticipant, Referral
from gameon.repositories.base import GameRepository
from gameon.services import ledger

logger = logging.getLogger(__name__)


class SettlementService:
    """Turns the ledger split into persisted Earning rows."""

    def __init__(self, repository: GameRepository):
        self.repository = repository

    def credit_referral(self, game: Game, participant: GameParticipant) -> Optional[Earning]:
        """
        Pays the referrer of a participant whose entry fee was just confirmed:
        10% of that participant's entry fee, recorded as a ``referrer``
        earning and added to the matching Referral's running total.

        Callers must invoke this once per participant; PaymentService
        guarantees that by claiming the reservation first.
        """
        if participant.referred_by is None:
            return None
        amount = ledger.compute_referral_share(game.entry_fee)
        with self.repository.atomic():
            earning = self.repository.add_earning(participant.referred_by, game.id, amount, EarningType.REFERRER)
            referral = self.repository.find_referral(participant.referred_by, participant.user_id, game.id)
            if referral is not None:
                self.repository.add_referral_earnings(referral.id, amount)
        logger.info("Credited referrer %s with %s for game %s", participant.referred_by, amount, game.id)
        return earning

    def validate_placements(self, game: Game, placements: Dict[str, int]) -> None:
        labels = {position.label for position in ledger.parse_payout_structure(game.payout_structure)}
        participant_ids = {p.user_id for p in self.repository.list_participants(game.id)}
        for label, user_id in placements.items():
            if label not in labels:
                raise ValidationError(f"Payout structure has no position '{label}'")
            if user_id not in participant_ids:
                raise ValidationError(f"User {user_id} is not a participant of this game")

    def settle_completed_game(self, game: Game, placements: Dict[str, int]) -> List[Earning]:
        """
        Posts the game master's fee and one winner earning per placement.
        Placements must already have passed validate_placements.
        """
        distribution = ledger.compute_distribution(game.prize_pool)
        shares = dict(ledger.split_winners_prize(
            distribution.winners_prize, ledger.parse_payout_structure(game.payout_structure)
        ))
        with self.repository.atomic():
            earnings = [self.repository.add_earning(
                game.game_master_id, game.id, distribution.game_master_fee, EarningType.GAME_MASTER
            )]
            for label, user_id in placements.items():
                earnings.append(self.repository.add_earning(user_id, game.id, shares[label], EarningType.WINNER))
        logger.info("Settled game %s: %d earnings posted", game.id, len(earnings))
        return earnings

    def earnings_summary(self, user_id: int) -> Tuple[List[Earning], Decimal]:
        return self.repository.list_earnings(user_id), self.repository.sum_earnings(user_id)

    def referral_summary(self, user_id: int) -> Tuple[List[Referral], int, Decimal]:
        referrals = self.repository.list_referrals(user_id)
        total_earnings = ledger.to_money(sum((r.earnings for r in referrals), Decimal("0")))
        return referrals, len(referrals), total_earnings
