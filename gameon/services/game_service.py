import logging
from typing import Dict, List, Optional

from gameon.core.errors import (
    InvalidStatusTransitionError,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
)
from gameon.models import Game, GameParticipant, GameStatus
from gameon.repositories.base import GameRepository
from gameon.schemas import game_schemas
from gameon.services import ledger
from gameon.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    GameStatus.SCHEDULED: {GameStatus.ACTIVE, GameStatus.CANCELLED, GameStatus.POSTPONED},
    GameStatus.ACTIVE: {GameStatus.COMPLETED, GameStatus.CANCELLED},
    GameStatus.POSTPONED: {GameStatus.SCHEDULED, GameStatus.CANCELLED},
    GameStatus.COMPLETED: set(),
    GameStatus.CANCELLED: set(),
}


def parse_status(value: str) -> GameStatus:
    try:
        return GameStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in GameStatus)
        raise ValidationError(f"Invalid status value: {value}. Must be one of: {allowed}")


class GameService:
    """
    Game lifecycle: creation, joining and status transitions.

    Every method receives the already-authenticated actor id; nothing here
    looks at credentials.
    """

    def __init__(self, repository: GameRepository, settlement: Optional[SettlementService] = None):
        self.repository = repository
        self.settlement = settlement or SettlementService(repository)

    def create_game(self, game_master_id: int, game_in: game_schemas.GameCreate) -> Game:
        ledger.validate_payout_structure(game_in.payout_structure)
        game = self.repository.create_game(
            game_master_id=game_master_id,
            name=game_in.name,
            game_type_id=game_in.game_type_id,
            structure_id=game_in.structure_id,
            location=game_in.location,
            starts_at=game_in.starts_at,
            max_players=game_in.max_players,
            entry_fee=game_in.entry_fee,
            payout_structure=game_in.payout_structure,
            is_private=game_in.is_private,
        )
        logger.info("Game %s created by user %s (prize pool %s)", game.id, game_master_id, game.prize_pool)
        return game

    def get_game(self, game_id: int) -> Game:
        game = self.repository.get_game(game_id)
        if game is None:
            raise NotFoundError("Game not found")
        return game

    def list_games(self, status: Optional[str] = None) -> List[Game]:
        return self.repository.list_games(parse_status(status) if status else None)

    def list_joined_games(self, user_id: int) -> List[Game]:
        return self.repository.list_games_for_participant(user_id)

    def list_created_games(self, user_id: int) -> List[Game]:
        return self.repository.list_games_created(user_id)

    def list_participants(self, game_id: int) -> List[GameParticipant]:
        self.get_game(game_id)
        return self.repository.list_participants(game_id)

    def get_distribution(self, game_id: int) -> game_schemas.DistributionRead:
        game = self.get_game(game_id)
        distribution = ledger.compute_distribution(game.prize_pool)
        positions = ledger.parse_payout_structure(game.payout_structure)
        shares = ledger.split_winners_prize(distribution.winners_prize, positions)
        return game_schemas.DistributionRead(
            prize_pool=ledger.to_money(game.prize_pool),
            **distribution._asdict(),
            payouts=[
                game_schemas.PayoutShareRead(label=position.label, percentage=position.percentage, amount=amount)
                for position, (_, amount) in zip(positions, shares)
            ],
        )

    def join_game(self, game_id: int, user_id: int, referred_by: Optional[int] = None) -> GameParticipant:
        if self.repository.get_game(game_id) is None:
            raise NotFoundError("Game not found")

        referrer = None
        if referred_by is not None and referred_by != user_id:
            referrer = self.repository.get_user(referred_by)
            if referrer is None:
                logger.warning("Ignoring unknown referrer %s for user %s joining game %s", referred_by, user_id, game_id)
        referrer_id = referrer.id if referrer is not None else None

        with self.repository.atomic():
            participant = self.repository.add_participant(game_id, user_id, referrer_id)
            if referrer_id is not None:
                self.repository.add_referral(referrer_id, user_id, game_id)

        logger.info("User %s joined game %s (referred by %s)", user_id, game_id, referrer_id)
        return participant

    def change_status(self, game_id: int, actor_id: int, new_status: str,
                      placements: Optional[Dict[str, int]] = None) -> Game:
        game = self.get_game(game_id)
        if game.game_master_id != actor_id:
            raise NotAuthorizedError("Not authorized to update this game")

        target = parse_status(new_status)
        current = GameStatus(game.status)
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransitionError(f"Cannot move a game from {current.value} to {target.value}")

        if placements and target != GameStatus.COMPLETED:
            raise ValidationError("Placements can only be recorded when completing a game")
        if target == GameStatus.COMPLETED:
            self.settlement.validate_placements(game, placements or {})

        # Compare-and-set on the status read above: of two racing requests only
        # one moves the game, so settlement runs at most once.
        with self.repository.atomic():
            updated = self.repository.update_game_status(game_id, target, expected_status=current)
            if target == GameStatus.COMPLETED:
                self.settlement.settle_completed_game(updated, placements or {})

        logger.info("Game %s moved from %s to %s by user %s", game_id, current.value, target.value, actor_id)
        return updated
