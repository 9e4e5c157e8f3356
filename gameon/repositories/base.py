"""
Persistence contract used by the services.

The services never see SQL; they talk to a GameRepository. Two
implementations exist: SqlGameRepository for the real database and
InMemoryGameRepository, an id -> record arena used as a test double.

Write methods are atomic on their own. Several calls can be grouped into
one unit of work with ``with repository.atomic():``.
"""
import abc
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from gameon.core.errors import ValidationError
from gameon.models import (
    Earning,
    EarningType,
    Game,
    GameParticipant,
    GameStatus,
    GameType,
    PaymentReservation,
    Referral,
    TournamentStructure,
    User,
)
from gameon.services import ledger


class GameRepository(abc.ABC):

    @abc.abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Groups the enclosed calls into one all-or-nothing unit."""

    # --- Users ---

    @abc.abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abc.abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abc.abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]: ...

    @abc.abstractmethod
    def create_user(self, username: str, password_hash: str, email: str, full_name: str,
                    avatar_url: Optional[str] = None) -> User: ...

    # --- Reference data ---

    @abc.abstractmethod
    def list_game_types(self) -> List[GameType]: ...

    @abc.abstractmethod
    def get_game_type(self, game_type_id: int) -> Optional[GameType]: ...

    @abc.abstractmethod
    def create_game_type(self, name: str, icon_class: Optional[str] = None) -> GameType: ...

    @abc.abstractmethod
    def list_tournament_structures(self) -> List[TournamentStructure]: ...

    @abc.abstractmethod
    def get_tournament_structure(self, structure_id: int) -> Optional[TournamentStructure]: ...

    @abc.abstractmethod
    def create_tournament_structure(self, name: str, description: Optional[str] = None) -> TournamentStructure: ...

    # --- Games ---

    def create_game(self, *, game_master_id: int, name: str, game_type_id: int, structure_id: int,
                    location: str, starts_at: datetime, max_players: int, entry_fee,
                    payout_structure: str, is_private: bool = False,
                    status: GameStatus = GameStatus.SCHEDULED) -> Game:
        """
        Validates and stores a new game with ``current_players`` at 0 and the
        prize pool computed from the entry fee and capacity.

        Raises ValidationError for out-of-bounds economics, an empty name or
        location, or a game type / structure that does not exist.
        """
        fee = ledger.validate_game_economics(entry_fee, max_players)
        if not name or not name.strip():
            raise ValidationError("Game name is required")
        if not location or not location.strip():
            raise ValidationError("Location is required")
        if self.get_game_type(game_type_id) is None:
            raise ValidationError(f"Unknown game type {game_type_id}")
        if self.get_tournament_structure(structure_id) is None:
            raise ValidationError(f"Unknown tournament structure {structure_id}")
        return self._insert_game(
            game_master_id=game_master_id,
            name=name.strip(),
            game_type_id=game_type_id,
            structure_id=structure_id,
            location=location.strip(),
            starts_at=starts_at,
            max_players=max_players,
            current_players=0,
            entry_fee=fee,
            prize_pool=ledger.compute_prize_pool(fee, max_players),
            is_private=is_private,
            status=GameStatus(status).value,
            payout_structure=payout_structure,
            created_at=datetime.utcnow(),
        )

    @abc.abstractmethod
    def _insert_game(self, **fields) -> Game: ...

    @abc.abstractmethod
    def get_game(self, game_id: int) -> Optional[Game]: ...

    @abc.abstractmethod
    def list_games(self, status: Optional[GameStatus] = None) -> List[Game]: ...

    @abc.abstractmethod
    def list_games_for_participant(self, user_id: int) -> List[Game]: ...

    @abc.abstractmethod
    def list_games_created(self, game_master_id: int) -> List[Game]: ...

    @abc.abstractmethod
    def update_game_status(self, game_id: int, status: GameStatus,
                           expected_status: Optional[GameStatus] = None) -> Optional[Game]:
        """
        Writes ``status``. With ``expected_status`` the write is a compare-and-set:
        it only happens while the game is still in that status, and raises
        InvalidStatusTransitionError otherwise. Returns None for a missing game.

        Which transitions are legal is decided by GameService.
        """

    # --- Participants ---

    @abc.abstractmethod
    def get_participant(self, game_id: int, user_id: int) -> Optional[GameParticipant]: ...

    @abc.abstractmethod
    def list_participants(self, game_id: int) -> List[GameParticipant]: ...

    @abc.abstractmethod
    def add_participant(self, game_id: int, user_id: int, referred_by: Optional[int] = None) -> GameParticipant:
        """
        Inserts the participant and increments the game's ``current_players``
        as one atomic step.

        Raises NotFoundError, GameNotJoinableError (status is not scheduled),
        GameFullError or AlreadyJoinedError, in that order of precedence.
        Nothing is written when any of them is raised.
        """

    @abc.abstractmethod
    def set_participant_paid(self, participant_id: int, paid: bool) -> Optional[GameParticipant]: ...

    # --- Referrals ---

    @abc.abstractmethod
    def add_referral(self, referrer_id: int, referred_user_id: int, game_id: Optional[int] = None) -> Referral: ...

    @abc.abstractmethod
    def find_referral(self, referrer_id: int, referred_user_id: int, game_id: Optional[int]) -> Optional[Referral]: ...

    @abc.abstractmethod
    def list_referrals(self, referrer_id: int) -> List[Referral]: ...

    @abc.abstractmethod
    def add_referral_earnings(self, referral_id: int, amount: Decimal) -> Optional[Referral]:
        """Adds ``amount`` to the referral's cumulative earnings."""

    # --- Earnings ---

    @abc.abstractmethod
    def add_earning(self, user_id: int, game_id: Optional[int], amount: Decimal, type: EarningType) -> Earning: ...

    @abc.abstractmethod
    def list_earnings(self, user_id: int) -> List[Earning]: ...

    @abc.abstractmethod
    def sum_earnings(self, user_id: int) -> Decimal: ...

    # --- Payment reservations ---

    @abc.abstractmethod
    def create_reservation(self, reference: str, game_id: int, user_id: int, participant_id: int,
                           amount: Decimal, currency: str) -> PaymentReservation: ...

    @abc.abstractmethod
    def get_reservation(self, reference: str) -> Optional[PaymentReservation]: ...

    @abc.abstractmethod
    def claim_reservation(self, reference: str) -> bool:
        """
        Moves a reservation to succeeded. Returns True only for the single
        call that performed the move; replays get False.
        """

    @abc.abstractmethod
    def mark_reservation_failed(self, reference: str) -> bool:
        """Moves a pending reservation to failed. Succeeded ones are left alone."""
