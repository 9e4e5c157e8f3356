import itertools
import threading
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from gameon.core.errors import (
    AlreadyJoinedError,
    GameFullError,
    GameNotJoinableError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from gameon.models import (
    Earning,
    EarningType,
    Game,
    GameParticipant,
    GameStatus,
    GameType,
    PaymentReservation,
    Referral,
    ReservationStatus,
    TournamentStructure,
    User,
)
from gameon.repositories.base import GameRepository
from gameon.services import ledger


class InMemoryGameRepository(GameRepository):
    """
    Arena-style repository: one ``id -> record`` dict per entity and a
    counter per table. Records are transient model instances.

    Meant for tests. A single re-entrant lock serializes every write and every
    ``atomic()`` block; there is no rollback, so every method checks its
    preconditions before mutating anything.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self.users: Dict[int, User] = {}
        self.game_types: Dict[int, GameType] = {}
        self.structures: Dict[int, TournamentStructure] = {}
        self.games: Dict[int, Game] = {}
        self.participants: Dict[int, GameParticipant] = {}
        self.referrals: Dict[int, Referral] = {}
        self.earnings: Dict[int, Earning] = {}
        self.reservations: Dict[int, PaymentReservation] = {}
        self._ids = {name: itertools.count(1) for name in (
            "users", "game_types", "structures", "games", "participants", "referrals", "earnings", "reservations"
        )}

    def _next_id(self, table: str) -> int:
        return next(self._ids[table])

    @contextmanager
    def atomic(self):
        with self._lock:
            yield self

    # --- Users ---

    def get_user(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return next((u for u in list(self.users.values()) if u.username == username), None)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return next((u for u in list(self.users.values()) if u.email == email), None)

    def create_user(self, username: str, password_hash: str, email: str, full_name: str,
                    avatar_url: Optional[str] = None) -> User:
        with self._lock:
            if self.get_user_by_username(username) or self.get_user_by_email(email):
                raise ValidationError("Username or email already exists")
            user = User(
                id=self._next_id("users"),
                username=username,
                password=password_hash,
                email=email,
                full_name=full_name,
                avatar_url=avatar_url,
                created_at=datetime.utcnow(),
            )
            self.users[user.id] = user
        return user

    # --- Reference data ---

    def list_game_types(self) -> List[GameType]:
        return list(self.game_types.values())

    def get_game_type(self, game_type_id: int) -> Optional[GameType]:
        return self.game_types.get(game_type_id)

    def create_game_type(self, name: str, icon_class: Optional[str] = None) -> GameType:
        with self._lock:
            game_type = GameType(id=self._next_id("game_types"), name=name, icon_class=icon_class)
            self.game_types[game_type.id] = game_type
        return game_type

    def list_tournament_structures(self) -> List[TournamentStructure]:
        return list(self.structures.values())

    def get_tournament_structure(self, structure_id: int) -> Optional[TournamentStructure]:
        return self.structures.get(structure_id)

    def create_tournament_structure(self, name: str, description: Optional[str] = None) -> TournamentStructure:
        with self._lock:
            structure = TournamentStructure(id=self._next_id("structures"), name=name, description=description)
            self.structures[structure.id] = structure
        return structure

    # --- Games ---

    def _insert_game(self, **fields) -> Game:
        with self._lock:
            game = Game(id=self._next_id("games"), **fields)
            self.games[game.id] = game
        return game

    def get_game(self, game_id: int) -> Optional[Game]:
        return self.games.get(game_id)

    def list_games(self, status: Optional[GameStatus] = None) -> List[Game]:
        games = list(self.games.values())
        if status is not None:
            games = [g for g in games if g.status == GameStatus(status).value]
        return games

    def list_games_for_participant(self, user_id: int) -> List[Game]:
        game_ids = {p.game_id for p in list(self.participants.values()) if p.user_id == user_id}
        return [g for g in list(self.games.values()) if g.id in game_ids]

    def list_games_created(self, game_master_id: int) -> List[Game]:
        return [g for g in list(self.games.values()) if g.game_master_id == game_master_id]

    def update_game_status(self, game_id: int, status: GameStatus,
                           expected_status: Optional[GameStatus] = None) -> Optional[Game]:
        with self._lock:
            game = self.games.get(game_id)
            if game is None:
                return None
            if expected_status is not None and game.status != GameStatus(expected_status).value:
                raise InvalidStatusTransitionError(
                    f"Game is {game.status}, not {GameStatus(expected_status).value}"
                )
            game.status = GameStatus(status).value
        return game

    # --- Participants ---

    def get_participant(self, game_id: int, user_id: int) -> Optional[GameParticipant]:
        return next(
            (p for p in list(self.participants.values()) if p.game_id == game_id and p.user_id == user_id),
            None,
        )

    def list_participants(self, game_id: int) -> List[GameParticipant]:
        return [p for p in list(self.participants.values()) if p.game_id == game_id]

    def add_participant(self, game_id: int, user_id: int, referred_by: Optional[int] = None) -> GameParticipant:
        with self._lock:
            game = self.games.get(game_id)
            if game is None:
                raise NotFoundError("Game not found")
            if game.status != GameStatus.SCHEDULED.value:
                raise GameNotJoinableError(f"Game is {game.status} and cannot be joined")
            if game.current_players >= game.max_players:
                raise GameFullError("Game is full")
            if self.get_participant(game_id, user_id) is not None:
                raise AlreadyJoinedError("Already joined this game")

            participant = GameParticipant(
                id=self._next_id("participants"),
                game_id=game_id,
                user_id=user_id,
                referred_by=referred_by,
                has_paid=False,
                joined_at=datetime.utcnow(),
            )
            self.participants[participant.id] = participant
            game.current_players += 1
        return participant

    def set_participant_paid(self, participant_id: int, paid: bool) -> Optional[GameParticipant]:
        with self._lock:
            participant = self.participants.get(participant_id)
            if participant is None:
                return None
            participant.has_paid = paid
        return participant

    # --- Referrals ---

    def add_referral(self, referrer_id: int, referred_user_id: int, game_id: Optional[int] = None) -> Referral:
        with self._lock:
            referral = Referral(
                id=self._next_id("referrals"),
                referrer_id=referrer_id,
                referred_user_id=referred_user_id,
                game_id=game_id,
                earnings=Decimal("0.00"),
                created_at=datetime.utcnow(),
            )
            self.referrals[referral.id] = referral
        return referral

    def find_referral(self, referrer_id: int, referred_user_id: int, game_id: Optional[int]) -> Optional[Referral]:
        return next(
            (r for r in list(self.referrals.values())
             if r.referrer_id == referrer_id and r.referred_user_id == referred_user_id and r.game_id == game_id),
            None,
        )

    def list_referrals(self, referrer_id: int) -> List[Referral]:
        return [r for r in list(self.referrals.values()) if r.referrer_id == referrer_id]

    def add_referral_earnings(self, referral_id: int, amount: Decimal) -> Optional[Referral]:
        with self._lock:
            referral = self.referrals.get(referral_id)
            if referral is None:
                return None
            referral.earnings = ledger.to_money(referral.earnings + amount)
        return referral

    # --- Earnings ---

    def add_earning(self, user_id: int, game_id: Optional[int], amount: Decimal, type: EarningType) -> Earning:
        with self._lock:
            earning = Earning(
                id=self._next_id("earnings"),
                user_id=user_id,
                game_id=game_id,
                amount=ledger.to_money(amount),
                type=EarningType(type).value,
                created_at=datetime.utcnow(),
            )
            self.earnings[earning.id] = earning
        return earning

    def list_earnings(self, user_id: int) -> List[Earning]:
        return [e for e in list(self.earnings.values()) if e.user_id == user_id]

    def sum_earnings(self, user_id: int) -> Decimal:
        return ledger.to_money(sum((e.amount for e in self.list_earnings(user_id)), Decimal("0")))

    # --- Payment reservations ---

    def create_reservation(self, reference: str, game_id: int, user_id: int, participant_id: int,
                           amount: Decimal, currency: str) -> PaymentReservation:
        with self._lock:
            if self.get_reservation(reference) is not None:
                raise ValidationError(f"Reservation {reference} already recorded")
            reservation = PaymentReservation(
                id=self._next_id("reservations"),
                reference=reference,
                game_id=game_id,
                user_id=user_id,
                participant_id=participant_id,
                amount=ledger.to_money(amount),
                currency=currency,
                status=ReservationStatus.PENDING.value,
                created_at=datetime.utcnow(),
            )
            self.reservations[reservation.id] = reservation
        return reservation

    def get_reservation(self, reference: str) -> Optional[PaymentReservation]:
        return next((r for r in list(self.reservations.values()) if r.reference == reference), None)

    def claim_reservation(self, reference: str) -> bool:
        with self._lock:
            reservation = self.get_reservation(reference)
            if reservation is None or reservation.status == ReservationStatus.SUCCEEDED.value:
                return False
            reservation.status = ReservationStatus.SUCCEEDED.value
            reservation.confirmed_at = datetime.utcnow()
        return True

    def mark_reservation_failed(self, reference: str) -> bool:
        with self._lock:
            reservation = self.get_reservation(reference)
            if reservation is None or reservation.status != ReservationStatus.PENDING.value:
                return False
            reservation.status = ReservationStatus.FAILED.value
        return True
