from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

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


class SqlGameRepository(GameRepository):
    """GameRepository backed by a SQLAlchemy session (one per request)."""

    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    @contextmanager
    def atomic(self):
        if self._depth:
            # Nested: the outermost block commits or rolls back.
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        finally:
            self._depth = 0

    # --- Users ---

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def create_user(self, username: str, password_hash: str, email: str, full_name: str,
                    avatar_url: Optional[str] = None) -> User:
        user = User(
            username=username,
            password=password_hash,
            email=email,
            full_name=full_name,
            avatar_url=avatar_url,
            created_at=datetime.utcnow(),
        )
        with self.atomic():
            self.db.add(user)
            try:
                self.db.flush()
            except IntegrityError:
                raise ValidationError("Username or email already exists")
        return user

    # --- Reference data ---

    def list_game_types(self) -> List[GameType]:
        return self.db.query(GameType).order_by(GameType.id).all()

    def get_game_type(self, game_type_id: int) -> Optional[GameType]:
        return self.db.query(GameType).filter(GameType.id == game_type_id).first()

    def create_game_type(self, name: str, icon_class: Optional[str] = None) -> GameType:
        game_type = GameType(name=name, icon_class=icon_class)
        with self.atomic():
            self.db.add(game_type)
            self.db.flush()
        return game_type

    def list_tournament_structures(self) -> List[TournamentStructure]:
        return self.db.query(TournamentStructure).order_by(TournamentStructure.id).all()

    def get_tournament_structure(self, structure_id: int) -> Optional[TournamentStructure]:
        return self.db.query(TournamentStructure).filter(TournamentStructure.id == structure_id).first()

    def create_tournament_structure(self, name: str, description: Optional[str] = None) -> TournamentStructure:
        structure = TournamentStructure(name=name, description=description)
        with self.atomic():
            self.db.add(structure)
            self.db.flush()
        return structure

    # --- Games ---

    def _insert_game(self, **fields) -> Game:
        game = Game(**fields)
        with self.atomic():
            self.db.add(game)
            self.db.flush()
        return game

    def get_game(self, game_id: int) -> Optional[Game]:
        # populate_existing: current_players may have been bumped by a bulk UPDATE.
        return self.db.query(Game).populate_existing().filter(Game.id == game_id).first()

    def list_games(self, status: Optional[GameStatus] = None) -> List[Game]:
        query = self.db.query(Game).populate_existing()
        if status is not None:
            query = query.filter(Game.status == GameStatus(status).value)
        return query.all()

    def list_games_for_participant(self, user_id: int) -> List[Game]:
        return self.db.query(Game).populate_existing().join(
            GameParticipant, GameParticipant.game_id == Game.id
        ).filter(GameParticipant.user_id == user_id).all()

    def list_games_created(self, game_master_id: int) -> List[Game]:
        return self.db.query(Game).populate_existing().filter(Game.game_master_id == game_master_id).all()

    def update_game_status(self, game_id: int, status: GameStatus,
                           expected_status: Optional[GameStatus] = None) -> Optional[Game]:
        with self.atomic():
            query = self.db.query(Game).filter(Game.id == game_id)
            if expected_status is not None:
                query = query.filter(Game.status == GameStatus(expected_status).value)
            updated = query.update({Game.status: GameStatus(status).value}, synchronize_session=False)

            game = self.get_game(game_id)
            if not updated and game is not None:
                # Another request moved the game first.
                raise InvalidStatusTransitionError(
                    f"Game is {game.status}, not {GameStatus(expected_status).value}"
                )
        return game

    # --- Participants ---

    def get_participant(self, game_id: int, user_id: int) -> Optional[GameParticipant]:
        return self.db.query(GameParticipant).populate_existing().filter(
            GameParticipant.game_id == game_id,
            GameParticipant.user_id == user_id,
        ).first()

    def list_participants(self, game_id: int) -> List[GameParticipant]:
        return self.db.query(GameParticipant).populate_existing().filter(
            GameParticipant.game_id == game_id
        ).order_by(GameParticipant.id).all()

    def add_participant(self, game_id: int, user_id: int, referred_by: Optional[int] = None) -> GameParticipant:
        with self.atomic():
            # Conditional increment: the database evaluates capacity and status
            # under its own row lock, so concurrent joins cannot overshoot.
            claimed = self.db.query(Game).filter(
                Game.id == game_id,
                Game.status == GameStatus.SCHEDULED.value,
                Game.current_players < Game.max_players,
            ).update({Game.current_players: Game.current_players + 1}, synchronize_session=False)

            if not claimed:
                game = self.get_game(game_id)
                if game is None:
                    raise NotFoundError("Game not found")
                if game.status != GameStatus.SCHEDULED.value:
                    raise GameNotJoinableError(f"Game is {game.status} and cannot be joined")
                raise GameFullError("Game is full")

            if self.get_participant(game_id, user_id) is not None:
                raise AlreadyJoinedError("Already joined this game")

            participant = GameParticipant(
                game_id=game_id,
                user_id=user_id,
                referred_by=referred_by,
                has_paid=False,
                joined_at=datetime.utcnow(),
            )
            self.db.add(participant)
            try:
                self.db.flush()
            except IntegrityError:
                # Lost a race against a concurrent join by the same user.
                raise AlreadyJoinedError("Already joined this game")
        return participant

    def set_participant_paid(self, participant_id: int, paid: bool) -> Optional[GameParticipant]:
        with self.atomic():
            participant = self.db.query(GameParticipant).populate_existing().filter(
                GameParticipant.id == participant_id
            ).first()
            if participant is None:
                return None
            participant.has_paid = paid
            self.db.flush()
        return participant

    # --- Referrals ---

    def add_referral(self, referrer_id: int, referred_user_id: int, game_id: Optional[int] = None) -> Referral:
        referral = Referral(
            referrer_id=referrer_id,
            referred_user_id=referred_user_id,
            game_id=game_id,
            earnings=Decimal("0.00"),
            created_at=datetime.utcnow(),
        )
        with self.atomic():
            self.db.add(referral)
            self.db.flush()
        return referral

    def find_referral(self, referrer_id: int, referred_user_id: int, game_id: Optional[int]) -> Optional[Referral]:
        return self.db.query(Referral).populate_existing().filter(
            Referral.referrer_id == referrer_id,
            Referral.referred_user_id == referred_user_id,
            Referral.game_id == game_id,
        ).first()

    def list_referrals(self, referrer_id: int) -> List[Referral]:
        return self.db.query(Referral).populate_existing().filter(
            Referral.referrer_id == referrer_id
        ).order_by(Referral.id).all()

    def add_referral_earnings(self, referral_id: int, amount: Decimal) -> Optional[Referral]:
        with self.atomic():
            updated = self.db.query(Referral).filter(Referral.id == referral_id).update(
                {Referral.earnings: Referral.earnings + amount}, synchronize_session=False
            )
            if not updated:
                return None
            return self.db.query(Referral).populate_existing().filter(Referral.id == referral_id).first()

    # --- Earnings ---

    def add_earning(self, user_id: int, game_id: Optional[int], amount: Decimal, type: EarningType) -> Earning:
        earning = Earning(
            user_id=user_id,
            game_id=game_id,
            amount=ledger.to_money(amount),
            type=EarningType(type).value,
            created_at=datetime.utcnow(),
        )
        with self.atomic():
            self.db.add(earning)
            self.db.flush()
        return earning

    def list_earnings(self, user_id: int) -> List[Earning]:
        return self.db.query(Earning).filter(Earning.user_id == user_id).order_by(Earning.id).all()

    def sum_earnings(self, user_id: int) -> Decimal:
        total = self.db.query(func.coalesce(func.sum(Earning.amount), 0)).filter(
            Earning.user_id == user_id
        ).scalar()
        return ledger.to_money(total)

    # --- Payment reservations ---

    def create_reservation(self, reference: str, game_id: int, user_id: int, participant_id: int,
                           amount: Decimal, currency: str) -> PaymentReservation:
        reservation = PaymentReservation(
            reference=reference,
            game_id=game_id,
            user_id=user_id,
            participant_id=participant_id,
            amount=ledger.to_money(amount),
            currency=currency,
            status=ReservationStatus.PENDING.value,
            created_at=datetime.utcnow(),
        )
        with self.atomic():
            self.db.add(reservation)
            self.db.flush()
        return reservation

    def get_reservation(self, reference: str) -> Optional[PaymentReservation]:
        return self.db.query(PaymentReservation).populate_existing().filter(
            PaymentReservation.reference == reference
        ).first()

    def claim_reservation(self, reference: str) -> bool:
        with self.atomic():
            claimed = self.db.query(PaymentReservation).filter(
                PaymentReservation.reference == reference,
                PaymentReservation.status != ReservationStatus.SUCCEEDED.value,
            ).update(
                {
                    PaymentReservation.status: ReservationStatus.SUCCEEDED.value,
                    PaymentReservation.confirmed_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        return bool(claimed)

    def mark_reservation_failed(self, reference: str) -> bool:
        with self.atomic():
            updated = self.db.query(PaymentReservation).filter(
                PaymentReservation.reference == reference,
                PaymentReservation.status == ReservationStatus.PENDING.value,
            ).update({PaymentReservation.status: ReservationStatus.FAILED.value}, synchronize_session=False)
        return bool(updated)
