import itertools
import json
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gameon.core.errors import ValidationError
from gameon.models import ReservationStatus, create_tables
from gameon.payments.provider import PaymentNotification, PaymentProvider, Reservation
from gameon.repositories.memory import InMemoryGameRepository
from gameon.repositories.sql import SqlGameRepository
from gameon.services.reference_service import seed_reference_data


class FakePaymentProvider(PaymentProvider):
    """
    Provider double. Reservations start pending; tests flip them with
    ``succeed``/``fail``. Notifications are JSON bodies signed with the
    literal signature ``"valid"``.
    """

    def __init__(self):
        self.statuses = {}
        self.opened = []
        self._counter = itertools.count(1)

    def open_reservation(self, amount, currency, metadata):
        reference = f"pi_test_{next(self._counter)}"
        self.statuses[reference] = ReservationStatus.PENDING
        self.opened.append({"reference": reference, "amount": amount, "currency": currency, "metadata": metadata})
        return Reservation(reference, f"{reference}_secret")

    def get_reservation_status(self, reference):
        return self.statuses.get(reference, ReservationStatus.FAILED)

    def succeed(self, reference):
        self.statuses[reference] = ReservationStatus.SUCCEEDED

    def fail(self, reference):
        self.statuses[reference] = ReservationStatus.FAILED

    def parse_notification(self, payload, signature):
        if signature != "valid":
            raise ValidationError("Invalid webhook signature")
        event = json.loads(payload)
        if event.get("type") != "payment_status":
            return None
        return PaymentNotification(event["reference"], ReservationStatus(event["status"]))

    @staticmethod
    def notification(reference, status, event_type="payment_status"):
        return json.dumps({"type": event_type, "reference": reference, "status": status}).encode()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


# Service tests run against both repositories; they must behave the same.
@pytest.fixture(params=["sql", "memory"])
def repository(request, db_session):
    if request.param == "sql":
        repo = SqlGameRepository(db_session)
    else:
        repo = InMemoryGameRepository()
    seed_reference_data(repo)
    return repo


@pytest.fixture
def payment_provider():
    return FakePaymentProvider()


@pytest.fixture
def make_user(repository):
    counter = itertools.count(1)

    def _make_user(username=None):
        n = next(counter)
        username = username or f"player{n}"
        return repository.create_user(
            username=username,
            password_hash="not-a-real-hash",
            email=f"{username}@gameon.app",
            full_name=f"Player {n}",
        )
    return _make_user


@pytest.fixture
def game_master(make_user):
    return make_user("gamemaster")


@pytest.fixture
def make_game(repository, game_master):
    def _make_game(entry_fee=Decimal("25"), max_players=8, payout_structure="1st:70,2nd:30", **overrides):
        fields = dict(
            game_master_id=game_master.id,
            name="Sunday Hoops",
            game_type_id=repository.list_game_types()[0].id,
            structure_id=repository.list_tournament_structures()[0].id,
            location="Riverside Court",
            starts_at=datetime.utcnow() + timedelta(days=3),
            max_players=max_players,
            entry_fee=entry_fee,
            payout_structure=payout_structure,
        )
        fields.update(overrides)
        return repository.create_game(**fields)
    return _make_game
