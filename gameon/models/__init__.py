from gameon.core.database import Base, engine

# Import all models here to ensure they are registered with Base
from .user import User
from .reference import GameType, TournamentStructure
from .game import Game, GameStatus
from .participant import GameParticipant
from .referral import Referral
from .earning import Earning, EarningType
from .payment import PaymentReservation, ReservationStatus

def create_tables(bind=engine):
    # Alembic would own this in a larger deployment; called from the app lifespan.
    Base.metadata.create_all(bind=bind)
