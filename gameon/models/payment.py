import datetime
from enum import Enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Numeric
from gameon.core.database import Base

class ReservationStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PaymentReservation(Base):
    __tablename__ = "payment_reservations"

    id = Column(Integer, primary_key=True, index=True)
    reference = Column(String, unique=True, index=True, nullable=False) # provider id, idempotency key
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    participant_id = Column(Integer, ForeignKey("game_participants.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String, nullable=False)
    status = Column(String, default=ReservationStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)
    confirmed_at = Column(DateTime, nullable=True)
