import datetime
from enum import Enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Numeric
from gameon.core.database import Base

class EarningType(str, Enum):
    WINNER = "winner"
    GAME_MASTER = "game_master"
    REFERRER = "referrer"


class Earning(Base):
    """Append-only payout ledger row."""
    __tablename__ = "earnings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String, nullable=False) # one of EarningType
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)
