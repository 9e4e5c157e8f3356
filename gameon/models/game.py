import datetime
from enum import Enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Numeric, CheckConstraint
from gameon.core.database import Base

class GameStatus(str, Enum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"


class Game(Base):
    __tablename__ = "games"
    __table_args__ = (
        CheckConstraint("current_players >= 0", name="ck_games_current_players_non_negative"),
        CheckConstraint("current_players <= max_players", name="ck_games_capacity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    game_master_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    game_type_id = Column(Integer, ForeignKey("game_types.id"), nullable=False)
    structure_id = Column(Integer, ForeignKey("tournament_structures.id"), nullable=False)
    location = Column(String, nullable=False)
    starts_at = Column(DateTime, nullable=False)
    max_players = Column(Integer, nullable=False)
    current_players = Column(Integer, default=0, nullable=False)
    entry_fee = Column(Numeric(12, 2), nullable=False)
    prize_pool = Column(Numeric(12, 2), default=0, nullable=False) # fixed at creation
    is_private = Column(Boolean, default=False, nullable=False)
    status = Column(String, default=GameStatus.SCHEDULED.value, nullable=False, index=True)
    payout_structure = Column(String, nullable=False) # e.g. "1st:70,2nd:30"
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)
