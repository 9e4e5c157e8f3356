import datetime

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Boolean, UniqueConstraint
from gameon.core.database import Base

class GameParticipant(Base):
    __tablename__ = "game_participants"
    __table_args__ = (
        UniqueConstraint("game_id", "user_id", name="uq_game_participants_game_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    joined_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)
    has_paid = Column(Boolean, default=False, nullable=False)
    referred_by = Column(Integer, ForeignKey("users.id"), nullable=True)
