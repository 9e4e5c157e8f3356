from sqlalchemy import Column, Integer, String
from gameon.core.database import Base

class GameType(Base):
    __tablename__ = "game_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    icon_class = Column(String, nullable=True)


class TournamentStructure(Base):
    __tablename__ = "tournament_structures"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)
