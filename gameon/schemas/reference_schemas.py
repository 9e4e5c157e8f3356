from pydantic import BaseModel
from typing import Optional

class GameTypeRead(BaseModel):
    id: int
    name: str
    icon_class: Optional[str] = None

    class Config:
        from_attributes = True

class TournamentStructureRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True
