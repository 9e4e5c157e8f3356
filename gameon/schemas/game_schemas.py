from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Dict, List, Optional

class GameCreate(BaseModel):
    name: str
    game_type_id: int
    structure_id: int
    location: str
    starts_at: datetime = Field(..., description="When the game is played")
    max_players: int
    # Bounds (1-10000, 2-64) are business rules checked by GameService.
    entry_fee: Decimal
    is_private: bool = False
    payout_structure: str = Field(..., description="Comma separated 'position:percentage' pairs, e.g. '1st:70,2nd:30'")

class GameRead(BaseModel):
    id: int
    name: str
    game_master_id: int
    game_type_id: int
    structure_id: int
    location: str
    starts_at: datetime
    max_players: int
    current_players: int
    entry_fee: Decimal
    prize_pool: Decimal
    is_private: bool
    status: str
    payout_structure: str
    created_at: datetime

    class Config:
        from_attributes = True

class GameStatusUpdate(BaseModel):
    status: str
    placements: Optional[Dict[str, int]] = Field(
        None, description="Position label -> user id, only when completing a game"
    )

class JoinGameRequest(BaseModel):
    referred_by: Optional[int] = None

class ParticipantRead(BaseModel):
    id: int
    game_id: int
    user_id: int
    joined_at: datetime
    has_paid: bool
    referred_by: Optional[int] = None

    class Config:
        from_attributes = True

class PayoutShareRead(BaseModel):
    label: str
    percentage: int
    amount: Decimal

class DistributionRead(BaseModel):
    prize_pool: Decimal
    platform_fee: Decimal
    game_master_fee: Decimal
    promoters_fee: Decimal
    winners_prize: Decimal
    payouts: List[PayoutShareRead] = []
