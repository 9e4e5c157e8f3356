from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel
from typing import List, Optional

class EarningRead(BaseModel):
    id: int
    user_id: int
    game_id: Optional[int] = None
    amount: Decimal
    type: str
    created_at: datetime

    class Config:
        from_attributes = True

class EarningsSummary(BaseModel):
    earnings: List[EarningRead]
    total: Decimal

class ReferralRead(BaseModel):
    id: int
    referrer_id: int
    referred_user_id: int
    game_id: Optional[int] = None
    earnings: Decimal
    created_at: datetime

    class Config:
        from_attributes = True

class ReferralSummary(BaseModel):
    referrals: List[ReferralRead]
    total: int
    total_earnings: Decimal
