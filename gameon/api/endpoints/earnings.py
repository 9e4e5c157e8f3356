from fastapi import APIRouter, Depends

from gameon.core.security import get_current_user_id
from gameon.schemas import earning_schemas
from gameon.services.settlement_service import SettlementService
from gameon.api.dependencies import get_settlement_service

router = APIRouter()

@router.get("/earnings", response_model=earning_schemas.EarningsSummary)
async def get_earnings_endpoint(
    current_user_id: int = Depends(get_current_user_id),
    settlement: SettlementService = Depends(get_settlement_service),
):
    earnings, total = settlement.earnings_summary(current_user_id)
    return {"earnings": earnings, "total": total}

@router.get("/referrals", response_model=earning_schemas.ReferralSummary)
async def get_referrals_endpoint(
    current_user_id: int = Depends(get_current_user_id),
    settlement: SettlementService = Depends(get_settlement_service),
):
    referrals, count, total_earnings = settlement.referral_summary(current_user_id)
    return {"referrals": referrals, "total": count, "total_earnings": total_earnings}
