from fastapi import APIRouter, Depends, Header, Request

from gameon.core.security import get_current_user_id
from gameon.schemas import game_schemas, payment_schemas
from gameon.services.payment_service import PaymentService
from gameon.api.dependencies import get_payment_service

router = APIRouter()

@router.post("/create-payment-intent", response_model=payment_schemas.PaymentIntentRead)
async def create_payment_intent_endpoint(
    payment_in: payment_schemas.PaymentIntentRequest,
    current_user_id: int = Depends(get_current_user_id),
    payment_service: PaymentService = Depends(get_payment_service),
):
    return payment_service.create_payment_reservation(payment_in.game_id, current_user_id)

@router.post("/confirm-payment", response_model=game_schemas.ParticipantRead)
async def confirm_payment_endpoint(
    confirm_in: payment_schemas.ConfirmPaymentRequest,
    current_user_id: int = Depends(get_current_user_id),
    payment_service: PaymentService = Depends(get_payment_service),
):
    return payment_service.confirm_payment(confirm_in.payment_intent_id, confirm_in.game_id, current_user_id)

@router.post("/webhooks/payments")
async def payment_webhook_endpoint(
    request: Request,
    stripe_signature: str = Header(""),
    payment_service: PaymentService = Depends(get_payment_service),
):
    """
    Provider-pushed payment notifications. Always acknowledged once the
    signature checks out, including notifications for unknown reservations,
    so the provider does not keep retrying them.
    """
    payload = await request.body()
    participant = payment_service.handle_notification(payload, stripe_signature)
    return {"received": True, "participant_id": participant.id if participant else None}
