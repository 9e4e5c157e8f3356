from decimal import Decimal
from pydantic import BaseModel

class PaymentIntentRequest(BaseModel):
    game_id: int

class PaymentIntentRead(BaseModel):
    reference: str
    client_secret: str
    amount: Decimal
    currency: str

class ConfirmPaymentRequest(BaseModel):
    payment_intent_id: str
    game_id: int
