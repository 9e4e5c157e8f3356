from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from gameon.core.config import settings
from gameon.core.database import SessionLocal
from gameon.payments.provider import PaymentProvider
from gameon.payments.stripe_provider import StripePaymentProvider
from gameon.repositories.base import GameRepository
from gameon.repositories.sql import SqlGameRepository
from gameon.services.game_service import GameService
from gameon.services.payment_service import PaymentService
from gameon.services.settlement_service import SettlementService
from gameon.services.user_service import UserService

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_repository(db: Session = Depends(get_db)) -> GameRepository:
    return SqlGameRepository(db)

@lru_cache
def get_payment_provider() -> PaymentProvider:
    return StripePaymentProvider(settings.STRIPE_SECRET_KEY, settings.STRIPE_WEBHOOK_SECRET)

def get_settlement_service(repository: GameRepository = Depends(get_repository)) -> SettlementService:
    return SettlementService(repository)

def get_game_service(
    repository: GameRepository = Depends(get_repository),
    settlement: SettlementService = Depends(get_settlement_service),
) -> GameService:
    return GameService(repository, settlement)

def get_payment_service(
    repository: GameRepository = Depends(get_repository),
    provider: PaymentProvider = Depends(get_payment_provider),
    settlement: SettlementService = Depends(get_settlement_service),
) -> PaymentService:
    return PaymentService(repository, provider, settlement, currency=settings.PAYMENT_CURRENCY)

def get_user_service(repository: GameRepository = Depends(get_repository)) -> UserService:
    return UserService(repository)
