import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gameon.api.endpoints import auth as auth_endpoints
from gameon.api.endpoints import earnings as earning_endpoints
from gameon.api.endpoints import games as game_endpoints
from gameon.api.endpoints import payments as payment_endpoints
from gameon.api.endpoints import reference as reference_endpoints
from gameon.core.config import settings
from gameon.core.database import SessionLocal, engine
from gameon.core.errors import GameOnError
from gameon.models import create_tables
from gameon.repositories.sql import SqlGameRepository
from gameon.services.reference_service import seed_reference_data

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_tables(engine)
    if settings.SEED_REFERENCE_DATA:
        db = SessionLocal()
        try:
            seed_reference_data(SqlGameRepository(db))
        finally:
            db.close()
    logger.info("GameOn API started")
    yield


app = FastAPI(title="GameOn API", lifespan=lifespan)


@app.exception_handler(GameOnError)
async def gameon_error_handler(request: Request, exc: GameOnError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"code": exc.code, "detail": exc.message})


# Include routers
app.include_router(auth_endpoints.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(reference_endpoints.router, prefix="/api", tags=["Reference data"])
app.include_router(game_endpoints.router, prefix="/api/games", tags=["Games"])
app.include_router(payment_endpoints.router, prefix="/api", tags=["Payments"])
app.include_router(earning_endpoints.router, prefix="/api", tags=["Earnings"])


@app.get("/")
async def read_root():
    return {"message": "GameOn API"}
