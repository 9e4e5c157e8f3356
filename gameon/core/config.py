from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./gameon.db"
    SECRET_KEY: str = "YOUR_SECRET_KEY_HERE"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    STRIPE_SECRET_KEY: str = "YOUR_STRIPE_SECRET_KEY_HERE"
    STRIPE_WEBHOOK_SECRET: str = "YOUR_STRIPE_WEBHOOK_SECRET_HERE"
    PAYMENT_CURRENCY: str = "usd"

    LOG_LEVEL: str = "INFO"
    SEED_REFERENCE_DATA: bool = True

    class Config:
        env_file = ".env"

settings = Settings()
