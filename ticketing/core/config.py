from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # project root
ENV_PATH = BASE_DIR / ".env"

# Load .env into the process environment before Settings reads it
load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=False,
    )

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite+aiosqlite:///./ticketing.db"

    # QR payload signing. Must be provided by the host in production.
    QR_SIGNING_SECRET: str = ""
    QR_JWT_ALG: str = "HS256"
    QR_ISSUER: str = "parlomo-ticketing"
    QR_SUBJECT: str = "ticket-qr"
    QR_TTL_DAYS: int = 365

    # Remote ticketing API (checkout sessions, payment intents, promo lookup)
    TICKETING_API_BASE_URL: str = "http://localhost:8000"
    TICKETING_API_TOKEN: str | None = None
    TICKETING_API_TIMEOUT: float = 15

    CHECKOUT_POLL_SECONDS: float = 1.0

    # Fees (minor currency units / percentages)
    DEFAULT_CURRENCY: str = "GBP"
    SERVICE_FEE_PERCENT: float = 5
    SERVICE_FEE_CAP_CENTS: int = 1000
    PROCESSING_FEE_CENTS: int = 200
    PLATFORM_FEE_PERCENT: float = 3

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in ("production", "prod")


settings = Settings()
