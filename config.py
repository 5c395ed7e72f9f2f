from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict


class ENV(BaseSettings):
    model_config = SettingsConfigDict(validate_default=True, env_file=".env", env_file_encoding="utf-8")

    service_api_token: str

    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str | None = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_NAME: str = "ledger"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASS: str = ""

    redis_url: str = "redis://localhost:6379/0"
    CACHE_TTL_SECONDS: int = 30
    BONUS_CACHE_TTL_SECONDS: int = 60

    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"
    CELERY_TIMEZONE: str = "UTC"

    LINE_CHANNEL_ACCESS_TOKEN: str | None = None
    LINE_ADMIN_USER_ID: str | None = None
    LINE_ADMIN_GROUP_ID: str | None = None

    COIN_CONVERSION_RATE: Decimal = Decimal("1.0")


class Settings():
    def __init__(self):
        self.env = ENV()

    def generate_postgres_url(self) -> str:
        return f"postgresql+asyncpg://{self.env.POSTGRES_USER}:{self.env.POSTGRES_PASS}@{self.env.POSTGRES_HOST}:{self.env.POSTGRES_PORT}/{self.env.POSTGRES_NAME}"

    def generate_database_url(self) -> str:
        # DATABASE_URL wins so local runs and tests can point at sqlite+aiosqlite
        if self.env.DATABASE_URL:
            return self.env.DATABASE_URL
        return self.generate_postgres_url()

    def get_line_recipients(self) -> list[str]:
        return [r for r in (self.env.LINE_ADMIN_GROUP_ID, self.env.LINE_ADMIN_USER_ID) if r]
