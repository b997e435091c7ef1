from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # App
    env: str = Field(default="development", description="ENV")
    debug: bool = Field(default=False, description="DEBUG")

    # Store: "mongo" or "memory"
    store_backend: str = Field(default="mongo", alias="STORE_BACKEND")

    # MongoDB (transactions need a replica set)
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="balance_ledger", alias="MONGODB_DB_NAME")

    # Balance reported for users that were never funded
    default_balance: Decimal = Field(default=Decimal("100"), alias="DEFAULT_BALANCE")
    default_currency: str = Field(default="USD", alias="DEFAULT_CURRENCY")

    # Seeding
    user_seed_size: int = Field(default=25, alias="USER_SEED_SIZE")

    # Sentry
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")


@lru_cache
def get_settings() -> Settings:
    return Settings()
