from functools import lru_cache
from typing import Literal, Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from the environment (prefix CAMPUS_SPORTS_)."""

    database_url: str = "sqlite:///./campus_sports.db"
    echo_sql: bool = False

    # JWT
    secret_key: SecretStr = SecretStr("dev-secret-key-change-in-prod")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # slot length used when a facility's schedule is generated
    slot_minutes: int = 60

    # payments: mock | test | production
    payment_env: Literal["mock", "test", "production"] = "mock"
    stripe_secret_key: Optional[SecretStr] = None
    stripe_webhook_secret: Optional[SecretStr] = None

    qr_secret: SecretStr = SecretStr("qr-secret-key")

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="CAMPUS_SPORTS_", env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
