import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Only ever used outside production; see Settings._check_environment
DEV_SECRET_KEY = "dev-secret-change-me"

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    app_name: str = "CampusMart"

    # "dev" or "production"
    app_env: str = "dev"
    log_level: str = "INFO"
    port: int = 5000

    # Session tokens / password hashing
    secret_key: str | None = None
    algorithm: str = "HS256"
    session_ttl_days: int = 7
    otp_ttl_minutes: int = 10
    bcrypt_rounds: int = 12

    # Unset -> in-memory stores
    database_url: str | None = None

    # Paymob Accept
    paymob_base_url: str = "https://accept.paymob.com"
    paymob_api_key: str = ""
    paymob_integration_id: str = ""
    paymob_iframe_id: str = ""
    paymob_hmac_secret: str | None = None
    paymob_currency: str = "EGP"
    paymob_timeout_seconds: float = 15.0

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in ("prod", "production")

    @model_validator(mode="after")
    def _check_environment(self) -> "Settings":
        if self.is_production:
            missing = [
                name
                for name in ("secret_key", "paymob_api_key", "paymob_hmac_secret")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(
                    f"Missing required production settings: {', '.join(missing)}"
                )
        elif not self.secret_key:
            logger.warning(
                "SECRET_KEY is not set; using the development signing secret. "
                "Never run like this in production."
            )
            self.secret_key = DEV_SECRET_KEY
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
