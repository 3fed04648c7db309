"""
Wish – Application configuration.
Reads environment variables from a .env file via pydantic-settings.
"""

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

from wishboard.exceptions import ConfigurationError

# Values shipped in .env.example; a deployment that still carries them is unconfigured.
PLACEHOLDER_VALUES = {"your_store_url", "your_store_key"}


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ── App ──
    APP_NAME: str = "Wish"
    DEBUG: bool = False

    # ── Hosted store ──
    STORE_URL: str
    STORE_KEY: str
    CREATE_TABLES: bool = True

    # ── Device identity ──
    DEVICE_COOKIE_NAME: str = "wish_device_id"
    DEVICE_COOKIE_MAX_AGE: int = 10 * 365 * 24 * 60 * 60

    # ── Board ──
    CONFIRMATION_DELAY_SECONDS: float = 0.8
    MAX_TEXT_LENGTH: int = 500
    BATCH_AGGREGATION: bool = True

    @field_validator("STORE_URL", "STORE_KEY")
    @classmethod
    def _require_configured(cls, value: str, info) -> str:
        value = value.strip()
        if not value:
            raise ValueError(
                f"Missing {info.field_name}. Please check your .env file."
            )
        if value in PLACEHOLDER_VALUES:
            raise ValueError(
                f"Please replace the placeholder value of {info.field_name} "
                "with your actual store credentials."
            )
        return value

    @property
    def store_url(self) -> URL:
        """Connection URL with the access key applied as the password."""
        url = make_url(self.STORE_URL)
        # SQLite URLs reject credentials; the key only matters for a hosted store.
        if url.get_backend_name() == "sqlite":
            return url
        return url.set(password=self.STORE_KEY)


def load_settings(**overrides) -> Settings:
    """Build settings, failing fast when the store is not configured."""
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


settings = load_settings()
