"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Used when POO_SECRET is not configured. Signatures stay verifiable but
# anyone with this source can forge them.
DEFAULT_SIGNING_SECRET = "triadic-verification-key"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application environment
    env: Literal["dev", "test", "staging", "prod"] = "dev"

    # Shared HMAC secret for PoO, PoR and policy signatures
    poo_secret: str | None = None

    # Logging
    log_level: str = "INFO"

    # Override for the packaged policy declarations
    policies_dir: Path | None = None

    @property
    def signing_secret(self) -> str:
        """Return the configured HMAC secret or the fixed fallback."""
        return self.poo_secret or DEFAULT_SIGNING_SECRET

    @property
    def uses_default_secret(self) -> bool:
        """Check if signatures fall back to the built-in secret."""
        return not self.poo_secret

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode."""
        return self.env == "dev"

    @property
    def is_prod(self) -> bool:
        """Check if running in production mode."""
        return self.env == "prod"

    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.env == "test"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
