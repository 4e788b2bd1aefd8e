"""
Shared configuration management for the payment signing key cache.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


GOOGLE_PRODUCTION_KEY_URL = "https://payments.developers.google.com/paymentmethodtoken/keys.json"
GOOGLE_TEST_KEY_URL = "https://payments.developers.google.com/paymentmethodtoken/test/keys.json"
DEFAULT_FRESHNESS_SECONDS = int(timedelta(days=7).total_seconds())


class KeyProviderConfig(BaseSettings):
    """Key provider settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="PAYMENT_KEYS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    environment: Literal["production", "test"] = "production"
    log_level: str = "info"

    # Key endpoint
    key_url: Optional[str] = None
    http_timeout: float = Field(default=10.0, gt=0)

    # Freshness
    default_freshness_seconds: int = DEFAULT_FRESHNESS_SECONDS
    honor_cache_control: bool = True

    @property
    def resolved_key_url(self) -> str:
        """Key document URL, honoring an explicit override."""
        if self.key_url:
            return self.key_url
        if self.environment == "test":
            return GOOGLE_TEST_KEY_URL
        return GOOGLE_PRODUCTION_KEY_URL

    @property
    def default_freshness(self) -> timedelta:
        """Static freshness window used until the server sends a hint."""
        return timedelta(seconds=self.default_freshness_seconds)


@lru_cache
def get_config() -> KeyProviderConfig:
    """Get cached configuration instance."""
    return KeyProviderConfig()
