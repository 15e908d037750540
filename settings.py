"""Centralised configuration for the IP OSINT Analyzer (API keys & globals). Requires pydantic-settings."""
from __future__ import annotations

from typing import Dict

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables
        populate_by_name=True,
    )

    # Threat-intelligence providers. A provider is enabled iff its key is set.
    ABUSEIPDB_API_KEY: str | None = None
    VIRUSTOTAL_API_KEY: str | None = None
    IPQUALITYSCORE_API_KEY: str | None = None
    OTX_API_KEY: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OTX_API_KEY", "ALIENVAULT_OTX_API_KEY", "ALIENVALUT_OTX_API_KEY"),
    )
    # Port exposure
    SHODAN_API_KEY: str | None = None

    LOG_LEVEL: str = "INFO"

    # HTTP client defaults
    HTTP_DEFAULT_TIMEOUT: float = 15.0
    HTTP_MAX_RETRIES: int = 3
    HTTP_BACKOFF_BASE: float = 0.5
    HTTP_BACKOFF_CAP: float = 8.0
    # Requests per second global rate limit. 0 disables limiting.
    HTTP_RPS_LIMIT: float = 0.0

    # API server
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    CACHE_TTL: int = 600
    RATE_LIMIT_MAX: int = 100
    RATE_LIMIT_WINDOW: int = 900

    def configured_keys(self) -> Dict[str, bool]:
        """Which upstream credentials are present."""
        return {
            "abuseipdb": bool(self.ABUSEIPDB_API_KEY),
            "virustotal": bool(self.VIRUSTOTAL_API_KEY),
            "ipqualityscore": bool(self.IPQUALITYSCORE_API_KEY),
            "alienvault": bool(self.OTX_API_KEY),
            "shodan": bool(self.SHODAN_API_KEY),
        }


settings = Settings()

__all__ = ["settings", "Settings"]
