"""Configuration settings for the payment gate."""

import re
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .payments.chains import ChainEntry, ChainRegistry

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars not in model
    )

    # Payments
    pay_to: str  # Required - operator payout address
    price_units: str = Field("1", pattern=r"^(\d+(\.\d*)?|\.\d+)$")
    # Full replacement of the default chain table, as JSON
    chains_json: dict[str, ChainEntry] | None = None

    # JWT
    jwt_secret: str = Field(..., min_length=32)  # Required - no default for security
    jwt_algorithm: str = "HS256"

    # Revenue watcher
    revenue_watcher_enabled: bool = True
    revenue_log_dir: str = "logs"

    # App
    port: int = Field(3000, validation_alias=AliasChoices("APP_PORT", "PORT"))
    log_level: str = "INFO"
    verify_rate_limit: str = "30/minute"
    # Sources allowed to set X-Forwarded-For
    trusted_proxy_cidrs: list[str] = [
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "127.0.0.0/8",
        "::1/128",
    ]
    cors_origins: list[str] = ["*"]

    @field_validator("pay_to")
    @classmethod
    def validate_pay_to(cls, v: str) -> str:
        v = v.strip().lower()
        if not _ADDRESS_RE.match(v):
            raise ValueError("PAY_TO must be an EVM address (0x + 40 hex chars)")
        return v

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@lru_cache
def get_chain_registry() -> ChainRegistry:
    """Get the chain registry built from settings."""
    return ChainRegistry.from_override(get_settings().chains_json)
