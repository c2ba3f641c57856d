# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for provider endpoints, weights, cache and HTTP settings.
"""

from __future__ import annotations

from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cepgateway.core.errors import ConfigurationError

KNOWN_PROVIDERS = ("viacep", "brasilapi")

__all__ = ["ConfigurationError", "KNOWN_PROVIDERS", "Settings", "load_settings"]


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Providers ===
    enabled_providers: str = "viacep,brasilapi"
    provider_probe_timeout_s: float = 3.0

    viacep_base_url: str = "https://viacep.com.br/ws"
    viacep_timeout_s: float = 5.0
    viacep_weight: float = 70

    brasilapi_base_url: str = "https://brasilapi.com.br/api/cep/v1"
    brasilapi_timeout_s: float = 5.0
    brasilapi_weight: float = 30

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["memory", "redis"] = "memory"
    cache_ttl_seconds: int = 60 * 60 * 24
    cache_default_ttl_seconds: int = 300
    cache_max_entries: int = 1000
    cache_redis_url: str = ""
    cache_key_prefix: str = "cepgateway:"

    # === HTTP server ===
    host: str = "0.0.0.0"
    port: int = 3000
    request_id_header: str = "x-request-id"
    enable_docs: bool = True
    docs_path: str = "/docs"
    health_path: str = "/health"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"

    # --- Validators ---

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("cache_ttl_seconds", "cache_default_ttl_seconds")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("cache TTL must be >= 0")
        return v

    @field_validator("cache_max_entries")
    @classmethod
    def validate_max_entries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("cache_max_entries must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        providers = self.enabled_providers_list
        if not providers:
            errors.append("ENABLED_PROVIDERS must name at least one provider")

        duplicates = sorted({p for p in providers if providers.count(p) > 1})
        if duplicates:
            errors.append(
                f"ENABLED_PROVIDERS contains duplicate providers: {', '.join(duplicates)}"
            )

        unknown = [p for p in providers if p not in KNOWN_PROVIDERS]
        if unknown:
            errors.append(
                f"ENABLED_PROVIDERS contains unknown providers: {', '.join(unknown)}"
            )

        for name in providers:
            if name not in KNOWN_PROVIDERS:
                continue
            if getattr(self, f"{name}_weight") <= 0:
                errors.append(f"{name.upper()}_WEIGHT must be > 0")
            if getattr(self, f"{name}_timeout_s") <= 0:
                errors.append(f"{name.upper()}_TIMEOUT_S must be > 0")

        if self.provider_probe_timeout_s <= 0:
            errors.append("PROVIDER_PROBE_TIMEOUT_S must be > 0")

        if self.cache_enabled and self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def enabled_providers_list(self) -> list[str]:
        """Parse comma-separated provider names, preserving order."""
        return [
            p.strip().lower() for p in self.enabled_providers.split(",") if p.strip()
        ]

    def provider_options(self, name: str) -> dict[str, object]:
        """Constructor options for the named provider adapter."""
        return {
            "base_url": getattr(self, f"{name}_base_url"),
            "timeout_s": getattr(self, f"{name}_timeout_s"),
            "probe_timeout_s": self.provider_probe_timeout_s,
        }

    def provider_weight(self, name: str) -> float:
        return float(getattr(self, f"{name}_weight"))


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
