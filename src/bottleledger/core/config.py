"""
Configuration management for bottleledger.

Handles loading configuration from environment variables (optionally backed
by a ``.env`` file) and validation.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Any

from dotenv import dotenv_values

from bottleledger.core.exceptions import ConfigurationError

DEFAULT_RATE = Decimal("20.0")

_TRUTHY = ("1", "true", "yes", "on")


def _get_env_var(
    name: str,
    default: str | None = None,
    fallback: Mapping[str, str | None] | None = None,
) -> str | None:
    """Get environment variable, then ``fallback`` (a parsed .env file), then ``default``."""
    value = os.environ.get(name)
    if not value and fallback:
        value = fallback.get(name)
    return value if value else default


@dataclass(frozen=True)
class Config:
    """Ledger configuration."""

    storage_backend: str = "sqlite"
    db_path: str = "deliveries.db"
    redis_url: str = "redis://localhost:6379/0"
    redis_prefix: str = "bottleledger"
    # Rate used until one is explicitly set
    default_rate: Decimal = DEFAULT_RATE
    log_level: str = "INFO"
    json_logs: bool = False

    def __post_init__(self) -> None:
        if not self.storage_backend:
            raise ConfigurationError("storage_backend is required")
        if self.storage_backend == "sqlite" and not self.db_path:
            raise ConfigurationError("db_path is required for the sqlite backend")

        try:
            rate = Decimal(str(self.default_rate))
        except InvalidOperation:
            raise ConfigurationError(
                "default_rate must be a number", details={"default_rate": self.default_rate}
            ) from None
        if not rate.is_finite() or rate <= 0:
            raise ConfigurationError(
                "default_rate must be positive", details={"default_rate": str(rate)}
            )
        object.__setattr__(self, "default_rate", rate)

    @classmethod
    def from_env(cls, env_file: str | os.PathLike[str] | None = None, **overrides: Any) -> Config:
        """
        Load configuration from environment variables.

        Args:
            env_file: Optional .env file consulted for variables missing from
                the process environment (the environment always wins)
            **overrides: Field values that take precedence over both
        """
        file_values = dotenv_values(env_file) if env_file else None

        def env(name: str, default: str) -> str | None:
            return _get_env_var(name, default, file_values)

        values: dict[str, Any] = {
            "storage_backend": env("BOTTLELEDGER_STORAGE_BACKEND", cls.storage_backend),
            "db_path": env("BOTTLELEDGER_DB_PATH", cls.db_path),
            "redis_url": env("BOTTLELEDGER_REDIS_URL", cls.redis_url),
            "redis_prefix": env("BOTTLELEDGER_REDIS_PREFIX", cls.redis_prefix),
            "default_rate": env("BOTTLELEDGER_DEFAULT_RATE", str(DEFAULT_RATE)),
            "log_level": env("BOTTLELEDGER_LOG_LEVEL", cls.log_level),
            "json_logs": (env("BOTTLELEDGER_JSON_LOGS", "false") or "").lower() in _TRUTHY,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(updates)
        return Config(**current)

    def storage_options(self) -> dict[str, Any]:
        """Constructor keyword arguments for the configured storage backend."""
        if self.storage_backend == "sqlite":
            return {"path": self.db_path}
        if self.storage_backend == "redis":
            return {"redis_url": self.redis_url, "prefix": self.redis_prefix}
        return {}
