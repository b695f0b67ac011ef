"""Library configuration using Pydantic Settings.

This module centralizes the runtime configuration of the shared event hub.
Values can be provided via environment variables (preferred) or fall back to
the defaults below. A ``Settings`` instance is intended to be retrieved via
``get_settings`` which caches the object for reuse across the process.

Environment variable prefix: ``ONEMIT_`` (e.g. ``ONEMIT_LOG_LEVEL``).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings.

    Attributes map directly to environment variables using the ``ONEMIT_``
    prefix (case-insensitive). For example, ``log_level`` <- ``ONEMIT_LOG_LEVEL``.
    """

    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level used by setup_logging()",
    )
    when_timeout_ms: float | None = Field(
        default=None,
        description="Default when() timeout of the shared hub in milliseconds. Empty waits forever.",
    )  # fmt: skip

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | None) -> str:
        """Normalize and validate log level."""
        if v is None:
            return "INFO"

        # Normalize to uppercase
        v_upper = str(v).upper()

        # Validate against allowed values
        allowed = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR"}
        if v_upper not in allowed:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {', '.join(sorted(allowed))}")

        return v_upper

    @field_validator("when_timeout_ms", mode="before")
    @classmethod
    def validate_when_timeout(cls, v: float | str | None) -> float | None:
        """Treat empty values as "no timeout" and reject non-positive ones."""
        if v is None or v == "":
            return None
        timeout = float(v)
        if timeout <= 0:
            raise ValueError(f"Invalid when() timeout: {v}. Must be a positive number of milliseconds")
        return timeout

    model_config = SettingsConfigDict(
        env_prefix="ONEMIT_",  # Prefix for env vars
        case_sensitive=False,
        extra="ignore",  # Ignore unexpected env vars
        env_file=".env",  # Optional .env loading (if present)
        env_file_encoding="utf-8",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the cached ``Settings`` instance.

    The first invocation reads environment variables / .env file; subsequent
    calls reuse the same object to ensure consistent config.
    """

    return Settings()


__all__ = ["Settings", "get_settings"]
