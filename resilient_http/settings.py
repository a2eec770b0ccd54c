"""Environment-driven defaults for the HTTP client."""

import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config import IdempotencyPolicy, RetryPolicy
from .logging_config import setup_logging
from .types import BackoffStrategy, JitterMode


class ClientSettings(BaseSettings):
    """Client configuration loaded from RESILIENT_HTTP_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RESILIENT_HTTP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = ""
    name: str = "HttpClient"
    timeout_ms: float | None = Field(default=None, gt=0)

    # Retry defaults
    max_retries: int = Field(default=0, ge=0)
    backoff: BackoffStrategy = "exponential"
    delay_factor_ms: float = Field(default=500, gt=0)
    jitter: JitterMode = "none"

    # Idempotency defaults
    idempotency_enabled: bool = False
    idempotency_methods: list[str] = ["POST", "PATCH"]
    idempotency_header: str = "Idempotency-Key"
    idempotency_max_entries: int = Field(default=1024, ge=1)
    idempotency_ttl_seconds: float | None = 24 * 60 * 60

    error_message_path: str = "data.message"

    # Logging
    debug: bool = False
    debug_level: Literal["normal", "verbose"] = "normal"
    log_level: str = "INFO"
    log_json: bool = False

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            backoff=self.backoff,
            delay_factor_ms=self.delay_factor_ms,
            jitter=self.jitter,
        )

    def idempotency_policy(self) -> IdempotencyPolicy:
        return IdempotencyPolicy(
            enabled=self.idempotency_enabled,
            methods=frozenset(self.idempotency_methods),
            header_name=self.idempotency_header,
        )

    def configure_logging(self, log_file: str | None = None) -> logging.Logger:
        """Set up the package logger from `log_level` and `log_json`."""
        return setup_logging(self.log_level, log_file=log_file, json_format=self.log_json)


_settings: ClientSettings | None = None


def get_settings() -> ClientSettings:
    """Get or create the process-wide settings instance."""
    global _settings
    if _settings is None:
        _settings = ClientSettings()
    return _settings
