"""
Engine Settings

Runtime knobs read from environment variables.
"""

import os
from dataclasses import dataclass

from .errors import ConfigurationError


@dataclass(frozen=True)
class EngineSettings:
    environment: str = "dev"
    log_level: str = "INFO"
    batch_max_workers: int = 4
    lock_timeout_seconds: float = 5.0
    max_retries: int = 3
    retry_backoff_seconds: float = 0.5

    @classmethod
    def from_env(cls, environ=None) -> "EngineSettings":
        env = os.environ if environ is None else environ
        settings = cls(
            environment=env.get("ENVIRONMENT", cls.environment),
            log_level=env.get("LOG_LEVEL", cls.log_level).upper(),
            batch_max_workers=_read(env, "ROYALTY_BATCH_MAX_WORKERS", int, cls.batch_max_workers),
            lock_timeout_seconds=_read(env, "ROYALTY_LOCK_TIMEOUT_SECONDS", float, cls.lock_timeout_seconds),
            max_retries=_read(env, "ROYALTY_MAX_RETRIES", int, cls.max_retries),
            retry_backoff_seconds=_read(env, "ROYALTY_RETRY_BACKOFF_SECONDS", float, cls.retry_backoff_seconds),
        )

        if settings.batch_max_workers < 1:
            raise ConfigurationError(f"ROYALTY_BATCH_MAX_WORKERS must be at least 1, got: {settings.batch_max_workers}")
        if settings.max_retries < 0:
            raise ConfigurationError(f"ROYALTY_MAX_RETRIES cannot be negative, got: {settings.max_retries}")
        if settings.lock_timeout_seconds < 0 or settings.retry_backoff_seconds < 0:
            raise ConfigurationError("Lock timeout and retry backoff cannot be negative")

        return settings


def _read(env, name: str, cast, default):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got: {raw!r}") from None
