"""Runtime settings for the booking core.

All values come from environment variables with safe defaults, wrapped in a
frozen dataclass so callers never mutate shared configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    """Settings for admission, availability and logging.

    Attributes:
        admission_max_attempts: Upper bound on full admission protocol runs.
        admission_lock_timeout_ms: How long one attempt may wait on the
            property row lock before failing with a retryable error.
        admission_retry_backoff_ms: Linear backoff base between attempts.
        property_timezone: IANA zone that defines "today" for past-date checks.
        next_available_horizon_days: Default scan window for next availability.
        log_level: Root level for the JSON loggers.
    """

    admission_max_attempts: int = 5
    admission_lock_timeout_ms: int = 5000
    admission_retry_backoff_ms: int = 50
    property_timezone: str = "Asia/Jakarta"
    next_available_horizon_days: int = 90
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the environment (cached).

    Tests that change the environment should call get_settings.cache_clear().
    """
    max_attempts = _env_int("ADMISSION_MAX_ATTEMPTS", 5)
    if max_attempts < 1:
        raise RuntimeError("ADMISSION_MAX_ATTEMPTS must be >= 1")

    return Settings(
        admission_max_attempts=max_attempts,
        admission_lock_timeout_ms=_env_int("ADMISSION_LOCK_TIMEOUT_MS", 5000),
        admission_retry_backoff_ms=_env_int("ADMISSION_RETRY_BACKOFF_MS", 50),
        property_timezone=os.environ.get("PROPERTY_TIMEZONE", "Asia/Jakarta"),
        next_available_horizon_days=_env_int("NEXT_AVAILABLE_HORIZON_DAYS", 90),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
