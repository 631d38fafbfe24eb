from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Settings:
    redis_url: str = "redis://localhost:6379/0"
    log_level: str = "INFO"

    # World lock: how long a holder may keep it, and how long a caller waits for it.
    lock_ttl_ms: int = 5_000
    lock_wait_ms: int = 2_000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
            log_level=os.environ.get("WORLDSTATE_LOG_LEVEL", "INFO").upper(),
            lock_ttl_ms=int(os.environ.get("WORLDSTATE_LOCK_TTL_MS", "5000")),
            lock_wait_ms=int(os.environ.get("WORLDSTATE_LOCK_WAIT_MS", "2000")),
        )


_SETTINGS: Settings | None = None


def init_settings(*, settings: Settings | None = None) -> Settings:
    """Load settings once and cache them.

    Safe to call multiple times; subsequent calls return the already loaded instance.
    """

    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = settings if settings is not None else Settings.from_env()
    return _SETTINGS


def reset_settings_for_tests() -> None:
    global _SETTINGS
    _SETTINGS = None


def get_settings() -> Settings:
    return init_settings()
