"""Capture and cache settings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .env import env_flag, env_number

DEFAULT_DEBOUNCE_SECONDS = 1.0
DEFAULT_CACHE_MAX_ENTRIES = 100
DEFAULT_CACHE_TTL_SECONDS = 300.0


@dataclass(frozen=True, slots=True)
class CaptureConfig:
    auto_save: bool = True
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_ttl_seconds)


def get_capture_config() -> CaptureConfig:
    return CaptureConfig(
        auto_save=env_flag("CHATKEEP_AUTO_SAVE", default=True),
        debounce_seconds=env_number(
            "CHATKEEP_DEBOUNCE_SECONDS",
            default=DEFAULT_DEBOUNCE_SECONDS,
            kind=float,
            minimum=0.0,
        ),
        cache_max_entries=env_number(
            "CHATKEEP_CACHE_MAX_ENTRIES",
            default=DEFAULT_CACHE_MAX_ENTRIES,
            kind=int,
            minimum=1,
        ),
        cache_ttl_seconds=env_number(
            "CHATKEEP_CACHE_TTL_SECONDS",
            default=DEFAULT_CACHE_TTL_SECONDS,
            kind=float,
            minimum=0.0,
        ),
    )
