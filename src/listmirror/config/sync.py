"""Pacing and retry defaults for reconciliation runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .env import env_float, env_int
from .errors import ConfigurationError

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 100
DEFAULT_BATCH_SIZE = 10
DEFAULT_BATCH_DELAY_SECONDS = 1.0
DEFAULT_MAX_CONSECUTIVE_THROTTLES = 3
DEFAULT_THROTTLE_BACKOFF_SECONDS = 5.0
DEFAULT_MAX_BACKOFF_SECONDS = 60.0

type DuplicateListPolicy = Literal["first", "fail"]


@dataclass(frozen=True, slots=True)
class SyncConfig:
    page_size: int = DEFAULT_PAGE_SIZE
    batch_size: int = DEFAULT_BATCH_SIZE
    batch_delay_seconds: float = DEFAULT_BATCH_DELAY_SECONDS
    max_consecutive_throttles: int = DEFAULT_MAX_CONSECUTIVE_THROTTLES
    throttle_backoff_seconds: float = DEFAULT_THROTTLE_BACKOFF_SECONDS
    max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS
    on_duplicate_lists: DuplicateListPolicy = "first"

    def __post_init__(self) -> None:
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ConfigurationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
        if self.batch_size < 1:
            raise ConfigurationError("batch_size must be at least 1")
        if self.max_consecutive_throttles < 1:
            raise ConfigurationError("max_consecutive_throttles must be at least 1")
        if self.batch_delay_seconds < 0 or self.throttle_backoff_seconds < 0:
            raise ConfigurationError("Delays must be non-negative")
        if self.max_backoff_seconds < self.throttle_backoff_seconds:
            raise ConfigurationError("max_backoff_seconds must not undercut the fixed backoff")
        if self.on_duplicate_lists not in ("first", "fail"):
            raise ConfigurationError(
                f"Unsupported duplicate list policy: {self.on_duplicate_lists}"
            )


def get_sync_config() -> SyncConfig:
    backoff = env_float("LISTMIRROR_THROTTLE_BACKOFF", DEFAULT_THROTTLE_BACKOFF_SECONDS)
    return SyncConfig(
        page_size=env_int("LISTMIRROR_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        batch_size=env_int("LISTMIRROR_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        batch_delay_seconds=env_float("LISTMIRROR_BATCH_DELAY", DEFAULT_BATCH_DELAY_SECONDS),
        max_consecutive_throttles=env_int(
            "LISTMIRROR_MAX_THROTTLES", DEFAULT_MAX_CONSECUTIVE_THROTTLES
        ),
        throttle_backoff_seconds=backoff,
        max_backoff_seconds=env_float(
            "LISTMIRROR_MAX_BACKOFF", max(DEFAULT_MAX_BACKOFF_SECONDS, backoff)
        ),
    )
