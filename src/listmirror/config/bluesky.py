"""Bluesky (AT Protocol) connection settings."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

BLUESKY_SERVICE_URL = "https://bsky.social"
BLUESKY_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class BlueskyConfig:
    """Credentials and transport settings for the account that owns the mirror list."""

    identifier: str
    password: str
    service_url: str
    resilience: ResilienceConfig


def default_bluesky_resilience(service_url: str = BLUESKY_SERVICE_URL) -> ResilienceConfig:
    return ResilienceConfig(
        name="bluesky",
        base_url=service_url.rstrip("/"),
        timeout_seconds=BLUESKY_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        default_headers={"Accept": "application/json"},
    )


def get_bluesky_config(*, resilience: ResilienceConfig | None = None) -> BlueskyConfig:
    values = require_env_vars(("BSKY_USERNAME", "BSKY_PASSWORD"))
    service_url = optional_env_var("BSKY_SERVICE_URL", BLUESKY_SERVICE_URL)
    return BlueskyConfig(
        identifier=values["BSKY_USERNAME"],
        password=values["BSKY_PASSWORD"],
        service_url=service_url,
        resilience=resilience or default_bluesky_resilience(service_url),
    )
