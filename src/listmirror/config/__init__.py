"""Application configuration helpers."""

from __future__ import annotations

from .bluesky import BlueskyConfig, default_bluesky_resilience, get_bluesky_config
from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .mirror import MirrorConfig, get_mirror_config
from .sync import SyncConfig, get_sync_config

__all__ = [
    "BlueskyConfig",
    "ConfigurationError",
    "MirrorConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SyncConfig",
    "configure_logging",
    "default_bluesky_resilience",
    "get_bluesky_config",
    "get_mirror_config",
    "get_sync_config",
    "require_env_var",
    "require_env_vars",
]
