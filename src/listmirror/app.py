"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from listmirror.adapters.atproto import AtprotoClient
from listmirror.config import get_bluesky_config, get_mirror_config, get_sync_config
from listmirror.domain.reconciliation import ReconciliationOrchestrator

if TYPE_CHECKING:
    from collections.abc import Callable

    from listmirror.adapters.http_resilience import ResilientClient
    from listmirror.config import BlueskyConfig, MirrorConfig, ResilienceConfig, SyncConfig
    from listmirror.domain.ports import ListService
    from listmirror.domain.types import ReconciliationSummary

log = getLogger(__name__)


def mirror_list(
    *,
    service: ListService | None = None,
    bluesky: BlueskyConfig | None = None,
    mirror: MirrorConfig | None = None,
    sync: SyncConfig | None = None,
    client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
) -> ReconciliationSummary:
    """Run one reconciliation of the configured source list into its mirror.

    Without an explicit ``service`` a Bluesky session is opened from
    ``BSKY_USERNAME``/``BSKY_PASSWORD``. Raises the engine's errors unchanged,
    including :class:`~listmirror.domain.errors.ThrottleExhausted`.
    """

    effective_mirror = mirror or get_mirror_config()
    effective_sync = sync or get_sync_config()
    log.info(
        "Starting list mirror: source=%s, mirror=%r, batch_size=%s",
        effective_mirror.source_list_uri,
        effective_mirror.mirror_name,
        effective_sync.batch_size,
    )

    if service is not None:
        orchestrator = ReconciliationOrchestrator(
            service, mirror=effective_mirror, sync=effective_sync
        )
        return asyncio.run(orchestrator.run())

    return asyncio.run(
        _mirror_over_bluesky(
            bluesky or get_bluesky_config(),
            effective_mirror,
            effective_sync,
            client_factory,
        )
    )


async def _mirror_over_bluesky(
    bluesky: BlueskyConfig,
    mirror: MirrorConfig,
    sync: SyncConfig,
    client_factory: Callable[[ResilienceConfig], ResilientClient] | None,
) -> ReconciliationSummary:
    async with AtprotoClient(config=bluesky, client_factory=client_factory) as client:
        await client.login()
        orchestrator = ReconciliationOrchestrator(client, mirror=mirror, sync=sync)
        return await orchestrator.run()
