from __future__ import annotations

import pytest

from listmirror.app import mirror_list
from listmirror.config import MirrorConfig, SyncConfig
from listmirror.domain.errors import ThrottleExhausted
from listmirror.domain.types import LIST_COLLECTION, MODLIST_PURPOSE, ReconciliationSummary
from tests.support.pds import FakePds, bluesky_config

pytestmark = pytest.mark.integration

SOURCE = "at://did:plc:curator/app.bsky.graph.list/verified"
NAME = "Verified Accounts (modlist)"
MIRROR = MirrorConfig(source_list_uri=SOURCE, mirror_name=NAME)
FAST = SyncConfig(batch_delay_seconds=0.0, throttle_backoff_seconds=0.0)


def _dids(prefix: str, count: int) -> list[str]:
    return [f"did:plc:{prefix}{index:03d}" for index in range(count)]


def _mirror(pds: FakePds, sync: SyncConfig = FAST) -> ReconciliationSummary:
    return mirror_list(
        bluesky=bluesky_config(),
        mirror=MIRROR,
        sync=sync,
        client_factory=pds.client_factory(),
    )


def test_mirror_converges_and_stays_converged() -> None:
    source = _dids("verified", 120)
    pds = FakePds(external_lists={SOURCE: source})
    mirror_uri = pds.add_modlist(NAME)
    for did in [*source[:10], *_dids("stale", 5)]:
        pds.add_record("app.bsky.graph.listitem", {"subject": did, "list": mirror_uri})

    first = _mirror(pds)

    assert (first.added, first.removed, first.failed) == (110, 5, 0)
    assert pds.members_of(mirror_uri) == set(source)

    second = _mirror(pds)

    assert (second.added, second.removed, second.unchanged) == (0, 0, 0)
    assert pds.count("com.atproto.repo.createRecord") == 110


def test_mirror_list_is_created_on_first_run() -> None:
    pds = FakePds(external_lists={SOURCE: _dids("verified", 3)})

    summary = _mirror(pds)

    assert summary.mirror is not None
    (created,) = pds.records[LIST_COLLECTION].values()
    assert created["name"] == NAME
    assert created["purpose"] == MODLIST_PURPOSE
    assert created["description"] == "Auto-synced verified account modlist"
    assert pds.members_of(summary.mirror.uri) == set(_dids("verified", 3))


def test_brief_rate_limiting_is_absorbed() -> None:
    pds = FakePds(external_lists={SOURCE: _dids("verified", 4)})
    mirror_uri = pds.add_modlist(NAME)
    pds.throttle["com.atproto.repo.createRecord"] = 2

    summary = _mirror(pds)

    assert summary.added == 4
    assert pds.members_of(mirror_uri) == set(_dids("verified", 4))


def test_sustained_rate_limiting_ends_the_run_early() -> None:
    pds = FakePds(external_lists={SOURCE: _dids("verified", 30)})
    pds.add_modlist(NAME)
    pds.throttle["com.atproto.repo.createRecord"] = 1_000

    with pytest.raises(ThrottleExhausted) as caught:
        _mirror(pds, SyncConfig(batch_size=5, batch_delay_seconds=0.0, throttle_backoff_seconds=0))

    summary = caught.value.summary
    assert summary is not None and summary.aborted
    assert summary.skipped == 30
    assert pds.count("com.atproto.repo.createRecord") <= 5 * 3
