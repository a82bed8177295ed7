from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

import pytest

from listmirror.domain.errors import ResolutionError
from listmirror.domain.executor import RateLimitedExecutor
from listmirror.domain.resolver import MirrorResolver
from listmirror.domain.types import LIST_COLLECTION, MODLIST_PURPOSE
from tests.helpers.list_service import FakeListService, broken, no_sleep, throttled

NAME = "Verified Accounts (modlist)"
FIXED_NOW = datetime(2025, 4, 1, 12, 30, tzinfo=UTC)


def _resolver(
    service: FakeListService,
    *,
    page_size: int = 100,
    on_duplicate_lists: str = "first",
) -> MirrorResolver:
    return MirrorResolver(
        service,
        RateLimitedExecutor(sleep=no_sleep),
        description="Auto-synced verified account modlist",
        page_size=page_size,
        on_duplicate_lists=on_duplicate_lists,  # type: ignore[arg-type]
        clock=lambda: FIXED_NOW,
    )


def test_returns_existing_modlist() -> None:
    service = FakeListService()
    service.add_list("Something else")
    uri = service.add_list(NAME)

    handle = asyncio.run(_resolver(service).resolve_or_create(NAME))

    assert handle.uri == uri
    assert service.count("create_record") == 0


def test_ignores_lists_with_another_purpose() -> None:
    service = FakeListService()
    service.add_list(NAME, purpose="app.bsky.graph.defs#curatelist")

    handle = asyncio.run(_resolver(service).resolve_or_create(NAME))

    assert service.count("create_record") == 1
    assert handle.uri in service.records[LIST_COLLECTION]


def test_creates_modlist_when_missing() -> None:
    service = FakeListService()

    handle = asyncio.run(_resolver(service).resolve_or_create(NAME))

    assert handle.repo == service.account
    assert service.records[LIST_COLLECTION][handle.uri] == {
        "$type": LIST_COLLECTION,
        "purpose": MODLIST_PURPOSE,
        "name": NAME,
        "description": "Auto-synced verified account modlist",
        "createdAt": "2025-04-01T12:30:00.000Z",
    }


def test_second_resolution_reuses_created_list() -> None:
    service = FakeListService()

    first = asyncio.run(_resolver(service).resolve_or_create(NAME))
    second = asyncio.run(_resolver(service).resolve_or_create(NAME))

    assert first == second
    assert service.count("create_record") == 1


def test_finds_list_beyond_first_page() -> None:
    service = FakeListService()
    for index in range(7):
        service.add_list(f"Other {index}")
    uri = service.add_list(NAME)

    handle = asyncio.run(_resolver(service, page_size=3).resolve_or_create(NAME))

    assert handle.uri == uri
    assert service.count("list_records_page") == 3


def test_first_match_wins_and_warns(caplog: pytest.LogCaptureFixture) -> None:
    service = FakeListService()
    first = service.add_list(NAME)
    second = service.add_list(NAME)

    with caplog.at_level(logging.WARNING):
        handle = asyncio.run(_resolver(service).resolve_or_create(NAME))

    assert handle.uri == first
    assert second in caplog.text


def test_duplicate_lists_can_be_fatal() -> None:
    service = FakeListService()
    service.add_list(NAME)
    service.add_list(NAME)

    with pytest.raises(ResolutionError, match="2 moderation lists"):
        asyncio.run(_resolver(service, on_duplicate_lists="fail").resolve_or_create(NAME))


def test_enumeration_failure_is_a_resolution_error() -> None:
    service = FakeListService()
    service.always["list_records_page"] = broken()

    with pytest.raises(ResolutionError, match="enumerate"):
        asyncio.run(_resolver(service).resolve_or_create(NAME))


def test_sustained_throttle_during_creation_is_a_resolution_error() -> None:
    service = FakeListService()
    service.always["create_record"] = throttled()

    with pytest.raises(ResolutionError, match="Rate limited"):
        asyncio.run(_resolver(service).resolve_or_create(NAME))

    assert service.count("create_record") == 3


def test_creation_failure_is_a_resolution_error() -> None:
    service = FakeListService()
    service.always["create_record"] = broken()

    with pytest.raises(ResolutionError, match="Could not create"):
        asyncio.run(_resolver(service).resolve_or_create(NAME))
