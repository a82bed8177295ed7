from __future__ import annotations

import asyncio

import pytest

from listmirror.domain.errors import RetrievalError
from listmirror.domain.executor import RateLimitedExecutor
from listmirror.domain.ports import ListPage
from listmirror.domain.reader import ListReader
from listmirror.domain.types import ListHandle
from tests.helpers.list_service import SOURCE_URI, FakeListService, broken, no_sleep, throttled


def _reader(service: FakeListService, *, page_size: int = 100) -> ListReader:
    executor = RateLimitedExecutor(max_consecutive_throttles=3, sleep=no_sleep)
    return ListReader(service, executor, page_size=page_size)


def _subjects(count: int) -> list[str]:
    return [f"did:plc:member{index:04d}" for index in range(count)]


def test_reads_every_page() -> None:
    service = FakeListService(external_lists={SOURCE_URI: _subjects(250)})

    members = asyncio.run(_reader(service).fetch_membership(ListHandle(SOURCE_URI)))

    assert members == frozenset(_subjects(250))
    assert len(members) == 250
    assert service.count("get_list_page") == 3


def test_single_short_page() -> None:
    service = FakeListService(external_lists={SOURCE_URI: _subjects(3)})

    members = asyncio.run(_reader(service).fetch_membership(ListHandle(SOURCE_URI)))

    assert members == frozenset(_subjects(3))
    assert service.count("get_list_page") == 1


def test_empty_list() -> None:
    service = FakeListService(external_lists={SOURCE_URI: []})

    assert asyncio.run(_reader(service).fetch_membership(ListHandle(SOURCE_URI))) == frozenset()


def test_items_repeated_across_page_boundaries_are_deduplicated() -> None:
    service = FakeListService(external_lists={SOURCE_URI: _subjects(25)})
    service.overlap_pages = True

    members = asyncio.run(
        _reader(service, page_size=10).fetch_membership(ListHandle(SOURCE_URI))
    )

    assert members == frozenset(_subjects(25))


def test_transient_throttle_on_a_page_is_retried() -> None:
    service = FakeListService(external_lists={SOURCE_URI: _subjects(150)})
    service.scripted["get_list_page"] = [throttled(), throttled()]

    members = asyncio.run(_reader(service).fetch_membership(ListHandle(SOURCE_URI)))

    assert len(members) == 150


def test_failed_page_raises_instead_of_returning_partial_set() -> None:
    service = FakeListService(external_lists={SOURCE_URI: _subjects(250)})
    original = service.get_list_page

    async def failing_second_page(list_uri: str, *, limit: int, cursor: str | None = None):
        if cursor is not None:
            raise broken()
        return await original(list_uri, limit=limit, cursor=cursor)

    service.get_list_page = failing_second_page  # type: ignore[method-assign]

    with pytest.raises(RetrievalError, match="page 2"):
        asyncio.run(_reader(service).fetch_membership(ListHandle(SOURCE_URI)))


def test_sustained_throttle_is_a_retrieval_error() -> None:
    service = FakeListService(external_lists={SOURCE_URI: _subjects(10)})
    service.always["get_list_page"] = throttled()

    with pytest.raises(RetrievalError, match="Rate limited"):
        asyncio.run(_reader(service).fetch_membership(ListHandle(SOURCE_URI)))

    assert service.count("get_list_page") == 3


def test_repeated_cursor_ends_pagination() -> None:
    class StuckService(FakeListService):
        async def get_list_page(
            self, list_uri: str, *, limit: int, cursor: str | None = None
        ) -> ListPage:
            page = await super().get_list_page(list_uri, limit=limit, cursor=None)
            page.cursor = "same"
            return page

    service = StuckService(external_lists={SOURCE_URI: _subjects(5)})

    members = asyncio.run(_reader(service).fetch_membership(ListHandle(SOURCE_URI)))

    assert members == frozenset(_subjects(5))
    assert service.count("get_list_page") == 2
