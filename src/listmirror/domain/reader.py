"""Complete membership retrieval for a remote list."""

from __future__ import annotations

from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import RetrievalError, ThrottleExhausted

if TYPE_CHECKING:
    from .executor import RateLimitedExecutor
    from .ports import ListService
    from .types import ListHandle, MembershipSet, Subject

log = getLogger(__name__)


class ListReader:
    def __init__(
        self,
        service: ListService,
        executor: RateLimitedExecutor,
        *,
        page_size: int = 100,
    ) -> None:
        self._service = service
        self._executor = executor
        self._page_size = page_size

    async def fetch_membership(self, handle: ListHandle) -> MembershipSet:
        """Return every subject on the list, following cursors until none is left.

        Either the whole set comes back or :class:`RetrievalError` is raised; a
        partially read list is never returned.
        """

        members: set[Subject] = set()
        cursor: str | None = None
        state = None
        pages = 0
        while True:
            try:
                result = await self._executor.execute(
                    partial(
                        self._service.get_list_page,
                        handle.uri,
                        limit=self._page_size,
                        cursor=cursor,
                    ),
                    state,
                    label=f"read {handle.uri}",
                )
            except ThrottleExhausted as exc:
                raise RetrievalError(f"Rate limited while reading {handle.uri}") from exc
            if result.error is not None or result.value is None:
                raise RetrievalError(
                    f"Could not read page {pages + 1} of {handle.uri}: {result.error}"
                ) from result.error

            state = result.state
            page = result.value
            pages += 1
            members.update(member.subject for member in page.members)

            if not page.cursor or page.cursor == cursor:
                break
            cursor = page.cursor

        log.info("Read %d member(s) of %s in %d page(s)", len(members), handle.uri, pages)
        return frozenset(members)
