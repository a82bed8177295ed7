"""Find or create the mirror moderation list."""

from __future__ import annotations

from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from listmirror.config.mirror import DEFAULT_MIRROR_DESCRIPTION

from .errors import RemoteCallError, ResolutionError, ThrottleExhausted
from .records import is_modlist_named, modlist_record, scan_records, utcnow
from .types import LIST_COLLECTION, ListHandle, MutationOutcome

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from listmirror.config.sync import DuplicateListPolicy

    from .executor import RateLimitedExecutor
    from .ports import ListService, RemoteRecord

log = getLogger(__name__)


class MirrorResolver:
    def __init__(
        self,
        service: ListService,
        executor: RateLimitedExecutor,
        *,
        description: str = DEFAULT_MIRROR_DESCRIPTION,
        page_size: int = 100,
        on_duplicate_lists: DuplicateListPolicy = "first",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._service = service
        self._executor = executor
        self._description = description
        self._page_size = page_size
        self._on_duplicate_lists = on_duplicate_lists
        self._clock = clock

    async def resolve_or_create(self, desired_name: str) -> ListHandle:
        existing = await self._find(desired_name)
        if existing is not None:
            log.info("Found existing mirror list: %s", existing.uri)
            return existing
        return await self._create(desired_name)

    async def _find(self, desired_name: str) -> ListHandle | None:
        matches: list[RemoteRecord] = []
        try:
            async for record in scan_records(
                self._service,
                self._executor,
                LIST_COLLECTION,
                page_size=self._page_size,
            ):
                if is_modlist_named(record, desired_name):
                    matches.append(record)
        except (RemoteCallError, ThrottleExhausted) as exc:
            raise ResolutionError(
                f"Could not enumerate lists of {self._service.account}: {exc}"
            ) from exc

        if not matches:
            return None
        if len(matches) > 1:
            others = ", ".join(record.uri for record in matches[1:])
            if self._on_duplicate_lists == "fail":
                raise ResolutionError(
                    f"{len(matches)} moderation lists are named {desired_name!r}: "
                    f"{matches[0].uri}, {others}"
                )
            log.warning(
                "Several moderation lists are named %r; using %s and ignoring %s",
                desired_name,
                matches[0].uri,
                others,
            )
        return _handle_from_uri(matches[0].uri)

    async def _create(self, desired_name: str) -> ListHandle:
        record = modlist_record(desired_name, self._description, self._clock())
        try:
            result = await self._executor.execute(
                partial(self._service.create_record, LIST_COLLECTION, record),
                label=f"create list {desired_name!r}",
            )
        except ThrottleExhausted as exc:
            raise ResolutionError(f"Rate limited while creating {desired_name!r}") from exc
        if result.outcome is not MutationOutcome.APPLIED or result.value is None:
            raise ResolutionError(
                f"Could not create mirror list {desired_name!r}: {result.error}"
            ) from result.error

        handle = _handle_from_uri(result.value)
        log.info("Created new mirror list: %s", handle.uri)
        return handle


def _handle_from_uri(uri: str) -> ListHandle:
    try:
        return ListHandle(uri)
    except ValueError as exc:
        raise ResolutionError(str(exc)) from exc
