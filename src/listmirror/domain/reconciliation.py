"""Mirror one list's membership into another."""

from __future__ import annotations

import asyncio
from contextlib import aclosing
from dataclasses import dataclass, field
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from listmirror.config.mirror import MirrorConfig
from listmirror.config.sync import SyncConfig

from .batching import BatchRunner
from .differ import diff
from .errors import PerItemError, RemoteCallError, ThrottleExhausted
from .executor import IDEMPOTENT_ADD, IDEMPOTENT_REMOVE, RateLimitedExecutor, ThrottleState
from .reader import ListReader
from .records import is_listitem_for, listitem_record, scan_records, utcnow
from .resolver import MirrorResolver
from .types import (
    LISTITEM_COLLECTION,
    ListHandle,
    MutationOutcome,
    ReconciliationSummary,
    record_key_from_uri,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from .executor import OperationResult, Sleep
    from .ports import ListService, RemoteRecord
    from .types import Subject

log = getLogger(__name__)


@dataclass(slots=True)
class _RunState:
    """Per-run bookkeeping, created by ``run`` and handed to every item worker.

    All workers share one event loop, so the updates between awaits never interleave.
    """

    mirror: ListHandle
    summary: ReconciliationSummary
    throttle: ThrottleState = field(default_factory=ThrottleState)
    finished: set[tuple[bool, Subject]] = field(default_factory=set)

    def finish(self, subject: Subject, outcome: MutationOutcome, *, removal: bool) -> None:
        self.summary.record(outcome, removal=removal)
        self.finished.add((removal, subject))
        if outcome is MutationOutcome.APPLIED:
            log.info("%s: %s", "Removed" if removal else "Added", subject)
        elif outcome is MutationOutcome.ALREADY_IN_DESIRED_STATE:
            log.debug("%s: %s", "Already absent" if removal else "Already present", subject)

    def skip_unfinished(self, subjects: Iterable[Subject], *, removal: bool) -> None:
        for subject in subjects:
            if (removal, subject) not in self.finished:
                self.summary.record(MutationOutcome.SKIPPED_THROTTLED, removal=removal)
                log.debug("Skipped %s: %s", "removal" if removal else "addition", subject)


class ReconciliationOrchestrator:
    """Drive one reconciliation run against a source list and its mirror.

    ``run`` resolves the mirror, reads both memberships, diffs them, then
    applies additions and removals in batches. :class:`RetrievalError` and
    :class:`ResolutionError` propagate as hard failures; :class:`ThrottleExhausted`
    propagates with the partial summary attached to it.
    """

    def __init__(
        self,
        service: ListService,
        *,
        mirror: MirrorConfig | None = None,
        sync: SyncConfig | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._service = service
        self._mirror_config = mirror or MirrorConfig()
        self._sync = sync or SyncConfig()
        self._clock = clock
        self._executor = RateLimitedExecutor.from_config(self._sync, sleep=sleep)
        self._reader = ListReader(service, self._executor, page_size=self._sync.page_size)
        self._resolver = MirrorResolver(
            service,
            self._executor,
            description=self._mirror_config.description,
            page_size=self._sync.page_size,
            on_duplicate_lists=self._sync.on_duplicate_lists,
            clock=clock,
        )
        self._batches = BatchRunner(
            batch_size=self._sync.batch_size,
            delay_seconds=self._sync.batch_delay_seconds,
            sleep=sleep,
        )

    async def run(self) -> ReconciliationSummary:
        mirror = await self._resolver.resolve_or_create(self._mirror_config.mirror_name)
        source_members = await self._reader.fetch_membership(
            ListHandle(self._mirror_config.source_list_uri)
        )
        mirror_members = await self._reader.fetch_membership(mirror)

        changes = diff(source_members, mirror_members)
        log.info(
            "Mirror %s: %d to add, %d to remove",
            mirror.uri,
            len(changes.to_add),
            len(changes.to_remove),
        )

        run = _RunState(mirror=mirror, summary=ReconciliationSummary(mirror=mirror))
        try:
            await self._batches.run(sorted(changes.to_add), partial(self._add, run))
            await self._batches.run(sorted(changes.to_remove), partial(self._remove, run))
        except ThrottleExhausted as exc:
            run.summary.aborted = True
            run.skip_unfinished(changes.to_add, removal=False)
            run.skip_unfinished(changes.to_remove, removal=True)
            exc.summary = run.summary
            log.warning(
                "Stopping early, rate limit persists: added=%d, removed=%d, skipped=%d",
                run.summary.added,
                run.summary.removed,
                run.summary.skipped,
            )
            raise

        log.info(
            "Sync complete: added=%d, removed=%d, unchanged=%d, failed=%d",
            run.summary.added,
            run.summary.removed,
            run.summary.unchanged,
            run.summary.failed,
        )
        return run.summary

    async def _add(self, run: _RunState, subject: Subject) -> None:
        record = listitem_record(subject, run.mirror, self._clock())
        result = await self._executor.execute(
            partial(self._service.create_record, LISTITEM_COLLECTION, record),
            run.throttle,
            tolerate=IDEMPOTENT_ADD,
            label=f"add {subject}",
        )
        self._settle(run, subject, result, removal=False)

    async def _remove(self, run: _RunState, subject: Subject) -> None:
        try:
            existing = await self._find_listitems(run, subject)
        except RemoteCallError as exc:
            self._fail(run, subject, exc, removal=True)
            return
        if not existing:
            run.finish(subject, MutationOutcome.ALREADY_IN_DESIRED_STATE, removal=True)
            return

        # a subject may have several listitem records; every one of them must go
        outcome = MutationOutcome.ALREADY_IN_DESIRED_STATE
        for record in existing:
            result = await self._executor.execute(
                partial(
                    self._service.delete_record,
                    LISTITEM_COLLECTION,
                    record_key_from_uri(record.uri),
                ),
                run.throttle,
                tolerate=IDEMPOTENT_REMOVE,
                label=f"remove {subject}",
            )
            run.throttle = result.state
            if result.outcome is MutationOutcome.FAILED_PERMANENTLY:
                self._fail(run, subject, result.error, removal=True)
                return
            if result.outcome is MutationOutcome.APPLIED:
                outcome = MutationOutcome.APPLIED
        run.finish(subject, outcome, removal=True)

    async def _find_listitems(self, run: _RunState, subject: Subject) -> list[RemoteRecord]:
        records = scan_records(
            self._service,
            self._executor,
            LISTITEM_COLLECTION,
            page_size=self._sync.page_size,
            state=run.throttle,
        )
        async with aclosing(records):
            return [
                record
                async for record in records
                if is_listitem_for(record, subject, run.mirror)
            ]

    def _settle(
        self,
        run: _RunState,
        subject: Subject,
        result: OperationResult[object],
        *,
        removal: bool,
    ) -> None:
        run.throttle = result.state
        if result.outcome is MutationOutcome.FAILED_PERMANENTLY:
            self._fail(run, subject, result.error, removal=removal)
            return
        run.finish(subject, result.outcome, removal=removal)

    def _fail(
        self,
        run: _RunState,
        subject: Subject,
        cause: RemoteCallError | None,
        *,
        removal: bool,
    ) -> None:
        error = PerItemError(subject, "remove" if removal else "add", cause)
        log.warning("%s", error)
        run.finish(subject, MutationOutcome.FAILED_PERMANENTLY, removal=removal)
