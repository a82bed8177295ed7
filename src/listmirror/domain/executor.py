"""Retry-on-throttle wrapper for single remote calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import RemoteCallError, ThrottleExhausted
from .types import FailureKind, MutationOutcome

if TYPE_CHECKING:
    from collections.abc import Collection

    from listmirror.config.sync import SyncConfig

log = getLogger(__name__)

type Operation[T] = Callable[[], Awaitable[T]]
type Sleep = Callable[[float], Awaitable[None]]

IDEMPOTENT_ADD: frozenset[FailureKind] = frozenset({FailureKind.DUPLICATE})
IDEMPOTENT_REMOVE: frozenset[FailureKind] = frozenset({FailureKind.NOT_FOUND})


@dataclass(frozen=True, slots=True)
class ThrottleState:
    """Number of rate-limit responses seen in a row, carried from call to call."""

    consecutive: int = 0

    def bumped(self) -> ThrottleState:
        return ThrottleState(self.consecutive + 1)


@dataclass(frozen=True, slots=True)
class OperationResult[T]:
    outcome: MutationOutcome
    state: ThrottleState
    value: T | None = None
    error: RemoteCallError | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome in (MutationOutcome.APPLIED, MutationOutcome.ALREADY_IN_DESIRED_STATE)


class RateLimitedExecutor:
    """Run one remote call, retrying only while the service reports throttling.

    * success resets the throttle streak and yields ``APPLIED``
    * a failure whose kind is in ``tolerate`` means the desired state already
      holds and yields ``ALREADY_IN_DESIRED_STATE``
    * ``RATE_LIMITED`` waits and retries the same call until the streak reaches
      ``max_consecutive_throttles``, then raises :class:`ThrottleExhausted`
    * anything else is returned at once as ``FAILED_PERMANENTLY``
    """

    def __init__(
        self,
        *,
        max_consecutive_throttles: int = 3,
        backoff_seconds: float = 5.0,
        max_backoff_seconds: float = 60.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_consecutive_throttles < 1:
            raise ValueError("max_consecutive_throttles must be at least 1")
        self.max_consecutive_throttles = max_consecutive_throttles
        self.backoff_seconds = backoff_seconds
        self.max_backoff_seconds = max(max_backoff_seconds, backoff_seconds)
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: SyncConfig, *, sleep: Sleep = asyncio.sleep) -> RateLimitedExecutor:
        return cls(
            max_consecutive_throttles=config.max_consecutive_throttles,
            backoff_seconds=config.throttle_backoff_seconds,
            max_backoff_seconds=config.max_backoff_seconds,
            sleep=sleep,
        )

    async def execute[T](
        self,
        operation: Operation[T],
        state: ThrottleState | None = None,
        *,
        tolerate: Collection[FailureKind] = (),
        label: str = "remote call",
    ) -> OperationResult[T]:
        current = state or ThrottleState()
        while True:
            try:
                value = await operation()
            except RemoteCallError as exc:
                if exc.kind in tolerate:
                    log.debug("%s: already in desired state (%s)", label, exc.kind)
                    return OperationResult(MutationOutcome.ALREADY_IN_DESIRED_STATE, ThrottleState())
                if exc.kind is not FailureKind.RATE_LIMITED:
                    return OperationResult(MutationOutcome.FAILED_PERMANENTLY, current, error=exc)

                current = current.bumped()
                if current.consecutive >= self.max_consecutive_throttles:
                    raise ThrottleExhausted(
                        f"{label}: rate limited {current.consecutive} times in a row",
                        attempts=current.consecutive,
                    ) from exc
                delay = self._backoff_for(exc)
                log.info(
                    "%s: rate limited (%d/%d), retrying in %.1fs",
                    label,
                    current.consecutive,
                    self.max_consecutive_throttles,
                    delay,
                )
                await self._sleep(delay)
                continue

            return OperationResult(MutationOutcome.APPLIED, ThrottleState(), value=value)

    def _backoff_for(self, exc: RemoteCallError) -> float:
        if exc.retry_after is None:
            return self.backoff_seconds
        return min(max(exc.retry_after, self.backoff_seconds), self.max_backoff_seconds)
