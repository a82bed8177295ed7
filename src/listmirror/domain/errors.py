"""Error taxonomy of the reconciliation engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .types import FailureKind

if TYPE_CHECKING:
    from .types import ReconciliationSummary, Subject


class RemoteCallError(RuntimeError):
    """Raised by a list service when a remote call fails.

    The ``kind`` is decided once, where the response is interpreted, so that
    callers never need to inspect messages or status codes.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: FailureKind = FailureKind.OTHER,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.retry_after = retry_after


class ReconciliationError(RuntimeError):
    """Base class for errors that end a reconciliation run."""


class RetrievalError(ReconciliationError):
    """A list membership read could not complete."""


class ResolutionError(ReconciliationError):
    """The mirror list could not be found or created."""


class ThrottleExhausted(ReconciliationError):
    """Sustained rate limiting; the run stops early but this is not a defect.

    The orchestrator attaches the partial ``summary`` before propagating.
    """

    def __init__(self, message: str, *, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.summary: ReconciliationSummary | None = None


class PerItemError(ReconciliationError):
    """A single addition or removal failed; logged and absorbed by the orchestrator."""

    def __init__(self, subject: Subject, action: str, cause: BaseException | None) -> None:
        super().__init__(f"Could not {action} {subject}: {cause}")
        self.subject = subject
        self.action = action
        self.cause = cause
