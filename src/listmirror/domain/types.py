"""Value types shared by the reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

type Subject = str
"""An account identity (a DID). Two subjects are the same only if the strings are equal."""

type MembershipSet = frozenset[Subject]

LIST_COLLECTION = "app.bsky.graph.list"
LISTITEM_COLLECTION = "app.bsky.graph.listitem"
MODLIST_PURPOSE = "app.bsky.graph.defs#modlist"

_AT_SCHEME = "at://"


@dataclass(frozen=True, slots=True)
class ListHandle:
    """Immutable reference to a remote list, identified by its ``at://`` record URI."""

    uri: str

    def __post_init__(self) -> None:
        parts = self.uri.removeprefix(_AT_SCHEME).split("/")
        if not self.uri.startswith(_AT_SCHEME) or len(parts) != 3 or not all(parts):  # noqa: PLR2004
            raise ValueError(f"Not a list record URI: {self.uri!r}")

    @property
    def repo(self) -> str:
        return self.uri.removeprefix(_AT_SCHEME).split("/")[0]

    @property
    def record_key(self) -> str:
        return record_key_from_uri(self.uri)


def record_key_from_uri(uri: str) -> str:
    """Return the trailing record key of an ``at://repo/collection/rkey`` URI."""

    key = uri.rstrip("/").rsplit("/", 1)[-1]
    if not key or key == uri:
        raise ValueError(f"Cannot derive a record key from {uri!r}")
    return key


@dataclass(frozen=True, slots=True)
class MembershipDiff:
    to_add: MembershipSet
    to_remove: MembershipSet

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


class MutationOutcome(StrEnum):
    APPLIED = "applied"
    ALREADY_IN_DESIRED_STATE = "already-in-desired-state"
    FAILED_PERMANENTLY = "failed-permanently"
    SKIPPED_THROTTLED = "skipped-due-to-throttle-exhaustion"


class FailureKind(StrEnum):
    """Closed set of failure signatures a remote call can produce."""

    DUPLICATE = "duplicate"
    NOT_FOUND = "not-found"
    RATE_LIMITED = "rate-limited"
    OTHER = "other"


@dataclass(slots=True)
class ReconciliationSummary:
    """Counts of what a run did; items an abort left unattempted count as skipped."""

    added: int = 0
    removed: int = 0
    unchanged: int = 0
    failed: int = 0
    skipped: int = 0
    aborted: bool = False
    mirror: ListHandle | None = field(default=None, compare=False)

    def record(self, outcome: MutationOutcome, *, removal: bool) -> None:
        if outcome is MutationOutcome.APPLIED:
            if removal:
                self.removed += 1
            else:
                self.added += 1
        elif outcome is MutationOutcome.ALREADY_IN_DESIRED_STATE:
            self.unchanged += 1
        elif outcome is MutationOutcome.FAILED_PERMANENTLY:
            self.failed += 1
        else:
            self.skipped += 1
