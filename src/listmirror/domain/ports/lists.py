"""Port for the remote list-and-record service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from listmirror.domain.types import Subject


@dataclass(frozen=True, slots=True)
class ListMember:
    subject: Subject


@dataclass(slots=True)
class ListPage:
    """One page of list membership as returned by the service."""

    members: list[ListMember] = field(default_factory=list)
    cursor: str | None = None


@dataclass(frozen=True, slots=True)
class RemoteRecord:
    uri: str
    value: Mapping[str, object]


@dataclass(slots=True)
class RecordPage:
    records: list[RemoteRecord] = field(default_factory=list)
    cursor: str | None = None


@runtime_checkable
class ListService(Protocol):
    """Remote list service scoped to an authenticated account.

    Every method raises :class:`listmirror.domain.errors.RemoteCallError` on failure.
    """

    @property
    def account(self) -> str: ...

    async def get_list_page(
        self,
        list_uri: str,
        *,
        limit: int,
        cursor: str | None = None,
    ) -> ListPage: ...

    async def list_records_page(
        self,
        collection: str,
        *,
        limit: int,
        cursor: str | None = None,
    ) -> RecordPage: ...

    async def create_record(self, collection: str, record: Mapping[str, object]) -> str: ...

    async def delete_record(self, collection: str, rkey: str) -> None: ...
