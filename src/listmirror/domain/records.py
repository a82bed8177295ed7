"""Record payloads and paginated record enumeration."""

from __future__ import annotations

from datetime import UTC, datetime
from functools import partial
from typing import TYPE_CHECKING

from .types import LIST_COLLECTION, LISTITEM_COLLECTION, MODLIST_PURPOSE

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from .executor import RateLimitedExecutor, ThrottleState
    from .ports import ListService, RemoteRecord
    from .types import ListHandle, Subject


def utcnow() -> datetime:
    return datetime.now(UTC)


def iso_timestamp(value: datetime) -> str:
    """Format as the service expects: UTC, millisecond precision, ``Z`` suffix."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def modlist_record(name: str, description: str, created_at: datetime) -> dict[str, object]:
    return {
        "$type": LIST_COLLECTION,
        "purpose": MODLIST_PURPOSE,
        "name": name,
        "description": description,
        "createdAt": iso_timestamp(created_at),
    }


def listitem_record(subject: Subject, mirror: ListHandle, created_at: datetime) -> dict[str, object]:
    return {
        "$type": LISTITEM_COLLECTION,
        "subject": subject,
        "list": mirror.uri,
        "createdAt": iso_timestamp(created_at),
    }


def is_modlist_named(record: RemoteRecord, name: str) -> bool:
    return record.value.get("name") == name and record.value.get("purpose") == MODLIST_PURPOSE


def is_listitem_for(record: RemoteRecord, subject: Subject, mirror: ListHandle) -> bool:
    return record.value.get("subject") == subject and record.value.get("list") == mirror.uri


async def scan_records(
    service: ListService,
    executor: RateLimitedExecutor,
    collection: str,
    *,
    page_size: int,
    state: ThrottleState | None = None,
) -> AsyncGenerator[RemoteRecord]:
    """Yield every record of ``collection`` owned by the account, page by page.

    Raises the service's ``RemoteCallError`` when a page cannot be read and
    lets ``ThrottleExhausted`` through.
    """

    cursor: str | None = None
    current = state
    while True:
        result = await executor.execute(
            partial(service.list_records_page, collection, limit=page_size, cursor=cursor),
            current,
            label=f"list {collection}",
        )
        if result.error is not None:
            raise result.error
        current = result.state
        page = result.value
        if page is None:
            return
        for record in page.records:
            yield record
        if not page.cursor or page.cursor == cursor:
            return
        cursor = page.cursor
