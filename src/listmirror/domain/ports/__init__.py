"""Domain port definitions for adapters."""

from __future__ import annotations

from .lists import ListMember, ListPage, ListService, RecordPage, RemoteRecord

__all__ = [
    "ListMember",
    "ListPage",
    "ListService",
    "RecordPage",
    "RemoteRecord",
]
