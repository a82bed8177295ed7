"""Public interface for the AT Protocol adapter."""

from __future__ import annotations

from .client import AtprotoClient, AtprotoSessionError
from .errors import classify_failure, remote_error_from_response
from .schema import GetListResponse, ListRecordsResponse, SessionPayload

__all__ = [
    "AtprotoClient",
    "AtprotoSessionError",
    "GetListResponse",
    "ListRecordsResponse",
    "SessionPayload",
    "classify_failure",
    "remote_error_from_response",
]
