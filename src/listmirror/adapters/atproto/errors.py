"""Translate failed XRPC responses into tagged remote-call errors."""

from __future__ import annotations

import time
from email.utils import parsedate_to_datetime
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from listmirror.domain.errors import RemoteCallError
from listmirror.domain.types import FailureKind

from .schema import XrpcErrorPayload

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

log = getLogger(__name__)

_RATE_LIMIT_ERRORS = frozenset({"RateLimitExceeded"})
_NOT_FOUND_ERRORS = frozenset({"RecordNotFound", "NotFound", "ListNotFound"})
_DUPLICATE_MARKERS = ("duplicate", "already exists")
_NOT_FOUND_MARKERS = ("not found", "could not locate record")


def parse_error_payload(response: httpx.Response) -> XrpcErrorPayload:
    try:
        return XrpcErrorPayload.model_validate(response.json())
    except (ValueError, ValidationError):
        return XrpcErrorPayload(message=response.text or None)


def classify_failure(status_code: int, payload: XrpcErrorPayload) -> FailureKind:
    """Decide which failure signature a response carries."""

    error = payload.error or ""
    message = (payload.message or "").lower()

    if status_code == 429 or error in _RATE_LIMIT_ERRORS:  # noqa: PLR2004
        return FailureKind.RATE_LIMITED
    if status_code == 409 or any(marker in message for marker in _DUPLICATE_MARKERS):  # noqa: PLR2004
        return FailureKind.DUPLICATE
    if (
        status_code == 404  # noqa: PLR2004
        or error in _NOT_FOUND_ERRORS
        or any(marker in message for marker in _NOT_FOUND_MARKERS)
    ):
        return FailureKind.NOT_FOUND
    return FailureKind.OTHER


def retry_after_seconds(
    response: httpx.Response,
    *,
    now: Callable[[], float] = time.time,
) -> float | None:
    """Seconds the server asks us to wait, from ``Retry-After`` or ``ratelimit-reset``."""

    retry_after = response.headers.get("retry-after")
    if retry_after:
        try:
            return max(float(retry_after), 0.0)
        except ValueError:
            try:
                return max(parsedate_to_datetime(retry_after).timestamp() - now(), 0.0)
            except (TypeError, ValueError):
                log.debug("Ignoring unparsable Retry-After header: %r", retry_after)

    reset = response.headers.get("ratelimit-reset")
    if reset:
        try:
            return max(float(reset) - now(), 0.0)
        except ValueError:
            log.debug("Ignoring unparsable ratelimit-reset header: %r", reset)
    return None


def remote_error_from_response(
    nsid: str,
    response: httpx.Response,
    *,
    now: Callable[[], float] = time.time,
) -> RemoteCallError:
    payload = parse_error_payload(response)
    kind = classify_failure(response.status_code, payload)
    detail = payload.message or payload.error or response.reason_phrase
    return RemoteCallError(
        f"{nsid} failed with HTTP {response.status_code}: {detail}",
        kind=kind,
        status_code=response.status_code,
        retry_after=retry_after_seconds(response, now=now)
        if kind is FailureKind.RATE_LIMITED
        else None,
    )
