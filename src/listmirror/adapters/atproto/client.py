"""XRPC client for the Bluesky list and record endpoints."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Self

import httpx
from pydantic import BaseModel, ValidationError

from listmirror.adapters.http_resilience import ResilientClient
from listmirror.domain.errors import RemoteCallError
from listmirror.domain.ports import ListMember, ListPage, RecordPage, RemoteRecord

from .errors import remote_error_from_response
from .schema import CreateRecordResponse, GetListResponse, ListRecordsResponse, SessionPayload

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from listmirror.config.bluesky import BlueskyConfig
    from listmirror.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

CREATE_SESSION = "com.atproto.server.createSession"
GET_LIST = "app.bsky.graph.getList"
LIST_RECORDS = "com.atproto.repo.listRecords"
CREATE_RECORD = "com.atproto.repo.createRecord"
DELETE_RECORD = "com.atproto.repo.deleteRecord"


class AtprotoSessionError(RuntimeError):
    """Raised when the account cannot log in or a call is made without a session."""


class AtprotoClient:
    """List service backed by a Bluesky PDS, scoped to the logged-in account.

    Use as an async context manager and call :meth:`login` before anything else.
    """

    def __init__(
        self,
        *,
        config: BlueskyConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or ResilientClient
        self._http: ResilientClient | None = None
        self._session: SessionPayload | None = None

    async def __aenter__(self) -> Self:
        self._http = self._client_factory(self._config.resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
        self._session = None

    @property
    def account(self) -> str:
        if self._session is None:
            raise AtprotoSessionError("Not logged in")
        return self._session.did

    async def login(self) -> SessionPayload:
        try:
            payload = await self._call(
                "POST",
                CREATE_SESSION,
                json={"identifier": self._config.identifier, "password": self._config.password},
                authenticated=False,
            )
        except RemoteCallError as exc:
            raise AtprotoSessionError(
                f"Login as {self._config.identifier} failed: {exc}"
            ) from exc
        session = _validate(SessionPayload, payload, CREATE_SESSION)
        self._require_http().set_header("Authorization", f"Bearer {session.access_jwt}")
        self._session = session
        log.info("Logged in as %s (%s)", session.handle, session.did)
        return session

    async def get_list_page(
        self,
        list_uri: str,
        *,
        limit: int,
        cursor: str | None = None,
    ) -> ListPage:
        params: dict[str, str | int] = {"list": list_uri, "limit": limit}
        if cursor:
            params["cursor"] = cursor
        payload = await self._call("GET", GET_LIST, params=params)
        response = _validate(GetListResponse, payload, GET_LIST)
        return ListPage(
            members=[ListMember(subject=item.subject.did) for item in response.items],
            cursor=response.cursor,
        )

    async def list_records_page(
        self,
        collection: str,
        *,
        limit: int,
        cursor: str | None = None,
    ) -> RecordPage:
        params: dict[str, str | int] = {
            "repo": self.account,
            "collection": collection,
            "limit": limit,
        }
        if cursor:
            params["cursor"] = cursor
        payload = await self._call("GET", LIST_RECORDS, params=params)
        response = _validate(ListRecordsResponse, payload, LIST_RECORDS)
        return RecordPage(
            records=[
                RemoteRecord(uri=record.uri, value=record.value) for record in response.records
            ],
            cursor=response.cursor,
        )

    async def create_record(self, collection: str, record: Mapping[str, object]) -> str:
        payload = await self._call(
            "POST",
            CREATE_RECORD,
            json={"repo": self.account, "collection": collection, "record": dict(record)},
        )
        return _validate(CreateRecordResponse, payload, CREATE_RECORD).uri

    async def delete_record(self, collection: str, rkey: str) -> None:
        await self._call(
            "POST",
            DELETE_RECORD,
            json={"repo": self.account, "collection": collection, "rkey": rkey},
        )

    def _require_http(self) -> ResilientClient:
        if self._http is None:
            raise AtprotoSessionError("AtprotoClient used outside of 'async with'")
        return self._http

    async def _call(
        self,
        method: str,
        nsid: str,
        *,
        params: Mapping[str, str | int] | None = None,
        json: object = None,
        authenticated: bool = True,
    ) -> dict[str, object]:
        http = self._require_http()
        if authenticated and self._session is None:
            raise AtprotoSessionError(f"{nsid} requires a session; call login() first")

        try:
            if method == "GET":
                response = await http.get(f"/xrpc/{nsid}", params=params)
            else:
                response = await http.post(f"/xrpc/{nsid}", json=json)
        except httpx.HTTPError as exc:
            raise RemoteCallError(f"{nsid} failed: {exc}") from exc

        if response.is_error:
            error = remote_error_from_response(nsid, response)
            log.debug("%s -> %s (%s)", nsid, response.status_code, error.kind)
            raise error

        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteCallError(f"{nsid} returned a non-JSON body") from exc
        if not isinstance(payload, dict):
            raise RemoteCallError(f"Unexpected {nsid} response payload")
        return payload


def _validate[M: BaseModel](model: type[M], payload: object, nsid: str) -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise RemoteCallError(f"Unexpected {nsid} response payload: {exc}") from exc
