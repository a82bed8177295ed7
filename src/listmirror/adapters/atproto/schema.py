"""Pydantic models describing the XRPC payloads used for list mirroring."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AtprotoBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SessionPayload(AtprotoBaseModel):
    did: str
    handle: str
    access_jwt: str = Field(alias="accessJwt")
    refresh_jwt: str | None = Field(default=None, alias="refreshJwt")


class ProfileView(AtprotoBaseModel):
    did: str
    handle: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")


class ListItemView(AtprotoBaseModel):
    uri: str
    subject: ProfileView


class ListView(AtprotoBaseModel):
    uri: str
    name: str | None = None
    purpose: str | None = None


class GetListResponse(AtprotoBaseModel):
    cursor: str | None = None
    list_view: ListView | None = Field(default=None, alias="list")
    items: list[ListItemView] = Field(default_factory=list)


class RecordPayload(AtprotoBaseModel):
    uri: str
    cid: str | None = None
    value: dict[str, object] = Field(default_factory=dict)


class ListRecordsResponse(AtprotoBaseModel):
    cursor: str | None = None
    records: list[RecordPayload] = Field(default_factory=list)


class CreateRecordResponse(AtprotoBaseModel):
    uri: str
    cid: str | None = None


class XrpcErrorPayload(AtprotoBaseModel):
    error: str | None = None
    message: str | None = None
