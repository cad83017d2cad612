"""JSON:API envelopes shared by every bizops endpoint.

Mutations are posted as ``{"data": {"type": ..., "attributes": {...}}}``.
Responses carry ``{"data": {"type", "id", "attributes"}}`` or a list of
those, with aggregates (stats, summaries, totals) under ``meta`` and
cursor links under ``links``. Live-feed events put the same attribute
dict in their ``data`` field, so a client can apply an event to a row it
already rendered.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class JSONAPIRequestData(BaseModel, Generic[T]):
    type: str
    attributes: T


class JSONAPIRequest(BaseModel, Generic[T]):
    data: JSONAPIRequestData[T]


class JSONAPIResource(BaseModel):
    type: str
    id: str
    attributes: dict[str, Any]


class JSONAPISingleResponse(BaseModel):
    data: JSONAPIResource
    meta: dict[str, Any] | None = None


class JSONAPIListResponse(BaseModel):
    data: list[JSONAPIResource]
    meta: dict[str, Any] | None = None
    links: dict[str, Any] | None = None
