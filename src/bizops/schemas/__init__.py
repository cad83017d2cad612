from bizops.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)

__all__ = [
    "JSONAPIListResponse",
    "JSONAPIRequest",
    "JSONAPIResource",
    "JSONAPISingleResponse",
]
