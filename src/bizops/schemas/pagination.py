"""Opaque cursor paging for list endpoints (``page[after]``/``page[size]``).

A cursor is the urlsafe base64 of ``{"c": created_at, "i": id}`` for the
last row of the previous page. Rows are read in (created_at, id) order,
ascending by default or newest-first with ``newest_first=True``.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from pydantic import BaseModel
from sqlalchemy import Select, and_, or_


class PaginationMeta(BaseModel):
    has_next: bool
    has_prev: bool


def encode_cursor(created_at: datetime, row_id: str) -> str:
    raw = json.dumps({"c": created_at.isoformat(), "i": row_id}).encode()
    return base64.urlsafe_b64encode(raw).decode()


def decode_cursor(cursor: str) -> tuple[datetime, str]:
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()))
        return datetime.fromisoformat(payload["c"]), str(payload["i"])
    except (ValueError, KeyError, TypeError) as exc:
        raise ValueError(f"Invalid pagination cursor: {cursor}") from exc


def apply_cursor(
    query: Select, model: Any, after: str | None, page_size: int, newest_first: bool = False
) -> Select:
    """Order by (created_at, id), skip past ``after`` and fetch one extra row."""
    created, row_id = model.created_at, model.id
    if after:
        at, last_id = decode_cursor(after)
        if newest_first:
            query = query.where(or_(created < at, and_(created == at, row_id < last_id)))
        else:
            query = query.where(or_(created > at, and_(created == at, row_id > last_id)))
    if newest_first:
        query = query.order_by(created.desc(), row_id.desc())
    else:
        query = query.order_by(created.asc(), row_id.asc())
    return query.limit(page_size + 1)


def split_page(rows: Sequence[Any], page_size: int, after: str | None) -> tuple[list, PaginationMeta]:
    rows = list(rows)
    meta = PaginationMeta(has_next=len(rows) > page_size, has_prev=after is not None)
    return rows[:page_size], meta


def page_links(url: str, rows: Sequence[Any], meta: PaginationMeta, page_size: int) -> dict[str, str]:
    base_url = url.split("?", 1)[0]
    links = {"first": f"{base_url}?page[size]={page_size}"}
    if meta.has_next and rows:
        cursor = encode_cursor(rows[-1].created_at, str(rows[-1].id))
        links["next"] = f"{base_url}?page[after]={cursor}&page[size]={page_size}"
    return links
