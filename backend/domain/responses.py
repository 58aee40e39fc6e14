"""
Response envelope shared by the routers.

    success: {"success": true, "data": ..., "meta": {...}}
    failure: {"success": false, "error": {"code", "message", "details"}}  (main.py handlers)
"""
from typing import Any


def page_meta(limit: int, offset: int, total: int) -> dict[str, Any]:
    return {
        "limit": limit,
        "offset": offset,
        "total": total,
        "hasMore": offset + limit < total,
    }


def success_response(data: Any, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    """Wrap a payload; `meta` is omitted when empty."""
    body = {"success": True, "data": data}
    if meta:
        body["meta"] = meta
    return body


def paginated_response(
    items: list[Any],
    limit: int,
    offset: int = 0,
    total: int | None = None,
) -> dict[str, Any]:
    """One page of `items`; `total` defaults to the page length."""
    return success_response(
        data=items,
        meta=page_meta(limit, offset, len(items) if total is None else total),
    )
