"""JSON envelopes for the search API.

Success:
    {"success": true, "data": [...], "meta": {...}}
Configuration failure:
    {"success": false, "error": "Configuration Error", "message", "code", "redirectTo"}
Any other failure:
    {"success": false, "error", "message"}
"""

from __future__ import annotations

from typing import Any

from aggregarr.domain.entities import (
    AggregatedSearchResponse,
    ConfigError,
    SearchQuery,
    SearchResult,
)


def render_result(result: SearchResult) -> dict[str, Any]:
    """Serialize one result; ``postedAt`` is ISO 8601 UTC."""
    return {
        "id": result.id,
        "title": result.title,
        "sizeBytes": result.size_bytes,
        "category": result.category,
        "group": result.group,
        "postedAt": result.posted_at.isoformat().replace("+00:00", "Z"),
        "sourceId": result.source_id,
        "indexerName": result.indexer_name,
    }


def render_search_response(
    response: AggregatedSearchResponse,
    *,
    query: SearchQuery,
    search_time: float,
) -> dict[str, Any]:
    return {
        "success": True,
        "data": [render_result(r) for r in response.results],
        "meta": {
            "query": query.text,
            "category": query.category,
            "limit": query.limit,
            "offset": query.offset,
            "total": response.total,
            "totalResults": len(response.results),
            "searchTime": round(search_time, 3),
            "indexers": response.indexers,
            "failedIndexers": response.failed_indexers,
        },
    }


def render_config_error(error: ConfigError) -> dict[str, Any]:
    return {
        "success": False,
        "error": "Configuration Error",
        "message": error.message,
        "code": error.code,
        "redirectTo": error.redirect_to,
    }


def render_error(error: str, message: str) -> dict[str, Any]:
    return {"success": False, "error": error, "message": message}
