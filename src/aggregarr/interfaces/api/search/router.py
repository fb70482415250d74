from __future__ import annotations

import time
from typing import cast

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from aggregarr.domain.entities import (
    DEFAULT_LIMIT,
    ConfigError,
    SearchBadRequest,
    SearchQuery,
)
from aggregarr.infrastructure.common import to_int
from aggregarr.interfaces.api.search.presenter import (
    render_config_error,
    render_error,
    render_search_response,
)
from aggregarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["search"])


def _is_prod(state: AppState) -> bool:
    return state.config.environment == "prod"


def _json(payload: dict, *, status_code: int) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code)


def _int_param(raw: str | None, *, name: str, default: int) -> int:
    if raw is None or not raw.strip():
        return default
    value = to_int(raw)
    if value is None:
        raise SearchBadRequest(f"{name} must be an integer")
    return value


@router.get("/search")
async def search(
    request: Request,
    q: str | None = Query(None, description="Search text"),
    cat: str | None = Query(None, description="Newznab category code"),
    limit: str | None = Query(None, description="Page size (1-100)"),
    offset: str | None = Query(None, description="Results to skip"),
) -> JSONResponse:
    state = cast(AppState, request.app.state)

    if not q or not q.strip():
        return _json(
            render_error("Search query is required", "Missing query parameter 'q'"),
            status_code=400,
        )

    t0 = time.perf_counter()
    try:
        query = SearchQuery(
            text=q.strip(),
            category=(cat or "").strip() or None,
            limit=_int_param(limit, name="limit", default=DEFAULT_LIMIT),
            offset=_int_param(offset, name="offset", default=0),
        )
        response = await state.search_uc.execute(query)

    except SearchBadRequest as e:
        return _json(render_error("Bad Request", str(e)), status_code=400)

    except ConfigError as e:
        log.warning("search_config_error", code=e.code, message=e.message)
        return _json(render_config_error(e), status_code=400)

    except Exception as e:
        log.exception("search_unhandled_error", query=q)
        message = "Internal error" if _is_prod(state) else str(e)
        return _json(render_error("Search failed", message), status_code=500)

    return _json(
        render_search_response(
            response, query=query, search_time=time.perf_counter() - t0
        ),
        status_code=200,
    )


@router.get("/indexers")
async def list_indexers(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)

    try:
        indexers = state.indexers_uc.execute()
    except ConfigError as e:
        return _json(render_config_error(e), status_code=400)

    return _json({"indexers": indexers}, status_code=200)
