"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from aggregarr.infrastructure.config import AppConfig
from aggregarr.infrastructure.graceful_shutdown import GracefulShutdown
from aggregarr.interfaces.app_state import AppState
from aggregarr.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration ONLY, NO resource initialization.

    Resources (HTTP client, indexer client, use cases) are created in lifespan().
    """
    app = FastAPI(
        title="Aggregarr",
        description="Aggregated Newznab indexer search",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config
    app.state.graceful_shutdown = GracefulShutdown()

    from aggregarr.interfaces.api.search.router import router as search_router

    app.include_router(search_router, prefix="/api/v1")

    @app.get("/api/v1/healthz")
    async def healthz() -> dict[str, str]:
        """Liveness probe: returns 200 as long as the process is running."""
        return {"status": "ok"}

    @app.get("/api/v1/readyz")
    async def readyz() -> Response:
        """Readiness probe: 200 after startup complete, 503 otherwise."""
        gs: GracefulShutdown = app.state.graceful_shutdown
        if gs.is_ready:
            return JSONResponse({"status": "ready"}, status_code=200)
        return JSONResponse({"status": "not_ready"}, status_code=503)

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        gs: GracefulShutdown = app.state.graceful_shutdown
        gs.request_started()
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            gs.request_finished()
            duration_ms = (time.perf_counter() - start) * 1000.0

            # The query string carries no secrets (API keys stay server-side).
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                query=str(request.url.query),
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
