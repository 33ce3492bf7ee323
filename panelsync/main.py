"""FastAPI application entry-point."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from panelsync import __version__
from panelsync.exceptions import PanelError, ReconciliationError
from panelsync.models.responses import ErrorResponse
from panelsync.routers import email, health, packages, servers, users
from panelsync.services import server_registry
from panelsync.utils.logging import get_logger, setup_logging

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    setup_logging()
    server_registry.load_from_settings()
    yield


app = FastAPI(
    title="panelsync",
    description="DirectAdmin integration and reconciliation service",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(PanelError)
async def panel_error_handler(request: Request, exc: PanelError) -> JSONResponse:
    """Map typed integration errors to HTTP; messages are passed through verbatim."""
    body = ErrorResponse(detail=exc.message)
    if isinstance(exc, ReconciliationError):
        body.outcome = exc.result.outcome
        body.data = exc.result.data or None
    log.warning(
        "api.error",
        path=request.url.path,
        error=type(exc).__name__,
        detail=exc.message,
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=body.model_dump(mode="json", exclude_none=True),
    )


app.include_router(health.router)
app.include_router(servers.router)
app.include_router(packages.router)
app.include_router(users.router)
app.include_router(email.router)
