"""Health-check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from panelsync import __version__, deps
from panelsync.auth import require_api_key
from panelsync.exceptions import PanelError
from panelsync.models.responses import HealthResponse, ServerHealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def service_health() -> HealthResponse:
    """Basic liveness check (no auth required)."""
    return HealthResponse(status="ok", version=__version__)


@router.get(
    "/servers/{server_id}/health",
    response_model=ServerHealthResponse,
    dependencies=[Depends(require_api_key)],
)
async def server_health(server_id: str) -> ServerHealthResponse:
    """Check that the stored credentials are accepted by DirectAdmin."""
    service = deps.service_for(server_id)
    try:
        details = await service.verify_login()
        return ServerHealthResponse(
            server_id=server_id,
            reachable=True,
            username=details.get("username"),
            domains=details.get("domains", []),
        )
    except PanelError as exc:
        return ServerHealthResponse(
            server_id=server_id,
            reachable=False,
            error=str(exc),
        )
