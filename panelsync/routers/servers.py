"""Registered DirectAdmin servers."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from panelsync import deps
from panelsync.auth import require_api_key
from panelsync.models.responses import StatusResponse
from panelsync.models.server import ServerSummary
from panelsync.services import server_registry

router = APIRouter(
    prefix="/servers",
    tags=["servers"],
    dependencies=[Depends(require_api_key)],
)


@router.get("", response_model=list[ServerSummary])
async def list_servers() -> list[ServerSummary]:
    return server_registry.list_servers()


@router.get("/{server_id}/usage", response_model=StatusResponse)
async def server_usage(server_id: str) -> StatusResponse:
    """Per-user usage as reported by SHOW_USER_USAGE."""
    usage = await deps.service_for(server_id).get_server_usage()
    return StatusResponse(data={"usage": usage})
