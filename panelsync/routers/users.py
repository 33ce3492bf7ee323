"""DirectAdmin user (hosting account) endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from panelsync import deps
from panelsync.auth import require_api_key
from panelsync.models.outcome import Outcome
from panelsync.models.responses import ServerOnlyRequest, ServerScoped, StatusResponse

router = APIRouter(
    prefix="/users/da",
    tags=["users"],
    dependencies=[Depends(require_api_key)],
)


def _status_for(outcome: Outcome, default: int = status.HTTP_200_OK) -> int:
    if outcome == Outcome.ambiguous_connection_reset:
        return status.HTTP_202_ACCEPTED
    return default


@router.get("")
async def list_users(server_id: str = Query(..., alias="serverId")) -> dict:
    """Always 200; listing problems are reported inside the body."""
    return await deps.service_for(server_id).list_users()


@router.get("/{username}", response_model=StatusResponse)
async def get_user(
    username: str,
    server_id: str = Query(..., alias="serverId"),
) -> StatusResponse:
    detail = await deps.service_for(server_id).get_user_details(username)
    return StatusResponse(data={"user": detail})


@router.post("", response_model=StatusResponse, status_code=status.HTTP_201_CREATED)
async def create_user(req: ServerScoped, response: Response) -> StatusResponse:
    result = await deps.service_for(req.server_id).create_user(req.panel_fields())
    response.status_code = _status_for(result.outcome, status.HTTP_201_CREATED)
    return StatusResponse.from_result(result)


@router.api_route("/{username}", methods=["PATCH", "PUT"], response_model=StatusResponse)
async def update_user(username: str, req: ServerScoped, response: Response) -> StatusResponse:
    result = await deps.service_for(req.server_id).update_user(username, req.panel_fields())
    response.status_code = _status_for(result.outcome)
    return StatusResponse.from_result(result)


@router.delete("/{username}", response_model=StatusResponse)
async def delete_user(
    username: str,
    server_id: str = Query(..., alias="serverId"),
) -> StatusResponse:
    result = await deps.service_for(server_id).delete_user(username)
    return StatusResponse.from_result(result)


@router.post("/{username}/suspend", response_model=StatusResponse)
async def suspend_user(username: str, req: ServerOnlyRequest) -> StatusResponse:
    result = await deps.service_for(req.server_id).suspend_user(username)
    return StatusResponse.from_result(result)


@router.post("/{username}/unsuspend", response_model=StatusResponse)
async def unsuspend_user(username: str, req: ServerOnlyRequest) -> StatusResponse:
    result = await deps.service_for(req.server_id).unsuspend_user(username)
    return StatusResponse.from_result(result)
