"""DirectAdmin package endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from panelsync import deps
from panelsync.auth import require_api_key
from panelsync.models.outcome import Outcome
from panelsync.models.responses import PackageRenameRequest, ServerScoped, StatusResponse

router = APIRouter(
    prefix="/packages/da",
    tags=["packages"],
    dependencies=[Depends(require_api_key)],
)


def _status_for(outcome: Outcome) -> int:
    if outcome == Outcome.ambiguous_connection_reset:
        return status.HTTP_202_ACCEPTED
    return status.HTTP_200_OK


@router.get("", response_model=StatusResponse)
async def list_packages(
    server_id: str = Query(..., alias="serverId"),
    details: bool = Query(False, description="Fetch each package's limits"),
) -> StatusResponse:
    packages = await deps.service_for(server_id).list_packages(include_details=details)
    return StatusResponse(data={"packages": packages})


@router.get("/{name}", response_model=StatusResponse)
async def get_package(
    name: str,
    server_id: str = Query(..., alias="serverId"),
) -> StatusResponse:
    detail = await deps.service_for(server_id).get_package_details(name)
    return StatusResponse(data={"package": detail})


@router.post("", response_model=StatusResponse, status_code=status.HTTP_201_CREATED)
async def create_package(req: ServerScoped) -> StatusResponse:
    result = await deps.service_for(req.server_id).create_package(req.panel_fields())
    return StatusResponse.from_result(result)


# Registered before "/{name}" so "rename" is never taken for a package name
@router.patch("/rename/{old_name}", response_model=StatusResponse)
async def rename_package(old_name: str, req: PackageRenameRequest) -> StatusResponse:
    """Rename = create the new package and retire the old one, then verify both."""
    result = await deps.service_for(req.server_id).rename_package(
        old_name, req.new_name, req.panel_fields(),
    )
    return StatusResponse.from_result(result)


@router.patch("/{name}", response_model=StatusResponse)
async def update_package(name: str, req: ServerScoped, response: Response) -> StatusResponse:
    result = await deps.service_for(req.server_id).update_package(name, req.panel_fields())
    response.status_code = _status_for(result.outcome)
    return StatusResponse.from_result(result)


@router.delete("/{name}", response_model=StatusResponse)
async def delete_package(
    name: str,
    server_id: str = Query(..., alias="serverId"),
) -> StatusResponse:
    result = await deps.service_for(server_id).delete_package(name)
    return StatusResponse.from_result(result)
