"""Mailbox endpoints and DirectAdmin user login."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from panelsync import deps
from panelsync.auth import require_api_key
from panelsync.models.responses import (
    EmailCreateRequest,
    EmailPasswordRequest,
    LoginRequest,
    StatusResponse,
)
from panelsync.services.reconcile import mailbox_target

router = APIRouter(
    prefix="/email",
    tags=["email"],
    dependencies=[Depends(require_api_key)],
)


@router.post("/login", response_model=StatusResponse)
async def login(req: LoginRequest) -> StatusResponse:
    """Check a panel user's own credentials and return their domains."""
    service = deps.service_with_login(req.server_id, req.username, req.password)
    details = await service.verify_login()
    return StatusResponse(
        data={"username": req.username.strip(), "domains": details.get("domains", [])},
    )


@router.post("", response_model=StatusResponse, status_code=status.HTTP_201_CREATED)
async def create_email(req: EmailCreateRequest) -> StatusResponse:
    local, domain = mailbox_target(req.domain, req.email)
    service = deps.service_for(req.server_id)
    if req.owner and not await service.user_owns_domain(req.owner, domain):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to create emails for this domain",
        )
    result = await service.create_email_account(domain, local, req.password, req.quota)
    return StatusResponse.from_result(result, data={"email": result.entity, "domain": domain})


@router.get("", response_model=StatusResponse)
async def list_emails(
    server_id: str = Query(..., alias="serverId"),
    domain: str = Query(...),
) -> StatusResponse:
    emails = await deps.service_for(server_id).list_email_accounts(domain)
    return StatusResponse(data={"emails": emails})


@router.patch("", response_model=StatusResponse)
async def update_email(req: EmailPasswordRequest) -> StatusResponse:
    result = await deps.service_for(req.server_id).update_email_password(
        req.email, req.password,
    )
    return StatusResponse.from_result(result)


@router.delete("/{email}", response_model=StatusResponse)
async def delete_email(
    email: str,
    server_id: str = Query(..., alias="serverId"),
) -> StatusResponse:
    result = await deps.service_for(server_id).delete_email_account(email)
    return StatusResponse.from_result(result)
