"""Common API request and response models."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from panelsync.models.outcome import OperationResult, Outcome


class HealthResponse(BaseModel):
    status: str
    version: str


class ServerHealthResponse(BaseModel):
    server_id: str
    reachable: bool
    username: Optional[str] = None
    domains: list[str] = []
    error: Optional[str] = None


class StatusResponse(BaseModel):
    """Envelope every consumer endpoint answers with."""

    status: str = "success"
    message: str = ""
    data: Optional[dict[str, Any]] = None
    outcome: Optional[Outcome] = None
    warnings: list[str] = []
    mismatches: dict[str, Any] = {}

    @classmethod
    def from_result(
        cls,
        result: OperationResult,
        data: Optional[dict[str, Any]] = None,
    ) -> "StatusResponse":
        """Unconfirmed and ambiguous outcomes become ``warning``, not success."""
        return cls(
            status="warning" if result.is_warning else "success",
            message=result.message,
            data={**result.data, **(data or {})} or None,
            outcome=result.outcome,
            warnings=list(result.warnings),
            mismatches={k: v.model_dump() for k, v in result.mismatches.items()},
        )


class ErrorResponse(BaseModel):
    status: str = "error"
    detail: str
    outcome: Optional[Outcome] = None
    data: Optional[dict[str, Any]] = None


# ── request bodies ────────────────────────────────────────────────────────


class ServerScoped(BaseModel):
    """Body carrying the target server plus free-form panel fields."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    server_id: str = Field(alias="serverId")

    def panel_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class PackageRenameRequest(ServerScoped):
    new_name: str = Field(alias="newName")


class ServerOnlyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    server_id: str = Field(alias="serverId")


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    server_id: str = Field(alias="serverId")
    username: str
    password: str = Field(repr=False)


class EmailCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    server_id: str = Field(alias="serverId")
    domain: str
    email: str = Field(description="Local part, or a full address on the domain")
    password: str = Field(repr=False)
    quota: int = 0
    owner: Optional[str] = Field(
        default=None,
        description="When set, the DirectAdmin user must own the domain",
    )


class EmailPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    server_id: str = Field(alias="serverId")
    email: str
    password: str = Field(repr=False)
