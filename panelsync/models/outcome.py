"""Tagged results returned by the reconciliation service."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Outcome(str, Enum):
    success = "success"
    success_unverified = "success_unverified"
    ambiguous_connection_reset = "ambiguous_connection_reset"
    failure = "failure"


class PackageLifecycle(str, Enum):
    """States a package passes through while being reconciled."""

    unknown = "unknown"
    checking = "checking"
    creating = "creating"
    already_exists = "already_exists"
    created = "created"
    updating = "updating"
    verified = "verified"
    unverified = "unverified"
    renaming = "renaming"
    renamed = "renamed"
    renamed_duplicate = "renamed_duplicate"
    rename_failed = "rename_failed"
    deleting = "deleting"
    deleted = "deleted"
    delete_failed = "delete_failed"


class FieldMismatch(BaseModel):
    requested: str
    actual: str | None = None


class OperationResult(BaseModel):
    """What actually happened to a remote entity after a mutation."""

    operation: str
    entity: str
    outcome: Outcome
    message: str = ""
    warnings: list[str] = Field(default_factory=list)
    mismatches: dict[str, FieldMismatch] = Field(default_factory=dict)
    attempts: int = 1
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.outcome != Outcome.failure

    @property
    def is_warning(self) -> bool:
        return self.outcome in (
            Outcome.success_unverified,
            Outcome.ambiguous_connection_reset,
        )

    @property
    def state(self) -> PackageLifecycle | None:
        value = self.data.get("state")
        return PackageLifecycle(value) if value else None
