"""Typed errors raised by the DirectAdmin integration layer.

Routers never build error responses by hand; the handlers registered in
``panelsync.main`` map each class below to an HTTP status.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from panelsync.models.outcome import OperationResult


class PanelError(Exception):
    """Base class for every error surfaced to consumers."""

    http_status: int = 400

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class TransportError(PanelError):
    """Network failure, timeout or an HTTP error with no remote payload."""

    http_status = 502


class RemoteReportedError(PanelError):
    """The panel answered with ``error`` set to something other than ``"0"``."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, status_code)
        self.error_code = error_code
        self.details = details

    @property
    def is_zero_sentinel(self) -> bool:
        """DirectAdmin sometimes reports success as an error whose text is ``0``."""
        return self.message.strip() == "0"


class NotFoundError(PanelError):
    http_status = 404


class ServerNotFoundError(NotFoundError):
    def __init__(self, server_id: str) -> None:
        super().__init__("Server not found")
        self.server_id = server_id


class AlreadyExistsError(PanelError):
    http_status = 409


class AuthenticationError(PanelError):
    http_status = 401


class VerificationMismatchError(PanelError):
    """A read-after-write disagrees with what the mutation reported."""

    http_status = 409


class ReconciliationError(PanelError):
    """A mutation could not be confirmed; carries the failing result."""

    http_status = 409

    def __init__(self, result: "OperationResult") -> None:
        super().__init__(result.message)
        self.result = result


class RetryExhaustedError(PanelError):
    """Every attempt allowed by a retry policy failed."""

    http_status = 502

    def __init__(self, operation: str, attempts: int, last_error: BaseException) -> None:
        message = str(last_error) or f"{operation} failed after {attempts} attempts"
        super().__init__(message)
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
