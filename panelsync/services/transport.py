"""Authenticated HTTP transport for the DirectAdmin ``CMD_API_*`` endpoints.

Every call opens a short-lived ``httpx.AsyncClient`` bound to one
credential, sends the request the way DirectAdmin's own web UI does (query
string for GET, form body for POST) and returns a ``RemoteResponse``.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from panelsync.config import settings
from panelsync.exceptions import TransportError
from panelsync.models.remote import RemoteResponse, ResponseKind, ServerCredential
from panelsync.utils.da_parser import parse_body, raise_for_remote_error
from panelsync.utils.logging import get_logger, mask_secrets

log = get_logger(__name__)

COMMAND_PREFIX = "CMD_API_"

# (command, action) pairs where a dropped connection does not mean failure
RESET_TOLERANT: frozenset[tuple[str, str]] = frozenset(
    {("ACCOUNT_USER", "create"), ("ACCOUNT_USER", "modify")},
)


def normalize_command(command: str) -> str:
    """Strip any ``CMD_API_`` prefix so callers may pass either form."""
    name = command.strip().lstrip("/")
    while name.upper().startswith(COMMAND_PREFIX):
        name = name[len(COMMAND_PREFIX):]
    return name.upper()


def is_connection_reset(exc: BaseException) -> bool:
    """True when a ``ConnectionResetError`` sits anywhere in the cause chain.

    The httpx wrapper type alone (``ReadError``, ``WriteError``) does not
    distinguish a reset from other socket failures.
    """
    seen: set[int] = set()
    cause: BaseException | None = exc
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        if isinstance(cause, ConnectionResetError):
            return True
        cause = cause.__cause__ or cause.__context__
    return False


def _stringify(params: dict[str, Any] | None) -> dict[str, str]:
    return {k: str(v) for k, v in (params or {}).items() if v is not None}


class DirectAdminTransport:
    """Issues one request per call against a single DirectAdmin server."""

    def __init__(
        self,
        credential: ServerCredential,
        *,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._cred = credential
        self._timeout = timeout or settings.directadmin_request_timeout_seconds
        self._transport = transport

    @property
    def host(self) -> str:
        return self._cred.host

    @property
    def credential(self) -> ServerCredential:
        return self._cred

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._cred.base_url,
            auth=(self._cred.username, self._cred.password),
            timeout=self._timeout,
            verify=self._cred.verify_tls,
            transport=self._transport,
        )

    async def execute_command(
        self,
        command: str,
        params: dict[str, Any] | None = None,
        method: str = "POST",
    ) -> RemoteResponse:
        """Run ``CMD_API_<command>`` and return the normalized reply.

        Raises ``RemoteReportedError`` when the reply carries a non-zero
        ``error`` and ``TransportError`` for network or HTTP failures.  A
        connection reset during a reset-tolerant mutation is returned as a
        ``connection_reset`` response instead.
        """
        name = normalize_command(command)
        path = f"/{COMMAND_PREFIX}{name}"
        data = _stringify(params)
        action = data.get("action")
        method = method.upper()

        log.info(
            "da.request",
            host=self._cred.host,
            method=method,
            command=name,
            params=mask_secrets(data),
        )

        try:
            async with self._client() as client:
                if method == "GET":
                    resp = await client.get(path, params=data)
                else:
                    resp = await client.post(
                        path,
                        data=data,
                        headers={"Content-Type": "application/x-www-form-urlencoded"},
                    )
        except httpx.HTTPError as exc:
            if (name, action or "") in RESET_TOLERANT and is_connection_reset(exc):
                log.warning("da.connection_reset", command=name, action=action)
                return RemoteResponse(
                    command=name,
                    action=action,
                    kind=ResponseKind.connection_reset,
                    connection_reset=True,
                )
            log.error("da.transport_failed", command=name, error=type(exc).__name__)
            raise TransportError(
                f"DirectAdmin request {name} failed: {type(exc).__name__}: {exc}",
            ) from exc

        return self._to_response(name, action, resp)

    def _to_response(
        self,
        name: str,
        action: str | None,
        resp: httpx.Response,
    ) -> RemoteResponse:
        content_type = resp.headers.get("content-type", "")
        body: Any = resp.text
        if "json" in content_type:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text

        kind, payload = parse_body(body)
        log.info(
            "da.response",
            command=name,
            status=resp.status_code,
            kind=kind.value,
            preview=resp.text[:200],
        )

        # A remote error explains an HTTP failure better than the status line
        raise_for_remote_error(payload, resp.status_code)

        if resp.status_code >= 400:
            raise TransportError(
                f"Request failed with status code {resp.status_code}",
                status_code=resp.status_code,
            )

        return RemoteResponse(
            command=name,
            action=action,
            payload=payload,
            kind=kind,
            raw=resp.text[:2000],
            status_code=resp.status_code,
        )
