"""Shared-secret guard for the consumer routes.

The reseller platform sends ``PANELSYNC_API_KEY`` in ``X-API-Key``.  A blank
key turns the guard off for local development.
"""

from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Request, Security
from fastapi.security import APIKeyHeader

from panelsync.config import settings
from panelsync.exceptions import AuthenticationError
from panelsync.utils.logging import get_logger

log = get_logger(__name__)

API_KEY_HEADER = "X-API-Key"

_platform_key = APIKeyHeader(
    name=API_KEY_HEADER,
    auto_error=False,
    description="Shared secret issued to the reseller platform",
)


def key_matches(supplied: Optional[str], expected: str) -> bool:
    if not supplied:
        return False
    return secrets.compare_digest(supplied.encode(), expected.encode())


async def require_api_key(
    request: Request,
    api_key: Optional[str] = Security(_platform_key),
) -> Optional[str]:
    expected = settings.panelsync_api_key
    if not expected:
        return None
    if not key_matches(api_key, expected):
        log.warning("auth.rejected", path=request.url.path, key_supplied=bool(api_key))
        raise AuthenticationError("Invalid or missing API key")
    return api_key
