"""Wire-level data structures shared by the transport and the client."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ServerCredential(BaseModel):
    """Connection details for one DirectAdmin instance."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = 2222
    username: str
    password: str = Field(repr=False)
    use_ssl: bool = True
    verify_tls: bool = True

    @property
    def protocol(self) -> str:
        return "https" if self.use_ssl else "http"

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"


class ResponseKind(str, Enum):
    json = "json"
    query = "query"
    html = "html"
    empty = "empty"
    connection_reset = "connection_reset"


class RemoteResponse(BaseModel):
    """A DirectAdmin reply normalized to a key/value mapping."""

    command: str
    payload: dict[str, Any] = Field(default_factory=dict)
    kind: ResponseKind = ResponseKind.empty
    raw: str = ""
    status_code: Optional[int] = None
    action: Optional[str] = None
    connection_reset: bool = False

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)

    @property
    def has_data(self) -> bool:
        """False for empty bodies and HTML pages."""
        return self.kind in (ResponseKind.json, ResponseKind.query) and bool(self.payload)
