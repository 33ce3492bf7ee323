"""Server records resolved into DirectAdmin credentials."""

from __future__ import annotations

from pydantic import BaseModel, Field

from panelsync.models.remote import ServerCredential


class ServerRecord(BaseModel):
    """A stored DirectAdmin server, as kept by server management."""

    id: str
    name: str = ""
    host: str
    port: int = 2222
    username: str
    password: str = Field(repr=False)
    use_ssl: bool = True
    verify_tls: bool = True

    def to_credential(self) -> ServerCredential:
        return ServerCredential(
            host=self.host,
            port=self.port or 2222,
            username=self.username,
            password=self.password,
            use_ssl=self.use_ssl,
            verify_tls=self.verify_tls,
        )


class ServerSummary(BaseModel):
    """Public view of a server record (never includes the password)."""

    id: str
    name: str
    host: str
    port: int
    username: str
    use_ssl: bool
