"""In-memory server registry standing in for server management.

Seeded from settings: the default ``DIRECTADMIN_*`` server plus any records
in ``PANELSYNC_SERVERS_JSON``.
"""

from __future__ import annotations

import json

from pydantic import ValidationError

from panelsync.config import Settings, settings
from panelsync.exceptions import ServerNotFoundError
from panelsync.models.remote import ServerCredential
from panelsync.models.server import ServerRecord, ServerSummary
from panelsync.utils.logging import get_logger

log = get_logger(__name__)

# In-memory store keyed by server id
_servers: dict[str, ServerRecord] = {}


def load_from_settings(cfg: Settings | None = None) -> int:
    """(Re)seed the registry from configuration; returns the record count."""
    cfg = cfg or settings
    _servers.clear()

    if cfg.directadmin_host:
        register_server(
            ServerRecord(
                id=cfg.directadmin_server_id,
                name=cfg.directadmin_server_id,
                host=cfg.directadmin_host,
                port=cfg.directadmin_port,
                username=cfg.directadmin_username,
                password=cfg.directadmin_password,
                use_ssl=cfg.directadmin_use_ssl,
                verify_tls=cfg.directadmin_verify_tls,
            ),
        )

    if cfg.panelsync_servers_json.strip():
        try:
            records = json.loads(cfg.panelsync_servers_json)
            for raw in records:
                register_server(ServerRecord(**raw))
        except (ValueError, TypeError, ValidationError) as exc:
            log.error("servers.config_invalid", error=type(exc).__name__)

    log.info("servers.loaded", count=len(_servers))
    return len(_servers)


def register_server(record: ServerRecord) -> ServerRecord:
    _servers[record.id] = record
    return record


def remove_server(server_id: str) -> bool:
    return _servers.pop(server_id, None) is not None


def get_record(server_id: str) -> ServerRecord:
    record = _servers.get(str(server_id))
    if record is None:
        raise ServerNotFoundError(str(server_id))
    return record


def get_server(server_id: str) -> ServerCredential:
    """Resolve a stored server into the credential the core works with."""
    return get_record(server_id).to_credential()


def list_servers() -> list[ServerSummary]:
    return [
        ServerSummary(
            id=r.id,
            name=r.name or r.id,
            host=r.host,
            port=r.port,
            username=r.username,
            use_ssl=r.use_ssl,
        )
        for r in _servers.values()
    ]
