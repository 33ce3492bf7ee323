"""Request-scoped construction of the reconciliation service."""

from __future__ import annotations

from typing import Callable

from panelsync.models.remote import ServerCredential
from panelsync.services import server_registry
from panelsync.services.reconcile import DirectAdminService

ServiceFactory = Callable[[ServerCredential], DirectAdminService]


def default_factory(credential: ServerCredential) -> DirectAdminService:
    return DirectAdminService(credential)


# Replaced in tests to point services at a fake panel
service_factory: ServiceFactory = default_factory


def service_for(server_id: str) -> DirectAdminService:
    """Build a fresh service bound to one stored server."""
    return service_factory(server_registry.get_server(server_id))


def service_with_login(server_id: str, username: str, password: str) -> DirectAdminService:
    """Build a service that talks to DirectAdmin as the given panel user."""
    base = server_registry.get_server(server_id)
    credential = base.model_copy(update={"username": username.strip(), "password": password})
    return service_factory(credential)
