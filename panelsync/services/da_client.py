"""DirectAdmin remote operation client.

One coroutine per remote capability.  Each builds the exact form the
DirectAdmin web UI would post (sentinel values included) and hands it to
the transport.  Nothing here retries or verifies; that belongs to
``panelsync.services.reconcile``.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from panelsync.exceptions import NotFoundError
from panelsync.models.remote import RemoteResponse, ServerCredential
from panelsync.services.transport import DirectAdminTransport
from panelsync.utils.da_parser import extract_names, limit_value, on_off
from panelsync.utils.logging import get_logger

log = get_logger(__name__)

# Numeric package limits; unspecified ones are sent as "unlimited"
PACKAGE_LIMIT_FIELDS: tuple[str, ...] = (
    "bandwidth",
    "quota",
    "inode",
    "vdomains",
    "nsubdomains",
    "nemails",
    "nemailf",
    "nemailml",
    "nemailr",
    "mysql",
    "domainptr",
    "ftp",
)

# Feature toggles, sent as ON/OFF
PACKAGE_FLAG_FIELDS: tuple[str, ...] = (
    "aftp",
    "cgi",
    "php",
    "spam",
    "catchall",
    "ssl",
    "ssh",
    "sysinfo",
    "dnscontrol",
    "suspend_at_limit",
    "cron",
)

# Platform field names accepted in place of DirectAdmin's
PACKAGE_ALIASES: dict[str, str] = {
    "diskSpace": "quota",
    "disk_space": "quota",
    "emailAccounts": "nemails",
    "email_accounts": "nemails",
    "databases": "mysql",
    "subdomains": "nsubdomains",
    "domains": "vdomains",
}

_PACKAGE_NAME_KEYS = ("name", "packagename", "package")
_RENAME_KEYS = ("old_packagename", "rename", "new_name", "newName")
_STUB_DETAIL_KEYS = frozenset({"name", "exists", "package"})
# Keys a detail read carries that are not package settings
_DETAIL_ONLY_KEYS = frozenset(
    {"name", "exists", "package", "packagename", "error", "text", "details", "result"},
)

USER_FEATURES: dict[str, str] = {"dns": "ON", "cgi": "ON", "php": "ON", "ssl": "ON"}


def package_name_from(data: dict[str, Any]) -> str:
    for key in _PACKAGE_NAME_KEYS:
        value = data.get(key)
        if value:
            return str(value).strip()
    return ""


def build_package_fields(data: dict[str, Any]) -> dict[str, str]:
    """Shape platform package data into DirectAdmin form fields."""
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        if key in _PACKAGE_NAME_KEYS or key in _RENAME_KEYS or key in ("action", "add"):
            continue
        normalized[PACKAGE_ALIASES.get(key, key)] = value

    fields: dict[str, str] = {}
    for key in PACKAGE_LIMIT_FIELDS:
        fields[key] = limit_value(normalized.pop(key, None))
    for key in PACKAGE_FLAG_FIELDS:
        if key in normalized:
            fields[key] = on_off(normalized.pop(key))
    for key, value in normalized.items():
        if value is None:
            continue
        fields[key] = on_off(value) if isinstance(value, bool) else str(value)
    return fields


def requested_package_fields(data: dict[str, Any]) -> dict[str, str]:
    """The DirectAdmin fields a caller explicitly asked to set."""
    shaped = build_package_fields(data)
    asked = {PACKAGE_ALIASES.get(k, k) for k in data}
    return {k: v for k, v in shaped.items() if k in asked}


def is_stub_detail(detail: dict[str, Any]) -> bool:
    """True for the placeholder returned when DirectAdmin hid the limits."""
    return detail.get("exists") is True and set(detail) <= _STUB_DETAIL_KEYS


def merge_package_fields(current: dict[str, Any], data: dict[str, Any]) -> dict[str, str]:
    """Lay the requested fields over a package's current limits.

    ``MANAGE_USER_PACKAGES`` overwrites the whole package, so anything not
    resent is reset by DirectAdmin.
    """
    fields = {
        key: str(value)
        for key, value in current.items()
        if key not in _DETAIL_ONLY_KEYS and value is not None and not isinstance(value, (list, dict))
    }
    fields.update(requested_package_fields(data))
    return fields


class DirectAdminApi:
    """Thin, typed wrapper over the DirectAdmin API for one server."""

    def __init__(
        self,
        credential: ServerCredential,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float | None = None,
    ) -> None:
        self._transport = DirectAdminTransport(
            credential, timeout=timeout, transport=transport,
        )

    @property
    def host(self) -> str:
        return self._transport.host

    @property
    def username(self) -> str:
        return self._transport.credential.username

    async def execute_command(
        self,
        command: str,
        params: dict[str, Any] | None = None,
        method: str = "POST",
    ) -> RemoteResponse:
        return await self._transport.execute_command(command, params, method)

    # ── packages ──────────────────────────────────────────────────────

    async def list_packages(self) -> list[str]:
        resp = await self.execute_command("PACKAGES_USER", method="GET")
        return extract_names(resp.payload)

    async def package_exists(self, name: str) -> bool:
        return name in await self.list_packages()

    async def get_package_details(self, name: str) -> dict[str, Any]:
        """Fetch a package's limits.

        DirectAdmin often answers with an HTML page or nothing for packages
        that do exist; when the list endpoint confirms the name a stub
        record is returned instead of failing.
        """
        resp = await self.execute_command(
            "PACKAGES_USER", {"package": name}, method="GET",
        )
        if resp.has_data:
            detail = dict(resp.payload)
            detail.setdefault("name", name)
            return detail

        if await self.package_exists(name):
            log.info("da.package_detail_stub", package=name, kind=resp.kind.value)
            return {"name": name, "exists": True, "package": name}
        raise NotFoundError(f"Package {name} not found")

    async def create_package(self, data: dict[str, Any]) -> RemoteResponse:
        name = package_name_from(data)
        params = {"add": "Save", "packagename": name, **build_package_fields(data)}
        return await self.execute_command("MANAGE_USER_PACKAGES", params)

    async def update_package(
        self,
        name: str,
        data: dict[str, Any],
        current: dict[str, Any] | None = None,
    ) -> RemoteResponse:
        """Overwrite a package with *current* plus the requested changes."""
        params = {
            "add": "Save",
            "packagename": name,
            **merge_package_fields(current or {}, data),
        }
        return await self.execute_command("MANAGE_USER_PACKAGES", params)

    async def rename_package(
        self,
        old_name: str,
        new_name: str,
        data: dict[str, Any],
        current: dict[str, Any] | None = None,
    ) -> RemoteResponse:
        params = {
            "add": "Save",
            "old_packagename": old_name,
            "packagename": new_name,
            "rename": "yes",
            **merge_package_fields(current or {}, data),
        }
        return await self.execute_command("MANAGE_USER_PACKAGES", params)

    async def delete_package(self, name: str) -> RemoteResponse:
        return await self.execute_command(
            "MANAGE_USER_PACKAGES", {"delete": "yes", "delete0": name},
        )

    # ── users ─────────────────────────────────────────────────────────

    async def list_users(self) -> list[str]:
        resp = await self.execute_command("SHOW_USERS", method="GET")
        return extract_names(resp.payload)

    async def user_exists(self, username: str) -> bool:
        # Usernames are case sensitive in DirectAdmin
        return username in await self.list_users()

    async def get_user_details(self, username: str) -> dict[str, Any]:
        config = await self.execute_command(
            "SHOW_USER_CONFIG", {"user": username}, method="GET",
        )
        domains = await self.execute_command(
            "SHOW_USER_DOMAINS", {"user": username}, method="GET",
        )
        domain_names = extract_names(domains.payload)

        if not config.has_data and not domain_names:
            if await self.user_exists(username):
                log.info("da.user_detail_stub", user=username, kind=config.kind.value)
                return {
                    "name": username,
                    "exists": True,
                    "username": username,
                    "domains": [],
                    "config": {},
                }
            raise NotFoundError(f"User {username} not found")

        return {
            "name": username,
            "username": username,
            "domains": domain_names,
            "config": dict(config.payload),
        }

    async def create_user(self, data: dict[str, Any]) -> RemoteResponse:
        params = {
            "action": "create",
            "add": "Submit",
            "username": data["username"],
            "email": data["email"],
            "passwd": data["passwd"],
            "passwd2": data.get("passwd2") or data["passwd"],
            "domain": data["domain"],
            "package": data["package"],
            "ip": data.get("ip") or "shared",
            "notify": "yes" if data.get("notify") in ("yes", True) else "no",
            **USER_FEATURES,
        }
        return await self.execute_command("ACCOUNT_USER", params)

    async def update_user(self, username: str, data: dict[str, Any]) -> RemoteResponse:
        params: dict[str, Any] = {"action": "modify", "user": username}
        for key, value in data.items():
            if key in ("action", "user", "username") or value is None:
                continue
            params[key] = on_off(value) if isinstance(value, bool) else value
        return await self.execute_command("ACCOUNT_USER", params)

    async def suspend_user(self, username: str) -> RemoteResponse:
        return await self.execute_command(
            "SELECT_USERS",
            {"location": "suspend", "select0": username, "suspend": "Suspend"},
        )

    async def unsuspend_user(self, username: str) -> RemoteResponse:
        return await self.execute_command(
            "SELECT_USERS",
            {"location": "suspend", "select0": username, "suspend": "Unsuspend"},
        )

    async def delete_user(self, username: str) -> RemoteResponse:
        return await self.execute_command(
            "ACCOUNT_USER",
            {"action": "delete", "username": username, "confirmed": "yes"},
        )

    # ── mailboxes ─────────────────────────────────────────────────────

    async def create_mailbox(
        self,
        domain: str,
        user: str,
        password: str,
        quota: int | str = 0,
    ) -> RemoteResponse:
        return await self.execute_command(
            "POP",
            {
                "action": "create",
                "domain": domain,
                "user": user,
                "passwd": password,
                "passwd2": password,
                "quota": quota,
                "limit": 0,
            },
        )

    async def list_mailboxes(self, domain: str) -> list[str]:
        resp = await self.execute_command(
            "POP", {"action": "list", "domain": domain}, method="GET",
        )
        return extract_names(resp.payload)

    async def update_mailbox_password(
        self,
        domain: str,
        user: str,
        password: str,
    ) -> RemoteResponse:
        return await self.execute_command(
            "POP",
            {
                "action": "modify",
                "domain": domain,
                "user": user,
                "passwd": password,
                "passwd2": password,
            },
        )

    async def delete_mailbox(self, domain: str, user: str) -> RemoteResponse:
        return await self.execute_command(
            "POP", {"action": "delete", "domain": domain, "user": user},
        )

    # ── server ────────────────────────────────────────────────────────

    async def get_server_usage(self) -> dict[str, Any]:
        resp = await self.execute_command("SHOW_USER_USAGE", method="GET")
        return dict(resp.payload)

    async def verify_login(self) -> dict[str, Any]:
        """Read the credential's own user config; raises if it is rejected."""
        return await self.get_user_details(self.username)
