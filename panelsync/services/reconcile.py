"""Reconciliation service: existence checks, retries and read-after-write.

DirectAdmin's own "success" replies are not trusted.  Every mutation here is
followed by whatever read is needed to decide what really happened, and the
answer is reported as an ``OperationResult`` tagged with an ``Outcome``:

* ``success``: the follow-up read confirms the change.
* ``success_unverified``: the panel accepted the change but the read
  disagrees or could not be made (a warning, never a silent success).
* ``ambiguous_connection_reset``: the connection dropped mid-mutation and
  no read could settle it.
* ``failure``: raised as ``ReconciliationError`` carrying the result.

There is no per-name locking: two callers working on the same package or
user race each other and DirectAdmin decides the order.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx

from panelsync.config import Settings, settings
from panelsync.exceptions import (
    AlreadyExistsError,
    AuthenticationError,
    NotFoundError,
    PanelError,
    ReconciliationError,
    RemoteReportedError,
    RetryExhaustedError,
    TransportError,
    VerificationMismatchError,
)
from panelsync.models.outcome import (
    FieldMismatch,
    OperationResult,
    Outcome,
    PackageLifecycle,
)
from panelsync.models.remote import RemoteResponse, ServerCredential
from panelsync.services.da_client import (
    DirectAdminApi,
    is_stub_detail,
    merge_package_fields,
    package_name_from,
)
from panelsync.services.retry import Sleep, linear, progressive
from panelsync.utils.da_parser import split_email
from panelsync.utils.logging import get_logger

log = get_logger(__name__)

REQUIRED_USER_FIELDS: tuple[str, ...] = ("username", "email", "passwd", "domain", "package")


def _same_value(requested: str, actual: Any) -> bool:
    if actual is None:
        return False
    return str(actual).strip().lower() == requested.strip().lower()


class DirectAdminService:
    """Makes one server's DirectAdmin API look atomic to consumers."""

    def __init__(
        self,
        credential: ServerCredential,
        *,
        api: Optional[DirectAdminApi] = None,
        cfg: Settings | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self._cfg = cfg or settings
        self._api = api or DirectAdminApi(
            credential,
            transport=transport,
            timeout=self._cfg.directadmin_request_timeout_seconds,
        )
        self._sleep = sleep or asyncio.sleep

        flaky = (RemoteReportedError, TransportError)
        self._update_policy = progressive(
            self._cfg.package_update_attempts,
            self._cfg.package_update_delays,
            retry_on=flaky,
            sleep=self._sleep,
        )
        self._delete_policy = progressive(
            self._cfg.package_delete_attempts,
            self._cfg.package_delete_delays,
            retry_on=flaky + (VerificationMismatchError,),
            sleep=self._sleep,
        )
        self._email_policy = linear(
            self._cfg.email_attempts,
            self._cfg.email_delay_seconds,
            retry_on=(PanelError,),
            sleep=self._sleep,
        )

    @property
    def api(self) -> DirectAdminApi:
        return self._api

    # ── helpers ───────────────────────────────────────────────────────

    async def _package_present(self, name: str) -> bool:
        """Verification read: does the panel still know this package?"""
        try:
            await self._api.get_package_details(name)
        except NotFoundError:
            return False
        except RemoteReportedError:
            # Some versions answer a missing package with error=1
            return await self._api.package_exists(name)
        return True

    async def _single(
        self,
        operation: str,
        entity: str,
        call: Callable[[], Awaitable[RemoteResponse]],
        message: str,
    ) -> OperationResult:
        """One attempt, no retry; an error whose text is ``0`` means success."""
        try:
            await call()
        except RemoteReportedError as exc:
            if not exc.is_zero_sentinel:
                raise
            log.info("reconcile.zero_sentinel", operation=operation, entity=entity)
        return OperationResult(
            operation=operation,
            entity=entity,
            outcome=Outcome.success,
            message=message,
        )

    # ── packages ──────────────────────────────────────────────────────

    async def list_packages(self, include_details: bool = False) -> dict[str, dict[str, Any]]:
        names = await self._api.list_packages()
        if not include_details:
            return {name: {"name": name} for name in names}
        packages: dict[str, dict[str, Any]] = {}
        for name in names:
            packages[name] = await self._api.get_package_details(name)
        return packages

    async def get_package_details(self, name: str) -> dict[str, Any]:
        return await self._api.get_package_details(name)

    async def create_package(self, data: dict[str, Any]) -> OperationResult:
        name = package_name_from(data)
        if not name:
            raise PanelError("Package name is required")

        if await self._api.package_exists(name):
            log.info("reconcile.package_exists", package=name)
            raise AlreadyExistsError(f"Package {name} already exists")

        await self._api.create_package(data)
        log.info("reconcile.package_created", package=name)
        return OperationResult(
            operation="create_package",
            entity=name,
            outcome=Outcome.success,
            message=f"Package {name} created successfully",
            data={"state": PackageLifecycle.created.value},
        )

    async def _current_package(self, name: str) -> tuple[dict[str, Any], list[str]]:
        """Read a package before overwriting it; stubs come back empty with a warning."""
        detail = await self._api.get_package_details(name)
        if is_stub_detail(detail):
            log.warning("reconcile.package_limits_unreadable", package=name)
            return {}, [
                f"Current limits of {name} could not be read; "
                "limits not in the request may have been reset",
            ]
        return detail, []

    async def update_package(self, name: str, data: dict[str, Any]) -> OperationResult:
        current, warnings = await self._current_package(name)

        attempts = 0

        async def _attempt(attempt: int) -> RemoteResponse:
            nonlocal attempts
            attempts = attempt
            if attempt > 1:
                log.info("reconcile.package_update_retry", package=name, attempt=attempt)
            return await self._api.update_package(name, data, current)

        await self._update_policy.run(_attempt, operation=f"update package {name}")

        result = OperationResult(
            operation="update_package",
            entity=name,
            outcome=Outcome.success,
            message=f"Package {name} updated successfully",
            attempts=attempts,
            data={"state": PackageLifecycle.verified.value},
        )
        result = await self._verify_package_fields(result, merge_package_fields(current, data))
        if warnings:
            self._mark_unverified(result, warnings)
        return result

    @staticmethod
    def _mark_unverified(result: OperationResult, warnings: list[str]) -> None:
        result.outcome = Outcome.success_unverified
        result.message = f"Package {result.entity} update accepted but not confirmed"
        result.warnings.extend(warnings)
        result.data["state"] = PackageLifecycle.unverified.value

    async def _verify_package_fields(
        self,
        result: OperationResult,
        expected: dict[str, str],
    ) -> OperationResult:
        """Compare a read-back against every field that was sent."""
        name = result.entity
        if not expected:
            return result

        def _unverified(warning: str) -> OperationResult:
            self._mark_unverified(result, [warning])
            return result

        try:
            detail = await self._api.get_package_details(name)
        except PanelError as exc:
            log.warning("reconcile.verify_read_failed", package=name, error=str(exc))
            return _unverified(f"Verification read failed: {exc}")

        compared = [key for key in expected if key in detail]
        if not compared:
            return _unverified("DirectAdmin returned no package limits to compare")

        for key in compared:
            if not _same_value(expected[key], detail.get(key)):
                result.mismatches[key] = FieldMismatch(
                    requested=expected[key],
                    actual=None if detail.get(key) is None else str(detail.get(key)),
                )
        if result.mismatches:
            log.warning(
                "reconcile.package_update_mismatch",
                package=name,
                fields=sorted(result.mismatches),
            )
            return _unverified(
                "Fetched values differ from the request: "
                + ", ".join(sorted(result.mismatches)),
            )
        return result

    async def rename_package(
        self,
        old_name: str,
        new_name: str,
        data: dict[str, Any] | None = None,
    ) -> OperationResult:
        data = data or {}
        new_name = (new_name or "").strip()
        if not new_name:
            raise PanelError("New package name is required")
        if new_name == old_name:
            return await self.update_package(old_name, data)

        current, warnings = await self._current_package(old_name)
        if await self._api.package_exists(new_name):
            raise AlreadyExistsError(f"Package {new_name} already exists")

        await self._api.rename_package(old_name, new_name, data, current)

        new_present = await self._package_present(new_name)
        old_present = await self._package_present(old_name)
        names = {"old_name": old_name, "new_name": new_name}
        log.info(
            "reconcile.package_rename_verified",
            old=old_name,
            new=new_name,
            new_present=new_present,
            old_present=old_present,
        )

        if not new_present:
            raise ReconciliationError(
                OperationResult(
                    operation="rename_package",
                    entity=old_name,
                    outcome=Outcome.failure,
                    message=(
                        f"Rename of package {old_name} to {new_name} failed: "
                        f"{new_name} does not exist after the rename"
                    ),
                    data={
                        "state": PackageLifecycle.rename_failed.value,
                        "old_exists": old_present,
                        **names,
                    },
                ),
            )
        if old_present:
            return OperationResult(
                operation="rename_package",
                entity=new_name,
                outcome=Outcome.success_unverified,
                message=f"Package renamed to {new_name} but duplicate {old_name} retained",
                warnings=[
                    f"Old package {old_name} still exists and may need deleting",
                    *warnings,
                ],
                data={"state": PackageLifecycle.renamed_duplicate.value, **names},
            )
        if warnings:
            return OperationResult(
                operation="rename_package",
                entity=new_name,
                outcome=Outcome.success_unverified,
                message=f"Package {old_name} renamed to {new_name}; limits not confirmed",
                warnings=warnings,
                data={"state": PackageLifecycle.renamed.value, **names},
            )
        return OperationResult(
            operation="rename_package",
            entity=new_name,
            outcome=Outcome.success,
            message=f"Package {old_name} renamed to {new_name}",
            data={"state": PackageLifecycle.renamed.value, **names},
        )

    async def delete_package(self, name: str) -> OperationResult:
        if not await self._api.package_exists(name):
            raise NotFoundError(f"Package {name} not found")

        attempts = 0

        async def _attempt(attempt: int) -> None:
            nonlocal attempts
            attempts = attempt
            try:
                await self._api.delete_package(name)
            except RemoteReportedError:
                # An earlier attempt may already have removed it
                if await self._package_present(name):
                    raise
                return
            if await self._package_present(name):
                raise VerificationMismatchError(
                    f"Package {name} still exists after delete",
                )

        try:
            await self._delete_policy.run(_attempt, operation=f"delete package {name}")
        except RetryExhaustedError as exc:
            log.error("reconcile.package_delete_failed", package=name, attempts=exc.attempts)
            raise ReconciliationError(
                OperationResult(
                    operation="delete_package",
                    entity=name,
                    outcome=Outcome.failure,
                    message=f"Failed to delete package {name}: {exc.message}",
                    attempts=exc.attempts,
                    data={"state": PackageLifecycle.delete_failed.value},
                ),
            ) from exc

        return OperationResult(
            operation="delete_package",
            entity=name,
            outcome=Outcome.success,
            message=f"Package {name} deleted successfully",
            attempts=attempts,
            data={"state": PackageLifecycle.deleted.value},
        )

    # ── users ─────────────────────────────────────────────────────────

    async def list_users(self) -> dict[str, Any]:
        """Best effort: failures are reported in the body, never raised."""
        try:
            users = await self._api.list_users()
            if not users:
                raise PanelError("No users found - possible configuration issue")
        except PanelError as exc:
            log.error("reconcile.list_users_failed", error=str(exc))
            return {"status": "error", "data": {"users": [], "error": str(exc)}}
        return {"status": "success", "data": {"users": users}}

    async def get_user_details(self, username: str) -> dict[str, Any]:
        return await self._api.get_user_details(username)

    async def create_user(self, data: dict[str, Any]) -> OperationResult:
        missing = [key for key in REQUIRED_USER_FIELDS if not data.get(key)]
        if missing:
            raise PanelError(f"Missing required fields: {', '.join(missing)}")
        username = str(data["username"]).strip()

        if await self._api.user_exists(username):
            raise AlreadyExistsError(f"User {username} already exists")

        try:
            resp = await self._api.create_user({**data, "username": username})
        except RemoteReportedError as exc:
            if not exc.is_zero_sentinel:
                raise
            log.info("reconcile.user_created_despite_error", user=username)
            resp = None

        if resp is not None and resp.connection_reset:
            return await self._settle_create_reset(username)

        return OperationResult(
            operation="create_user",
            entity=username,
            outcome=Outcome.success,
            message=f"User {username} created successfully",
        )

    async def _settle_create_reset(self, username: str) -> OperationResult:
        """The create may or may not have landed; the user list decides."""
        await self._sleep(self._cfg.user_create_reset_delay_seconds)
        try:
            exists = await self._api.user_exists(username)
        except PanelError as exc:
            log.warning("reconcile.reset_check_failed", user=username, error=str(exc))
            return OperationResult(
                operation="create_user",
                entity=username,
                outcome=Outcome.ambiguous_connection_reset,
                message=f"Connection reset while creating {username}; state unknown",
                warnings=[f"Could not list users to confirm: {exc}"],
            )

        if exists:
            log.info("reconcile.reset_create_confirmed", user=username)
            return OperationResult(
                operation="create_user",
                entity=username,
                outcome=Outcome.success,
                message=f"User {username} created successfully",
                warnings=["Connection reset during create; confirmed by listing users"],
            )
        raise ReconciliationError(
            OperationResult(
                operation="create_user",
                entity=username,
                outcome=Outcome.failure,
                message=(
                    f"User creation for {username} may have failed: the connection "
                    "was reset and the user is not listed"
                ),
            ),
        )

    async def update_user(self, username: str, data: dict[str, Any]) -> OperationResult:
        try:
            resp = await self._api.update_user(username, data)
        except RemoteReportedError as exc:
            if not exc.is_zero_sentinel:
                raise
            resp = None

        if resp is not None and resp.connection_reset:
            return OperationResult(
                operation="update_user",
                entity=username,
                outcome=Outcome.ambiguous_connection_reset,
                message=f"Connection reset while updating {username}; changes unconfirmed",
                warnings=["Re-read the user to confirm the update"],
            )
        return OperationResult(
            operation="update_user",
            entity=username,
            outcome=Outcome.success,
            message=f"User {username} updated successfully",
        )

    async def suspend_user(self, username: str) -> OperationResult:
        return await self._single(
            "suspend_user",
            username,
            lambda: self._api.suspend_user(username),
            f"User {username} suspended successfully",
        )

    async def unsuspend_user(self, username: str) -> OperationResult:
        return await self._single(
            "unsuspend_user",
            username,
            lambda: self._api.unsuspend_user(username),
            f"User {username} unsuspended successfully",
        )

    async def delete_user(self, username: str) -> OperationResult:
        return await self._single(
            "delete_user",
            username,
            lambda: self._api.delete_user(username),
            f"User {username} deleted successfully",
        )

    async def user_owns_domain(self, username: str, domain: str) -> bool:
        details = await self._api.get_user_details(username)
        return domain.lower() in {d.lower() for d in details.get("domains", [])}

    # ── email ─────────────────────────────────────────────────────────

    async def _email_call(
        self,
        operation: str,
        entity: str,
        call: Callable[[], Awaitable[RemoteResponse]],
        message: str,
    ) -> OperationResult:
        attempts = 0

        async def _attempt(attempt: int) -> None:
            nonlocal attempts
            attempts = attempt
            try:
                await call()
            except RemoteReportedError as exc:
                if not exc.is_zero_sentinel:
                    raise

        await self._email_policy.run(_attempt, operation=f"{operation} {entity}")
        return OperationResult(
            operation=operation,
            entity=entity,
            outcome=Outcome.success,
            message=message,
            attempts=attempts,
        )

    async def create_email_account(
        self,
        domain: str,
        user: str,
        password: str,
        quota: int | str = 0,
    ) -> OperationResult:
        user, domain = mailbox_target(domain, user)
        address = f"{user}@{domain}"
        return await self._email_call(
            "create_email_account",
            address,
            lambda: self._api.create_mailbox(domain, user, password, quota),
            f"Email account {address} created successfully",
        )

    async def list_email_accounts(self, domain: str) -> list[str]:
        """Best effort: an exhausted retry yields an empty list."""

        async def _attempt(attempt: int) -> list[str]:
            return await self._api.list_mailboxes(domain)

        try:
            return await self._email_policy.run(_attempt, operation=f"list mailboxes {domain}")
        except RetryExhaustedError as exc:
            log.error("reconcile.list_mailboxes_failed", domain=domain, error=exc.message)
            return []

    async def update_email_password(self, email: str, password: str) -> OperationResult:
        user, domain = split_email_or_raise(email)
        return await self._email_call(
            "update_email_password",
            email,
            lambda: self._api.update_mailbox_password(domain, user, password),
            f"Password for {email} updated successfully",
        )

    async def delete_email_account(self, email: str) -> OperationResult:
        user, domain = split_email_or_raise(email)
        return await self._email_call(
            "delete_email_account",
            email,
            lambda: self._api.delete_mailbox(domain, user),
            f"Email account {email} deleted successfully",
        )

    # ── server ────────────────────────────────────────────────────────

    async def get_server_usage(self) -> dict[str, Any]:
        return await self._api.get_server_usage()

    async def verify_login(self) -> dict[str, Any]:
        try:
            return await self._api.verify_login()
        except PanelError as exc:
            log.warning("reconcile.login_rejected", user=self._api.username, error=str(exc))
            raise AuthenticationError("Invalid DirectAdmin credentials") from exc


def split_email_or_raise(address: str) -> tuple[str, str]:
    try:
        return split_email(address)
    except ValueError as exc:
        raise PanelError(str(exc)) from exc


def mailbox_target(domain: str, email: str) -> tuple[str, str]:
    """Resolve the local part and domain a new mailbox will be created on.

    A full address must belong to *domain* when one is given.
    """
    domain = (domain or "").strip().lower()
    if "@" not in (email or ""):
        local = (email or "").strip()
        if not local or not domain:
            raise PanelError("Both an email name and a domain are required")
        return local, domain

    local, email_domain = split_email_or_raise(email)
    if domain and email_domain != domain:
        raise PanelError(f"Email address {email} does not belong to domain {domain}")
    return local, email_domain
