"""Identity administration: list, create and delete directory users.

Every operation is scoped to the caller's tenant unless the caller is a
SuperAdmin. Validation and authorization checks run before any mutating
directory call; directory failures propagate unchanged as DirectoryError.
"""

from __future__ import annotations

import asyncio
import secrets
import string
from typing import TYPE_CHECKING, Any, assert_never

import structlog

from incidentdesk.exceptions import AuthorizationError, ValidationError
from incidentdesk.identity.attributes import build_attributes, company_id_of, to_user
from incidentdesk.types import AdminAction, Role
from incidentdesk.utils.steps import StepResult, run_step

if TYPE_CHECKING:
    from incidentdesk.identity.directory import Directory
    from incidentdesk.models.domain import DirectoryUser, Identity, User

logger = structlog.get_logger(__name__)

_PASSWORD_ALPHABET = string.ascii_lowercase + string.digits


def generate_temp_password() -> str:
    """Temporary credential satisfying the pool's upper/lower/digit/symbol policy."""
    body = "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(7))
    return f"Temp{body}{secrets.choice(string.digits)}!"


def _required(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required")
    return value


class AdminActionsHandler:
    """Dispatches admin actions against a Directory on behalf of a caller."""

    def __init__(
        self,
        directory: Directory,
        rollback_failed_provisioning: bool = True,
        group_lookup_concurrency: int = 10,
    ) -> None:
        self._directory = directory
        self._rollback = rollback_failed_provisioning
        self._lookup_limit = max(1, group_lookup_concurrency)

    async def dispatch(
        self, action: str, payload: dict[str, Any] | None, identity: Identity
    ) -> Any:
        """Run ``action`` and return its typed result."""
        try:
            parsed = AdminAction(action)
        except ValueError:
            raise ValidationError(f"Unknown action: {action}") from None

        payload = payload or {}
        logger.info(
            "admin_action",
            action=parsed.value,
            caller=identity.username,
            role=identity.role.value,
        )
        if parsed is AdminAction.LIST_USERS:
            return await self.list_users(identity)
        if parsed is AdminAction.CREATE_USER:
            return await self.create_user(identity, payload)
        if parsed is AdminAction.DELETE_USER:
            await self.delete_user(identity, payload)
            return None
        assert_never(parsed)

    async def handle_event(self, event: dict[str, Any], identity: Identity) -> Any:
        """Accept either ``{action, payload}`` or a resolver-style ``{fieldName, arguments}``.

        Resolver-style events get the bare result back; direct invocations get
        the result wrapped the way the admin routes return it.
        """
        action = event.get("action") or event.get("fieldName") or ""
        payload = event.get("payload") or event.get("arguments") or {}
        result = await self.dispatch(action, payload, identity)
        bare = "fieldName" in event

        if isinstance(result, list):
            users = [u.to_wire() for u in result]
            return users if bare else {"users": users}
        if result is not None:
            return result.to_wire() if bare else {"success": True, "user": result.to_wire()}
        username = payload.get("username")
        return {"success": True, "username": username}

    # ------------------------------------------------------------------
    # listUsers
    # ------------------------------------------------------------------

    async def list_users(self, identity: Identity) -> list[User]:
        records = await self._directory.list_users()
        semaphore = asyncio.Semaphore(self._lookup_limit)

        async def lookup(record: DirectoryUser) -> StepResult[list[str]]:
            async with semaphore:
                return await run_step(
                    f"list_groups:{record.username}",
                    self._directory.list_groups_for_user(record.username),
                )

        lookups = await asyncio.gather(*(lookup(r) for r in records))

        users: list[User] = []
        for record, groups in zip(records, lookups, strict=True):
            if not groups.ok:
                logger.error(
                    "group_lookup_failed", username=record.username, error=str(groups.error)
                )
            users.append(to_user(record, groups.value_or([])))

        return self._scope_listing(identity, users)

    @staticmethod
    def _scope_listing(identity: Identity, users: list[User]) -> list[User]:
        role = identity.role
        if role is Role.SUPER_ADMIN:
            return users
        if role in (Role.ADMIN, Role.INCIDENT_REPORTER, Role.CUSTOMER):
            if not identity.company_id:
                return []
            return [u for u in users if u.company_id == identity.company_id]
        assert_never(role)

    # ------------------------------------------------------------------
    # createUser
    # ------------------------------------------------------------------

    async def create_user(self, identity: Identity, payload: dict[str, Any]) -> User:
        email = _required(payload, "email").strip().lower()
        group_name = _required(payload, "group")
        group = Role.parse(group_name)
        if group is None:
            valid = ", ".join(r.value for r in Role)
            raise ValidationError(f"Invalid group: {group_name}. Must be one of: {valid}")

        company_id, company_name = self._tenant_for_new_user(identity, group, payload)
        password = payload.get("tempPassword") or generate_temp_password()
        attributes = build_attributes(email, company_id, company_name)

        created = await self._directory.create_user(email, attributes, password)
        logger.info("user_provisioning_started", username=email, group=group.value)

        steps = (
            ("set_password", lambda: self._directory.set_password(email, password)),
            ("add_to_group", lambda: self._directory.add_to_group(email, group.value)),
        )
        for name, call in steps:
            result = await run_step(name, call())
            if not result.ok:
                await self._abandon(email, result)
                result.unwrap()

        logger.info("user_provisioned", username=email, company_id=company_id)
        return to_user(created, [group.value])

    @staticmethod
    def _tenant_for_new_user(
        identity: Identity, group: Role, payload: dict[str, Any]
    ) -> tuple[str | None, str | None]:
        role = identity.role
        if role is Role.SUPER_ADMIN:
            return payload.get("companyId") or None, payload.get("companyName") or None
        if role in (Role.ADMIN, Role.INCIDENT_REPORTER, Role.CUSTOMER):
            if group is Role.SUPER_ADMIN:
                raise AuthorizationError("Only SuperAdmins can create SuperAdmin users")
            if not identity.company_id:
                raise AuthorizationError("Caller has no company assigned")
            # The caller's tenant always wins over whatever the payload says
            return identity.company_id, identity.company_name
        assert_never(role)

    async def _abandon(self, username: str, failed: StepResult[Any]) -> None:
        """Undo a half-provisioned user after ``failed`` broke the pipeline."""
        logger.error(
            "user_provisioning_failed",
            username=username,
            step=failed.step,
            error=str(failed.error),
            rollback=self._rollback,
        )
        if not self._rollback:
            return
        rollback = await run_step("rollback_delete", self._directory.delete_user(username))
        if not rollback.ok:
            logger.error("user_rollback_failed", username=username, error=str(rollback.error))

    # ------------------------------------------------------------------
    # deleteUser
    # ------------------------------------------------------------------

    async def delete_user(self, identity: Identity, payload: dict[str, Any]) -> None:
        username = _required(payload, "username")
        role = identity.role
        if role is Role.SUPER_ADMIN:
            pass
        elif role is Role.ADMIN:
            target = await self._directory.get_user(username)
            if not identity.company_id or company_id_of(target) != identity.company_id:
                raise AuthorizationError("Cannot delete users outside your company")
        elif role in (Role.INCIDENT_REPORTER, Role.CUSTOMER):
            raise AuthorizationError("Admin access required")
        else:
            assert_never(role)

        await self._directory.delete_user(username)
        logger.info("user_deleted", username=username, caller=identity.username)
