"""In-process directory for local mode (Cognito in production)."""

from __future__ import annotations

from datetime import UTC, datetime

import structlog

from incidentdesk.config.settings import LOCAL_USERNAME
from incidentdesk.exceptions import DirectoryError
from incidentdesk.identity.directory import Directory
from incidentdesk.models.domain import ATTR_EMAIL, ATTR_EMAIL_VERIFIED, DirectoryUser
from incidentdesk.types import Role

logger = structlog.get_logger(__name__)


class InMemoryDirectory(Directory):
    """Dict-backed user pool mirroring Cognito's error codes."""

    def __init__(self) -> None:
        self._users: dict[str, DirectoryUser] = {}
        self._groups: dict[str, list[str]] = {}
        self._passwords: dict[str, tuple[str, bool]] = {}

    @classmethod
    def with_local_admin(cls) -> InMemoryDirectory:
        directory = cls()
        directory.seed(
            LOCAL_USERNAME,
            {ATTR_EMAIL: LOCAL_USERNAME, ATTR_EMAIL_VERIFIED: "true"},
            groups=[Role.SUPER_ADMIN.value],
        )
        return directory

    def seed(
        self, username: str, attributes: dict[str, str], groups: list[str] | None = None
    ) -> DirectoryUser:
        user = DirectoryUser(
            username=username,
            attributes=dict(attributes),
            status="CONFIRMED",
            enabled=True,
            created_at=datetime.now(UTC),
        )
        self._users[username] = user
        self._groups[username] = list(groups or [])
        return user

    def _require(self, username: str) -> DirectoryUser:
        user = self._users.get(username)
        if user is None:
            raise DirectoryError("UserNotFoundException", "User does not exist.")
        return user

    async def list_users(self) -> list[DirectoryUser]:
        return list(self._users.values())

    async def get_user(self, username: str) -> DirectoryUser:
        return self._require(username)

    async def create_user(
        self, username: str, attributes: dict[str, str], temporary_password: str
    ) -> DirectoryUser:
        if username in self._users:
            raise DirectoryError(
                "UsernameExistsException", "An account with the given email already exists."
            )
        user = DirectoryUser(
            username=username,
            attributes=dict(attributes),
            status="FORCE_CHANGE_PASSWORD",
            enabled=True,
            created_at=datetime.now(UTC),
        )
        self._users[username] = user
        self._groups[username] = []
        self._passwords[username] = (temporary_password, False)
        logger.info("local_user_created", username=username)
        return user

    async def set_password(self, username: str, password: str, permanent: bool = False) -> None:
        user = self._require(username)
        self._passwords[username] = (password, permanent)
        user.status = "CONFIRMED" if permanent else "FORCE_CHANGE_PASSWORD"

    async def add_to_group(self, username: str, group: str) -> None:
        self._require(username)
        if Role.parse(group) is None:
            raise DirectoryError("ResourceNotFoundException", "Group not found.")
        if group not in self._groups[username]:
            self._groups[username].append(group)

    async def delete_user(self, username: str) -> None:
        self._require(username)
        del self._users[username]
        self._groups.pop(username, None)
        self._passwords.pop(username, None)
        logger.info("local_user_deleted", username=username)

    async def list_groups_for_user(self, username: str) -> list[str]:
        self._require(username)
        return list(self._groups[username])
