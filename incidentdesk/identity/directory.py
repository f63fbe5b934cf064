"""Abstract identity directory interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from incidentdesk.config.settings import Settings
    from incidentdesk.models.domain import DirectoryUser


class Directory(ABC):
    """The user pool: user records, flat attributes and group memberships.

    Implementations raise ``DirectoryError`` carrying the native error code
    when a call fails.
    """

    @abstractmethod
    async def list_users(self) -> list[DirectoryUser]:
        """Return every user in directory order."""

    @abstractmethod
    async def get_user(self, username: str) -> DirectoryUser:
        """Return one user; raises DirectoryError(UserNotFoundException) if absent."""

    @abstractmethod
    async def create_user(
        self, username: str, attributes: dict[str, str], temporary_password: str
    ) -> DirectoryUser:
        """Create a user without sending an invitation message."""

    @abstractmethod
    async def set_password(self, username: str, password: str, permanent: bool = False) -> None:
        """Set a user's password."""

    @abstractmethod
    async def add_to_group(self, username: str, group: str) -> None:
        """Add a user to a group."""

    @abstractmethod
    async def delete_user(self, username: str) -> None:
        """Delete a user."""

    @abstractmethod
    async def list_groups_for_user(self, username: str) -> list[str]:
        """Return the names of the groups a user belongs to."""


def create_directory(settings: Settings) -> Directory:
    """Factory: create the appropriate Directory based on settings."""
    if settings.use_aws:
        from incidentdesk.identity.cognito import CognitoDirectory

        return CognitoDirectory(
            user_pool_id=settings.user_pool_id or "",
            region=settings.aws_region,
        )

    from incidentdesk.identity.memory import InMemoryDirectory

    return InMemoryDirectory.with_local_admin()
