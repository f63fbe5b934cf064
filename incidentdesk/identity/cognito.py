"""Cognito user pool directory via aiobotocore."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from aiobotocore.session import get_session
from botocore.exceptions import ClientError

from incidentdesk.exceptions import DirectoryError
from incidentdesk.identity.directory import Directory
from incidentdesk.models.domain import DirectoryUser

logger = structlog.get_logger(__name__)


def to_attribute_list(attributes: dict[str, str]) -> list[dict[str, str]]:
    return [{"Name": name, "Value": value} for name, value in attributes.items()]


def from_attribute_list(attributes: list[dict[str, Any]] | None) -> dict[str, str]:
    return {a["Name"]: a.get("Value", "") for a in attributes or []}


def _to_directory_user(raw: dict[str, Any], attributes_key: str = "Attributes") -> DirectoryUser:
    return DirectoryUser(
        username=raw["Username"],
        attributes=from_attribute_list(raw.get(attributes_key)),
        status=raw.get("UserStatus"),
        enabled=raw.get("Enabled", True),
        created_at=raw.get("UserCreateDate"),
    )


class CognitoDirectory(Directory):
    """Directory backed by an Amazon Cognito user pool."""

    def __init__(self, user_pool_id: str, region: str = "us-east-1") -> None:
        self._pool_id = user_pool_id
        self._session = get_session()
        self._config: dict[str, Any] = {"region_name": region}

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[Any]:
        """Open a cognito-idp client, translating ClientError to DirectoryError."""
        async with self._session.create_client("cognito-idp", **self._config) as client:
            try:
                yield client
            except ClientError as exc:
                error = exc.response.get("Error", {})
                code = error.get("Code", "ClientError")
                logger.warning("cognito_call_failed", code=code, error=error.get("Message"))
                raise DirectoryError(code, error.get("Message") or str(exc)) from exc

    async def list_users(self) -> list[DirectoryUser]:
        users: list[DirectoryUser] = []
        async with self._client() as client:
            paginator = client.get_paginator("list_users")
            async for page in paginator.paginate(UserPoolId=self._pool_id):
                users.extend(_to_directory_user(u) for u in page.get("Users", []))
        logger.debug("cognito_list_users", count=len(users))
        return users

    async def get_user(self, username: str) -> DirectoryUser:
        async with self._client() as client:
            resp = await client.admin_get_user(UserPoolId=self._pool_id, Username=username)
        return _to_directory_user(resp, attributes_key="UserAttributes")

    async def create_user(
        self, username: str, attributes: dict[str, str], temporary_password: str
    ) -> DirectoryUser:
        async with self._client() as client:
            resp = await client.admin_create_user(
                UserPoolId=self._pool_id,
                Username=username,
                UserAttributes=to_attribute_list(attributes),
                MessageAction="SUPPRESS",
                TemporaryPassword=temporary_password,
            )
        logger.info("cognito_user_created", username=username)
        return _to_directory_user(resp["User"])

    async def set_password(self, username: str, password: str, permanent: bool = False) -> None:
        async with self._client() as client:
            await client.admin_set_user_password(
                UserPoolId=self._pool_id,
                Username=username,
                Password=password,
                Permanent=permanent,
            )

    async def add_to_group(self, username: str, group: str) -> None:
        async with self._client() as client:
            await client.admin_add_user_to_group(
                UserPoolId=self._pool_id, Username=username, GroupName=group
            )

    async def delete_user(self, username: str) -> None:
        async with self._client() as client:
            await client.admin_delete_user(UserPoolId=self._pool_id, Username=username)
        logger.info("cognito_user_deleted", username=username)

    async def list_groups_for_user(self, username: str) -> list[str]:
        groups: list[str] = []
        async with self._client() as client:
            paginator = client.get_paginator("admin_list_groups_for_user")
            async for page in paginator.paginate(UserPoolId=self._pool_id, Username=username):
                groups.extend(g["GroupName"] for g in page.get("Groups", []) if g.get("GroupName"))
        return groups
