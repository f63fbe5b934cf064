"""Prepare an existing user pool: tenant attributes and role groups.

Idempotent: attributes or groups that already exist are skipped.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Any

import structlog
from aiobotocore.session import get_session
from botocore.exceptions import ClientError

from incidentdesk.config.logging import setup_logging
from incidentdesk.config.settings import Settings, get_settings
from incidentdesk.exceptions import ConfigError
from incidentdesk.types import GROUP_DESCRIPTIONS, Role

logger = structlog.get_logger(__name__)

TENANT_ATTRIBUTES = ("companyId", "companyName")


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


async def add_tenant_attributes(client: Any, pool_id: str) -> bool:
    """Add the custom tenant attributes. Returns False if they already existed."""
    try:
        await client.add_custom_attributes(
            UserPoolId=pool_id,
            CustomAttributes=[
                {"Name": name, "AttributeDataType": "String", "Mutable": True}
                for name in TENANT_ATTRIBUTES
            ],
        )
    except ClientError as exc:
        message = exc.response.get("Error", {}).get("Message", "")
        if _error_code(exc) == "InvalidParameterException" and "not unique" in message:
            return False
        raise
    return True


async def create_role_groups(client: Any, pool_id: str) -> list[str]:
    """Create every role group; returns the names actually created."""
    created: list[str] = []
    for role in Role:
        try:
            await client.create_group(
                UserPoolId=pool_id,
                GroupName=role.value,
                Description=GROUP_DESCRIPTIONS[role],
                Precedence=role.precedence,
            )
        except ClientError as exc:
            if _error_code(exc) != "GroupExistsException":
                raise
            print(f"Group {role.value} already exists, skipping")
            continue
        created.append(role.value)
        print(f"Created group {role.value}")
    return created


async def setup_directory(settings: Settings) -> None:
    if not settings.user_pool_id:
        raise ConfigError("USER_POOL_ID is not set")

    print(f"Setting up user pool {settings.user_pool_id}")
    session = get_session()
    async with session.create_client("cognito-idp", region_name=settings.aws_region) as client:
        if await add_tenant_attributes(client, settings.user_pool_id):
            print("Added custom attributes: " + ", ".join(TENANT_ATTRIBUTES))
        else:
            print("Custom attributes already exist, skipping")
        await create_role_groups(client, settings.user_pool_id)
    logger.info("directory_setup_complete", user_pool_id=settings.user_pool_id)
    print("Directory setup complete")


def main() -> int:
    try:
        settings = get_settings()
        setup_logging(log_level=settings.log_level)
        asyncio.run(setup_directory(settings))
    except Exception as exc:
        print(f"Setup failed: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
