"""Provision a fresh user pool, web client, role groups and first SuperAdmin."""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from typing import Any

import structlog
from aiobotocore.session import get_session

from incidentdesk.admin.setup_directory import TENANT_ATTRIBUTES, create_role_groups
from incidentdesk.config.logging import setup_logging
from incidentdesk.config.settings import Settings, get_settings
from incidentdesk.exceptions import ConfigError
from incidentdesk.identity.attributes import build_attributes
from incidentdesk.identity.cognito import to_attribute_list
from incidentdesk.types import Role

logger = structlog.get_logger(__name__)

PASSWORD_POLICY = {
    "MinimumLength": 8,
    "RequireUppercase": True,
    "RequireLowercase": True,
    "RequireNumbers": True,
    "RequireSymbols": True,
}


@dataclass(frozen=True)
class BootstrapResult:
    user_pool_id: str
    client_id: str
    admin_username: str


async def create_user_pool(client: Any, name: str) -> str:
    schema = [
        {"Name": "email", "Required": True, "Mutable": False, "AttributeDataType": "String"},
        *(
            {"Name": attr, "Mutable": True, "AttributeDataType": "String"}
            for attr in TENANT_ATTRIBUTES
        ),
    ]
    resp = await client.create_user_pool(
        PoolName=name,
        Policies={"PasswordPolicy": PASSWORD_POLICY},
        UsernameAttributes=["email"],
        AutoVerifiedAttributes=["email"],
        Schema=schema,
    )
    return resp["UserPool"]["Id"]


async def create_web_client(client: Any, pool_id: str, name: str) -> str:
    resp = await client.create_user_pool_client(
        UserPoolId=pool_id,
        ClientName=name,
        GenerateSecret=False,
        ExplicitAuthFlows=[
            "ALLOW_USER_PASSWORD_AUTH",
            "ALLOW_USER_SRP_AUTH",
            "ALLOW_REFRESH_TOKEN_AUTH",
        ],
    )
    return resp["UserPoolClient"]["ClientId"]


async def create_super_admin(client: Any, pool_id: str, email: str, password: str) -> None:
    await client.admin_create_user(
        UserPoolId=pool_id,
        Username=email,
        UserAttributes=to_attribute_list(build_attributes(email)),
        MessageAction="SUPPRESS",
    )
    await client.admin_set_user_password(
        UserPoolId=pool_id, Username=email, Password=password, Permanent=True
    )
    await client.admin_add_user_to_group(
        UserPoolId=pool_id, Username=email, GroupName=Role.SUPER_ADMIN.value
    )


async def bootstrap(settings: Settings) -> BootstrapResult:
    if not settings.bootstrap_admin_password:
        raise ConfigError("BOOTSTRAP_ADMIN_PASSWORD is not set")

    session = get_session()
    async with session.create_client("cognito-idp", region_name=settings.aws_region) as client:
        print("Creating user pool...")
        pool_id = await create_user_pool(client, settings.bootstrap_pool_name)
        print(f"User pool created: {pool_id}")

        print("Creating web client...")
        client_id = await create_web_client(client, pool_id, settings.bootstrap_client_name)
        print(f"Client created: {client_id}")

        print("Creating role groups...")
        await create_role_groups(client, pool_id)

        print("Creating SuperAdmin user...")
        await create_super_admin(
            client, pool_id, settings.bootstrap_admin_email, settings.bootstrap_admin_password
        )
        print(f"SuperAdmin created: {settings.bootstrap_admin_email}")

    logger.info("bootstrap_complete", user_pool_id=pool_id, client_id=client_id)
    return BootstrapResult(
        user_pool_id=pool_id,
        client_id=client_id,
        admin_username=settings.bootstrap_admin_email,
    )


def main() -> int:
    try:
        settings = get_settings()
        setup_logging(log_level=settings.log_level)
        result = asyncio.run(bootstrap(settings))
    except Exception as exc:
        print(f"Bootstrap failed: {exc}", file=sys.stderr)
        return 1

    print()
    print(f"USER_POOL_ID={result.user_pool_id}")
    print(f"USER_POOL_CLIENT_ID={result.client_id}")
    print(f"AWS_REGION={settings.aws_region}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
