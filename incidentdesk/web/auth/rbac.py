"""Role-based access control dependencies."""

from __future__ import annotations

import structlog
from fastapi import Depends, Request

from incidentdesk.config.settings import LOCAL_USERNAME
from incidentdesk.exceptions import AuthenticationError, AuthorizationError
from incidentdesk.models.domain import Identity
from incidentdesk.types import Role
from incidentdesk.web.dependencies import Services, get_services

logger = structlog.get_logger(__name__)


def get_local_identity() -> Identity:
    """Identity for single-user (self-hosted) mode."""
    return Identity(
        username=LOCAL_USERNAME,
        email=LOCAL_USERNAME,
        groups=(Role.SUPER_ADMIN.value,),
    )


async def get_identity(
    request: Request,
    services: Services = Depends(get_services),
) -> Identity:
    """Resolve the calling identity.

    In single mode every request is the local SuperAdmin. In cognito mode the
    Bearer token is verified against the pool's signing keys.
    """
    if services.settings.auth_mode == "single":
        return get_local_identity()

    if services.token_verifier is None:
        raise AuthenticationError("Token verification is not configured")
    identity = await services.token_verifier.authenticate(
        request.headers.get("authorization", "")
    )
    structlog.contextvars.bind_contextvars(username=identity.username)
    return identity


async def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    """Require Admin or SuperAdmin."""
    if identity.role not in (Role.SUPER_ADMIN, Role.ADMIN):
        logger.info("access_denied", username=identity.username, role=identity.role.value)
        raise AuthorizationError("Admin access required")
    return identity


async def require_super_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_super_admin:
        logger.info("access_denied", username=identity.username, role=identity.role.value)
        raise AuthorizationError("SuperAdmin access required")
    return identity
