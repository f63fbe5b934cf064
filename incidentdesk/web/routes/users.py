"""Admin user-management API routes."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends

from incidentdesk.identity.admin_actions import AdminActionsHandler
from incidentdesk.models.api import CreateUserRequest, DeleteUserRequest
from incidentdesk.models.domain import Identity
from incidentdesk.web.auth.rbac import require_admin
from incidentdesk.web.dependencies import get_admin_actions

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/admin/users", tags=["users"])


@router.get("")
async def list_users(
    identity: Identity = Depends(require_admin),
    admin: AdminActionsHandler = Depends(get_admin_actions),
) -> dict[str, Any]:
    users = await admin.list_users(identity)
    return {"users": [u.to_wire() for u in users]}


@router.post("/create", status_code=201)
async def create_user(
    body: CreateUserRequest,
    identity: Identity = Depends(require_admin),
    admin: AdminActionsHandler = Depends(get_admin_actions),
) -> dict[str, Any]:
    user = await admin.create_user(identity, body.values())
    return {"success": True, "user": user.to_wire()}


@router.delete("/delete")
async def delete_user(
    body: DeleteUserRequest,
    identity: Identity = Depends(require_admin),
    admin: AdminActionsHandler = Depends(get_admin_actions),
) -> dict[str, Any]:
    await admin.delete_user(identity, body.values())
    return {"success": True, "message": f"User {body.username} deleted successfully"}
