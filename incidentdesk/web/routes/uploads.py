"""Photo upload route.

Uploads land under ``<photo prefix>/<scope>/...`` where ``scope`` is either
the caller's company id (photos for a report not yet submitted) or the id of
a report the caller can see. Analysis images are written only by the worker.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile

from incidentdesk.data.api import INCIDENT_REPORT
from incidentdesk.exceptions import AuthorizationError, ValidationError
from incidentdesk.models.domain import Identity
from incidentdesk.web.auth.rbac import get_identity
from incidentdesk.web.dependencies import Services, get_services
from incidentdesk.web.routes.reports import can_see_report

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/upload", tags=["uploads"])

ANALYZED_PREFIX = "analyzed-"


def split_photo_key(path: str, photo_prefix: str) -> tuple[str, str, str]:
    """Normalise ``path`` and return (key, scope, file name)."""
    key = path.strip().lstrip("/")
    if not key:
        raise ValidationError("File and path are required")
    parts = key.split("/")
    if len(parts) < 3 or parts[0] != photo_prefix or not all(parts[1:]) or ".." in parts:
        raise ValidationError(f"Path must look like {photo_prefix}/<scope>/<file>")
    return key, parts[1], parts[-1]


async def check_upload_scope(identity: Identity, scope: str, services: Services) -> None:
    """Raise AuthorizationError unless ``identity`` may write under ``scope``."""
    if identity.is_super_admin:
        return
    if identity.company_id and scope == identity.company_id:
        return
    report = (await services.data_api.get(INCIDENT_REPORT, scope)).unwrap("fetch incident report")
    if report and can_see_report(identity, report):
        return
    raise AuthorizationError("Cannot upload outside your company or reports")


@router.post("/photos")
async def upload_photo(
    file: UploadFile = File(...),
    path: str = Form(...),
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    key, scope, name = split_photo_key(path, services.settings.photo_prefix)
    if name.startswith(ANALYZED_PREFIX):
        raise AuthorizationError("Analysis images cannot be uploaded")
    await check_upload_scope(identity, scope, services)

    store = services.object_store
    data = await file.read()
    await store.put(key, data, content_type=file.content_type)
    logger.info("photo_uploaded", key=key, size=len(data), username=identity.username)
    return {"success": True, "path": key, "url": store.url_for(key)}
