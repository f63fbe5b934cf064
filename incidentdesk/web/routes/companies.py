"""Company CRUD API routes.

Any signed-in caller may read the companies visible to them; only a
SuperAdmin may create, change or delete one.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends

from incidentdesk.data.api import COMPANY, DataApi
from incidentdesk.exceptions import NotFoundError
from incidentdesk.models.api import CreateCompanyRequest, UpdateCompanyRequest
from incidentdesk.models.domain import Identity
from incidentdesk.web.auth.rbac import get_identity, require_super_admin
from incidentdesk.web.dependencies import get_data_api

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/admin/companies", tags=["companies"])


def can_see_company(identity: Identity, company_id: str | None) -> bool:
    return identity.is_super_admin or (
        identity.company_id is not None and identity.company_id == company_id
    )


async def _load(data: DataApi, identity: Identity, company_id: str) -> dict[str, Any]:
    company = (await data.get(COMPANY, company_id)).unwrap("fetch company")
    if not company or not can_see_company(identity, company.get("id")):
        raise NotFoundError("Company not found")
    return company


@router.get("")
async def list_companies(
    identity: Identity = Depends(get_identity),
    data: DataApi = Depends(get_data_api),
) -> dict[str, Any]:
    companies = (await data.list_all(COMPANY)).unwrap("fetch companies") or []
    visible = [c for c in companies if can_see_company(identity, c.get("id"))]
    return {"companies": visible}


@router.post("", status_code=201)
async def create_company(
    body: CreateCompanyRequest,
    identity: Identity = Depends(require_super_admin),
    data: DataApi = Depends(get_data_api),
) -> dict[str, Any]:
    company = (await data.create(COMPANY, {**body.values(), "isActive": True})).unwrap(
        "create company"
    )
    logger.info("company_created", company_id=company and company.get("id"))
    return {"company": company}


@router.get("/{company_id}")
async def get_company(
    company_id: str,
    identity: Identity = Depends(get_identity),
    data: DataApi = Depends(get_data_api),
) -> dict[str, Any]:
    return {"company": await _load(data, identity, company_id)}


@router.patch("/{company_id}")
async def update_company(
    company_id: str,
    body: UpdateCompanyRequest,
    identity: Identity = Depends(require_super_admin),
    data: DataApi = Depends(get_data_api),
) -> dict[str, Any]:
    changes = body.values()
    await _load(data, identity, company_id)
    company = (await data.update(COMPANY, company_id, changes)).unwrap("update company")
    logger.info("company_updated", company_id=company_id, fields=sorted(changes))
    return {"company": company}


@router.delete("/{company_id}")
async def delete_company(
    company_id: str,
    identity: Identity = Depends(require_super_admin),
    data: DataApi = Depends(get_data_api),
) -> dict[str, Any]:
    await _load(data, identity, company_id)
    # Users and reports of the company are left in place
    (await data.delete(COMPANY, company_id)).unwrap("delete company")
    logger.info("company_deleted", company_id=company_id)
    return {"success": True, "message": "Company deleted successfully"}
