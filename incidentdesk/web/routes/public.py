"""Unauthenticated routes backing the public incident form."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, Depends

from incidentdesk.data.api import COMPANY, INCIDENT_REPORT, DataApi
from incidentdesk.exceptions import AuthorizationError, NotFoundError
from incidentdesk.models.api import PublicReportRequest
from incidentdesk.types import ReportStatus
from incidentdesk.web.dependencies import get_data_api

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/public", tags=["public"])

PUBLIC_COMPANY_FIELDS = ("id", "name", "logoUrl", "isActive")

PUBLIC_SUBMITTER = "Public Form Submission"


@router.get("/companies/{company_id}")
async def get_public_company(
    company_id: str,
    data: DataApi = Depends(get_data_api),
) -> dict[str, Any]:
    company = (await data.get(COMPANY, company_id, PUBLIC_COMPANY_FIELDS)).unwrap(
        "fetch company information"
    )
    if not company:
        raise NotFoundError("Company not found")
    return {"company": company}


@router.post("/incident-reports", status_code=201)
async def submit_public_report(
    body: PublicReportRequest,
    data: DataApi = Depends(get_data_api),
) -> dict[str, Any]:
    company = (await data.get(COMPANY, body.company_id, PUBLIC_COMPANY_FIELDS)).unwrap(
        "fetch company"
    )
    if not company:
        raise NotFoundError("Invalid company")
    if company.get("isActive") is False:
        raise AuthorizationError("This company is not currently accepting incident reports")

    values = body.values()
    values.update(
        companyId=company["id"],
        companyName=company.get("name"),
        status=ReportStatus.SUBMITTED.value,
        submittedAt=datetime.now(UTC).isoformat(),
        submittedBy=body.email or PUBLIC_SUBMITTER,
    )
    report = (await data.create(INCIDENT_REPORT, values)).unwrap("submit incident report")
    report_id = report["id"] if report else None
    logger.info("public_report_submitted", report_id=report_id, company_id=company["id"])
    return {
        "success": True,
        "reportId": report_id,
        "message": "Incident report submitted successfully",
    }
