"""Incident report API routes, including the analysis trigger."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends

from incidentdesk.data.api import INCIDENT_REPORT, MODEL_FIELDS, DataApi
from incidentdesk.exceptions import NotFoundError, ValidationError
from incidentdesk.models.api import CreateReportRequest, UpdateReportRequest
from incidentdesk.models.domain import Identity
from incidentdesk.types import AnalysisState, ReportStatus
from incidentdesk.web.auth.rbac import get_identity
from incidentdesk.web.dependencies import get_analyzer, get_data_api
from incidentdesk.worker.analyze import ReportAnalyzer

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/incident-reports", tags=["incident-reports"])

# Listing omits the analysis blob
LIST_FIELDS = tuple(f for f in MODEL_FIELDS[INCIDENT_REPORT] if f != "aiAnalysis")


def can_see_report(identity: Identity, report: dict[str, Any]) -> bool:
    if identity.is_super_admin:
        return True
    if identity.company_id and report.get("companyId") == identity.company_id:
        return True
    submitter = report.get("submittedBy")
    return bool(submitter) and submitter in (identity.email, identity.username)


def _newest_first(reports: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(
        reports,
        key=lambda r: r.get("submittedAt") or r.get("createdAt") or "",
        reverse=True,
    )


async def _load(data: DataApi, identity: Identity, report_id: str) -> dict[str, Any]:
    report = (await data.get(INCIDENT_REPORT, report_id)).unwrap("fetch incident report")
    if not report or not can_see_report(identity, report):
        raise NotFoundError("Incident report not found")
    return report


async def run_analysis(analyzer: ReportAnalyzer, report_id: str) -> None:
    """Background task body; the analyzer has already recorded any failure."""
    try:
        await analyzer.run(report_id)
    except Exception as exc:
        logger.warning("background_analysis_failed", report_id=report_id, error=str(exc))


@router.get("")
async def list_reports(
    identity: Identity = Depends(get_identity),
    data: DataApi = Depends(get_data_api),
) -> dict[str, Any]:
    reports = (await data.list_all(INCIDENT_REPORT, LIST_FIELDS)).unwrap(
        "fetch incident reports"
    ) or []
    visible = [r for r in reports if can_see_report(identity, r)]
    return {"reports": _newest_first(visible)}


@router.post("", status_code=201)
async def create_report(
    body: CreateReportRequest,
    identity: Identity = Depends(get_identity),
    data: DataApi = Depends(get_data_api),
) -> dict[str, Any]:
    values = body.values()
    if not identity.is_super_admin:
        values.pop("companyId", None)
        values.pop("companyName", None)
        if identity.company_id:
            values["companyId"] = identity.company_id
        if identity.company_name:
            values["companyName"] = identity.company_name
    values.setdefault("submittedBy", identity.email or identity.username)
    values["status"] = ReportStatus.SUBMITTED.value
    values["submittedAt"] = datetime.now(UTC).isoformat()

    report = (await data.create(INCIDENT_REPORT, values)).unwrap("create incident report")
    logger.info(
        "report_created",
        report_id=report and report.get("id"),
        company_id=values.get("companyId"),
    )
    return {"report": report}


@router.get("/{report_id}")
async def get_report(
    report_id: str,
    identity: Identity = Depends(get_identity),
    data: DataApi = Depends(get_data_api),
) -> dict[str, Any]:
    return {"report": await _load(data, identity, report_id)}


@router.patch("/{report_id}")
async def update_report(
    report_id: str,
    body: UpdateReportRequest,
    identity: Identity = Depends(get_identity),
    data: DataApi = Depends(get_data_api),
) -> dict[str, Any]:
    changes = body.values()
    await _load(data, identity, report_id)
    report = (await data.update(INCIDENT_REPORT, report_id, changes)).unwrap(
        "update incident report"
    )
    logger.info("report_updated", report_id=report_id, fields=sorted(changes))
    return {"report": report}


@router.delete("/{report_id}")
async def delete_report(
    report_id: str,
    identity: Identity = Depends(get_identity),
    data: DataApi = Depends(get_data_api),
) -> dict[str, Any]:
    await _load(data, identity, report_id)
    (await data.delete(INCIDENT_REPORT, report_id)).unwrap("delete incident report")
    logger.info("report_deleted", report_id=report_id)
    return {"success": True, "message": "Incident report deleted successfully"}


@router.post("/{report_id}/analyze", status_code=202)
async def analyze_report(
    report_id: str,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_identity),
    data: DataApi = Depends(get_data_api),
    analyzer: ReportAnalyzer = Depends(get_analyzer),
) -> dict[str, Any]:
    report = await _load(data, identity, report_id)
    if not report.get("photoUrls"):
        raise ValidationError("No photos to analyze")

    pending = json.dumps({"status": AnalysisState.PENDING.value})
    (await data.update(INCIDENT_REPORT, report_id, {"aiAnalysis": pending})).unwrap(
        "mark analysis pending"
    )
    background_tasks.add_task(run_analysis, analyzer, report_id)
    logger.info("analysis_scheduled", report_id=report_id)
    return {"status": "accepted", "reportId": report_id}
