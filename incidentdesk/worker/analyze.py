"""Background AI analysis of an incident report's photos.

Sequence: fetch report -> call detection service -> copy every referenced
output image into the application bucket -> write the merged result back.
A failure anywhere is recorded on the report (best effort) and re-raised so
the invoking platform marks the invocation failed.
"""

from __future__ import annotations

import json
import secrets
import string
import time
from typing import TYPE_CHECKING, Any

import structlog

from incidentdesk.data.api import INCIDENT_REPORT
from incidentdesk.detection.client import build_payload
from incidentdesk.exceptions import NotFoundError, StorageError
from incidentdesk.models.domain import AnalysisOutcome
from incidentdesk.storage.object_store import parse_s3_uri
from incidentdesk.types import AnalysisState, ReportStatus
from incidentdesk.utils.steps import StepResult, run_step

if TYPE_CHECKING:
    from incidentdesk.config.settings import Settings
    from incidentdesk.data.api import DataApi
    from incidentdesk.detection.client import DetectionClient
    from incidentdesk.storage.object_store import ObjectStore

logger = structlog.get_logger(__name__)

REPORT_FIELDS = ("id", "incidentDate", "description", "photoUrls")

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def analyzed_image_key(prefix: str, report_id: str) -> str:
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"{prefix}/{report_id}/analyzed-{int(time.time() * 1000)}-{suffix}.jpeg"


def location_of(detection: Any) -> str | None:
    """The detection's output location, or None when absent or not a string."""
    if not isinstance(detection, dict):
        return None
    uri = detection.get("output_s3_uri")
    return uri if isinstance(uri, str) and uri else None


def output_locations(detections: list[Any]) -> list[str]:
    """Distinct output locations in first-seen order."""
    return list(dict.fromkeys(uri for uri in map(location_of, detections) if uri))


def malformed_locations(detections: list[Any]) -> list[Any]:
    """Output location values that are present but not strings."""
    return [
        d["output_s3_uri"]
        for d in detections
        if isinstance(d, dict) and d.get("output_s3_uri") and location_of(d) is None
    ]


class ReportAnalyzer:
    """Runs one analysis for one report. Stateless between calls."""

    def __init__(
        self,
        data_api: DataApi,
        object_store: ObjectStore,
        detection: DetectionClient,
        photo_prefix: str = "incident-photos",
        reported_peril: str = "",
    ) -> None:
        self._data = data_api
        self._store = object_store
        self._detection = detection
        self._prefix = photo_prefix
        self._peril = reported_peril

    @classmethod
    def from_settings(cls, settings: Settings) -> ReportAnalyzer:
        from incidentdesk.data.api import create_data_api
        from incidentdesk.detection.client import DetectionClient
        from incidentdesk.storage.object_store import create_object_store

        return cls(
            data_api=create_data_api(settings),
            object_store=create_object_store(settings),
            detection=DetectionClient(settings.detection_url, timeout=settings.detection_timeout),
            photo_prefix=settings.photo_prefix,
            reported_peril=settings.reported_peril,
        )

    async def run(self, report_id: str) -> AnalysisOutcome:
        log = logger.bind(report_id=report_id)
        log.info("analysis_started")
        try:
            return await self._analyze(report_id, log)
        except Exception as exc:
            log.exception("analysis_failed")
            marked = await self._record_failure(report_id, exc)
            if not marked.ok:
                log.error("analysis_failure_not_recorded", error=str(marked.error))
            raise

    async def _analyze(self, report_id: str, log: Any) -> AnalysisOutcome:
        report = (await self._data.get(INCIDENT_REPORT, report_id, REPORT_FIELDS)).unwrap(
            "fetch report"
        )
        if not report:
            raise NotFoundError(f"Report {report_id} not found")

        if not report.get("photoUrls"):
            log.info("analysis_skipped_no_photos")
            return AnalysisOutcome(success=True, message="No photos to analyze")

        payload = build_payload(report, self._store.bucket, self._peril)
        analysis = await self._detection.analyze(payload)
        analysis = await self._attach_local_copies(report_id, analysis, log)

        (
            await self._data.update(
                INCIDENT_REPORT,
                report_id,
                {"aiAnalysis": json.dumps(analysis), "status": ReportStatus.SUBMITTED.value},
            )
        ).unwrap("save analysis")

        log.info("analysis_completed", copied=len(analysis["all_local_paths"]))
        return AnalysisOutcome(success=True, message="Analysis complete", analysis=analysis)

    async def _attach_local_copies(
        self, report_id: str, analysis: dict[str, Any], log: Any
    ) -> dict[str, Any]:
        detections = analysis.get("detections") or []
        if not isinstance(detections, list):
            log.warning("analysis_detections_not_a_list", kind=type(detections).__name__)
            detections = []
        copied: dict[str, str] = {}
        warnings: list[dict[str, str]] = []

        for location in output_locations(detections):
            result = await run_step(f"copy:{location}", self._copy(report_id, location))
            if result.ok:
                copied[location] = result.unwrap()
            else:
                log.error("analysis_copy_failed", location=location, error=str(result.error))
                warnings.append({"uri": location, "error": str(result.error)})

        for value in malformed_locations(detections):
            log.error("analysis_copy_failed", location=repr(value), error="not a string")
            warnings.append({"uri": str(value), "error": "Malformed output location"})

        merged = dict(analysis)
        if detections:
            merged["detections"] = [
                {**d, "local_output_path": copied[uri]}
                if (uri := location_of(d)) in copied
                else d
                for d in detections
            ]
        merged["all_local_paths"] = list(copied.values())
        if warnings:
            merged["copy_warnings"] = warnings
        return merged

    async def _copy(self, report_id: str, location: str) -> str:
        parsed = parse_s3_uri(location)
        if parsed is None:
            raise StorageError(f"Malformed output location: {location}")
        bucket, key = parsed
        data = await self._store.read_location(bucket, key)
        target = analyzed_image_key(self._prefix, report_id)
        await self._store.put(target, data, content_type="image/jpeg")
        logger.debug("analysis_image_copied", source=location, target=target)
        return target

    async def _record_failure(self, report_id: str, exc: Exception) -> StepResult[Any]:
        failure = {"status": AnalysisState.FAILED.value, "error": str(exc)}

        async def mark() -> Any:
            return (
                await self._data.update(
                    INCIDENT_REPORT,
                    report_id,
                    {"aiAnalysis": json.dumps(failure), "status": ReportStatus.SUBMITTED.value},
                )
            ).unwrap("record analysis failure")

        return await run_step("record_failure", mark())
