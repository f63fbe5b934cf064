"""HTTP client for the external image-detection service."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from incidentdesk.exceptions import ConfigError, DetectionError

logger = structlog.get_logger(__name__)

_MEDIA_TYPES = {
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
}


def media_type_for(path: str) -> str:
    """Map a photo path's extension to a supported media type (default JPEG)."""
    ext = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    return _MEDIA_TYPES.get(ext, "image/jpeg")


def build_payload(
    report: dict[str, Any], bucket: str, reported_peril: str = ""
) -> dict[str, Any]:
    """Detection request for every photo of ``report`` stored in ``bucket``."""
    images = [
        {"s3_uri": f"s3://{bucket}/{path}", "format": media_type_for(path)}
        for path in report.get("photoUrls") or []
        if path
    ]
    return {
        "images": images,
        "analysis_context": {
            "image_id": report.get("id"),
            "reported_peril": reported_peril,
            "weather_summary": f"Analysis for incident on {report.get('incidentDate')}",
            "notes": report.get("description"),
        },
    }


class DetectionClient:
    """POSTs detection requests and unwraps the ``result`` envelope."""

    def __init__(
        self,
        url: str | None,
        timeout: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def analyze(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Return the detection result; raise DetectionError on any reported failure."""
        if not self._url:
            raise ConfigError("DETECTION_URL is not configured")

        logger.info("detection_request", images=len(payload.get("images", [])))
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(self._url, json=payload)
            if resp.is_error:
                logger.warning("detection_http_error", status=resp.status_code)
                raise DetectionError(
                    f"Detection service failed: {resp.text}",
                    details={"statusCode": resp.status_code},
                )
            try:
                body = resp.json()
            except ValueError as exc:
                raise DetectionError(
                    f"Detection service returned invalid JSON: {resp.text[:200]}",
                    details={"statusCode": resp.status_code},
                ) from exc

        if not isinstance(body, dict):
            raise DetectionError(
                f"Detection service returned a {type(body).__name__}, expected an object",
                details=body,
            )
        result = body.get("result", body)
        if not isinstance(result, dict):
            raise DetectionError("Detection service returned an unexpected body", details=body)
        if result.get("error"):
            raise DetectionError(
                f"Detection internal error: {result['error']}",
                details={"type": result.get("error_type")},
            )
        logger.info("detection_result", detections=len(result.get("detections") or []))
        return result
