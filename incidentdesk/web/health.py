"""Health check endpoint logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from incidentdesk import __version__
from incidentdesk.data.api import COMPANY

if TYPE_CHECKING:
    from incidentdesk.web.dependencies import Services

logger = structlog.get_logger(__name__)


async def check_health(services: Services) -> dict[str, object]:
    """Report which backends are configured and whether the data API answers."""
    settings = services.settings
    result: dict[str, object] = {
        "status": "healthy",
        "version": __version__,
        "auth_mode": settings.auth_mode,
        "backends": "aws" if settings.use_aws else "local",
        "bucket": services.object_store.bucket,
        "detection": "configured" if settings.detection_url else "unconfigured",
        "data_api": "connected",
    }

    try:
        probe = await services.data_api.get(COMPANY, "__health__", ("id",))
        if probe.errors:
            raise RuntimeError(str(probe.errors))
    except Exception as exc:
        logger.warning("health_check_data_api_failed", error=str(exc))
        result["data_api"] = "unavailable"
        result["status"] = "degraded"

    return result
