"""FastAPI dependency providers and per-app collaborator wiring."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from fastapi import Request

from incidentdesk.data.api import create_data_api
from incidentdesk.detection.client import DetectionClient
from incidentdesk.identity.admin_actions import AdminActionsHandler
from incidentdesk.identity.directory import create_directory
from incidentdesk.storage.object_store import create_object_store
from incidentdesk.worker.analyze import ReportAnalyzer

if TYPE_CHECKING:
    from incidentdesk.config.settings import Settings
    from incidentdesk.data.api import DataApi
    from incidentdesk.identity.directory import Directory
    from incidentdesk.storage.object_store import ObjectStore
    from incidentdesk.web.auth.cognito import CognitoTokenVerifier

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    """Everything a request handler may talk to, built once per app."""

    settings: Settings
    directory: Directory
    data_api: DataApi
    object_store: ObjectStore
    admin_actions: AdminActionsHandler
    analyzer: ReportAnalyzer
    token_verifier: CognitoTokenVerifier | None = None


def build_services(settings: Settings) -> Services:
    """Construct the configured backends for one application instance."""
    directory = create_directory(settings)
    data_api = create_data_api(settings)
    object_store = create_object_store(settings)
    analyzer = ReportAnalyzer(
        data_api=data_api,
        object_store=object_store,
        detection=DetectionClient(settings.detection_url, timeout=settings.detection_timeout),
        photo_prefix=settings.photo_prefix,
        reported_peril=settings.reported_peril,
    )

    verifier = None
    if settings.auth_mode == "cognito":
        from incidentdesk.web.auth.cognito import CognitoTokenVerifier

        verifier = CognitoTokenVerifier(
            jwks_url=settings.jwks_url,
            issuer=settings.token_issuer,
            client_id=settings.user_pool_client_id,
        )

    logger.info(
        "services_built",
        backends="aws" if settings.use_aws else "local",
        auth_mode=settings.auth_mode,
    )
    return Services(
        settings=settings,
        directory=directory,
        data_api=data_api,
        object_store=object_store,
        admin_actions=AdminActionsHandler(
            directory,
            rollback_failed_provisioning=settings.rollback_failed_provisioning,
            group_lookup_concurrency=settings.group_lookup_concurrency,
        ),
        analyzer=analyzer,
        token_verifier=verifier,
    )


def get_services(request: Request) -> Services:
    services: Services = request.app.state.services
    return services


def get_data_api(request: Request) -> DataApi:
    return get_services(request).data_api


def get_admin_actions(request: Request) -> AdminActionsHandler:
    return get_services(request).admin_actions


def get_analyzer(request: Request) -> ReportAnalyzer:
    return get_services(request).analyzer
