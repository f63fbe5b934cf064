"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from httpx import ASGITransport, AsyncClient

from incidentdesk.config.settings import Settings
from incidentdesk.data.memory import InMemoryDataApi
from incidentdesk.detection.client import DetectionClient
from incidentdesk.identity.admin_actions import AdminActionsHandler
from incidentdesk.identity.memory import InMemoryDirectory
from incidentdesk.models.domain import ATTR_COMPANY_ID, ATTR_COMPANY_NAME, ATTR_EMAIL, Identity
from incidentdesk.storage.local_store import LocalObjectStore
from incidentdesk.web.app import create_app
from incidentdesk.web.auth.rbac import get_identity
from incidentdesk.web.dependencies import Services
from incidentdesk.worker.analyze import ReportAnalyzer


def _identity(
    groups: tuple[str, ...] = ("Admin",),
    company_id: str | None = "acme",
    username: str = "caller@acme.test",
) -> Identity:
    return Identity(
        username=username,
        email=username,
        groups=groups,
        company_id=company_id,
        company_name=f"{company_id.title()} Co" if company_id else None,
    )


@pytest.fixture()
def make_identity() -> Callable[..., Identity]:
    """Factory for caller identities; defaults to an Acme Admin."""
    return _identity


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        local_data_dir=str(tmp_path),
        detection_url="http://detector.test/analyze",
    )


@pytest.fixture()
def directory() -> InMemoryDirectory:
    """Pool with one SuperAdmin and two users in each of two tenants."""
    d = InMemoryDirectory()
    d.seed("root@corp.test", {ATTR_EMAIL: "root@corp.test"}, groups=["SuperAdmin"])
    for company in ("acme", "globex"):
        attrs = {ATTR_COMPANY_ID: company, ATTR_COMPANY_NAME: f"{company.title()} Co"}
        d.seed(f"admin@{company}.test", {ATTR_EMAIL: f"admin@{company}.test", **attrs}, ["Admin"])
        d.seed(
            f"reporter@{company}.test",
            {ATTR_EMAIL: f"reporter@{company}.test", **attrs},
            ["IncidentReporter"],
        )
    return d


@pytest.fixture()
def data_api() -> InMemoryDataApi:
    return InMemoryDataApi()


@pytest.fixture()
def object_store(tmp_path) -> LocalObjectStore:
    return LocalObjectStore(base_dir=tmp_path / "storage", bucket="app-bucket")


@pytest.fixture()
def services(settings, directory, data_api, object_store) -> Services:
    return Services(
        settings=settings,
        directory=directory,
        data_api=data_api,
        object_store=object_store,
        admin_actions=AdminActionsHandler(directory),
        analyzer=ReportAnalyzer(
            data_api=data_api,
            object_store=object_store,
            detection=DetectionClient(settings.detection_url),
        ),
    )


@pytest.fixture()
def app(settings, services):
    """Create a fresh app instance wired to in-memory backends."""
    return create_app(settings=settings, services=services)


@pytest.fixture()
def act_as(app) -> Callable[[Identity], None]:
    """Make every request run as the given identity."""

    def _act_as(identity: Identity) -> None:
        app.dependency_overrides[get_identity] = lambda: identity

    return _act_as


@pytest.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
