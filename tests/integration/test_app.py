import pytest
from httpx import ASGITransport, AsyncClient

from incidentdesk.config.settings import Settings
from incidentdesk.web.app import create_app
from incidentdesk.web.dependencies import build_services


@pytest.mark.integration
class TestAppFactory:
    async def test_app_creates_successfully(self, app) -> None:
        assert app is not None
        assert app.title == "incidentdesk"

    async def test_health_endpoint(self, client) -> None:
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["backends"] == "local"
        assert data["auth_mode"] == "single"
        assert data["bucket"] == "app-bucket"

    async def test_request_id_header(self, client) -> None:
        resp = await client.get("/api/health")
        assert "x-request-id" in resp.headers

    async def test_request_id_is_echoed(self, client) -> None:
        resp = await client.get("/api/health", headers={"X-Request-ID": "abc-123"})
        assert resp.headers["x-request-id"] == "abc-123"

    async def test_404_for_unknown_route_uses_envelope(self, client) -> None:
        resp = await client.get("/api/nonexistent")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not Found", "details": None}

    async def test_builds_local_services_from_settings(self, tmp_path) -> None:
        settings = Settings(_env_file=None, local_data_dir=str(tmp_path))
        app = create_app(settings=settings)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            resp = await c.get("/api/admin/users")
        assert resp.status_code == 200
        assert [u["username"] for u in resp.json()["users"]] == ["admin@localhost"]

    def test_build_services_wires_cognito_verifier(self, tmp_path) -> None:
        settings = Settings(
            _env_file=None,
            local_data_dir=str(tmp_path),
            auth_mode="cognito",
            user_pool_id="us-east-1_pool",
        )
        assert build_services(settings).token_verifier is not None


@pytest.mark.integration
class TestCognitoMode:
    @pytest.fixture()
    def cognito_app(self, settings, services):
        settings = settings.model_copy(update={"auth_mode": "cognito", "user_pool_id": "p"})
        services.settings = settings
        return create_app(settings=settings, services=services)

    async def test_missing_token_is_401(self, cognito_app) -> None:
        transport = ASGITransport(app=cognito_app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            resp = await c.get("/api/incident-reports")
        assert resp.status_code == 401
        assert resp.json()["error"]

    async def test_public_routes_need_no_token(self, cognito_app) -> None:
        transport = ASGITransport(app=cognito_app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            resp = await c.get("/api/public/companies/missing")
        assert resp.status_code == 404
