from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError

from incidentdesk.admin import bootstrap as bootstrap_module
from incidentdesk.admin import setup_directory as setup_directory_cli
from incidentdesk.admin.setup_directory import add_tenant_attributes, create_role_groups
from incidentdesk.config.settings import Settings
from incidentdesk.exceptions import ValidationError
from incidentdesk.models.domain import AnalysisOutcome
from incidentdesk.worker import cli as worker_cli


def _error(code: str, message: str = "") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, "Op")


@pytest.mark.unit
class TestSetupDirectory:
    async def test_adds_attributes(self) -> None:
        client = MagicMock()
        client.add_custom_attributes = AsyncMock()
        assert await add_tenant_attributes(client, "pool") is True
        attrs = client.add_custom_attributes.await_args.kwargs["CustomAttributes"]
        assert [a["Name"] for a in attrs] == ["companyId", "companyName"]

    async def test_existing_attributes_are_skipped(self) -> None:
        client = MagicMock()
        client.add_custom_attributes = AsyncMock(
            side_effect=_error("InvalidParameterException", "custom:companyId is not unique")
        )
        assert await add_tenant_attributes(client, "pool") is False

    async def test_other_attribute_errors_propagate(self) -> None:
        client = MagicMock()
        client.add_custom_attributes = AsyncMock(side_effect=_error("AccessDeniedException"))
        with pytest.raises(ClientError):
            await add_tenant_attributes(client, "pool")

    async def test_creates_groups_with_precedence(self) -> None:
        client = MagicMock()
        client.create_group = AsyncMock(
            side_effect=[None, _error("GroupExistsException"), None, None]
        )

        created = await create_role_groups(client, "pool")

        assert created == ["SuperAdmin", "IncidentReporter", "Customer"]
        precedences = [c.kwargs["Precedence"] for c in client.create_group.await_args_list]
        assert precedences == [0, 1, 2, 3]

    def test_main_reports_failure(self, monkeypatch, capsys) -> None:
        monkeypatch.setattr(setup_directory_cli, "get_settings", lambda: Settings(_env_file=None))
        assert setup_directory_cli.main() == 1
        assert "USER_POOL_ID" in capsys.readouterr().err

    def test_main_success(self, monkeypatch) -> None:
        monkeypatch.setattr(
            setup_directory_cli,
            "get_settings",
            lambda: Settings(_env_file=None, user_pool_id="us-east-1_pool"),
        )
        monkeypatch.setattr(setup_directory_cli, "setup_directory", AsyncMock())
        assert setup_directory_cli.main() == 0


@pytest.mark.unit
class TestBootstrap:
    def test_requires_admin_password(self, monkeypatch, capsys) -> None:
        monkeypatch.setattr(bootstrap_module, "get_settings", lambda: Settings(_env_file=None))
        assert bootstrap_module.main() == 1
        assert "BOOTSTRAP_ADMIN_PASSWORD" in capsys.readouterr().err

    async def test_super_admin_gets_permanent_password(self) -> None:
        client = MagicMock()
        client.admin_create_user = AsyncMock()
        client.admin_set_user_password = AsyncMock()
        client.admin_add_user_to_group = AsyncMock()

        await bootstrap_module.create_super_admin(client, "pool", "root@corp.test", "S3cret!pw")

        assert client.admin_create_user.await_args.kwargs["MessageAction"] == "SUPPRESS"
        pw_kwargs = client.admin_set_user_password.await_args.kwargs
        assert pw_kwargs["Permanent"] is True
        client.admin_add_user_to_group.assert_awaited_once_with(
            UserPoolId="pool", Username="root@corp.test", GroupName="SuperAdmin"
        )

    def test_main_prints_ids(self, monkeypatch, capsys) -> None:
        settings = Settings(_env_file=None, bootstrap_admin_password="S3cret!pw")
        monkeypatch.setattr(bootstrap_module, "get_settings", lambda: settings)
        monkeypatch.setattr(
            bootstrap_module,
            "bootstrap",
            AsyncMock(
                return_value=bootstrap_module.BootstrapResult(
                    user_pool_id="us-east-1_new", client_id="abc", admin_username="a@b.test"
                )
            ),
        )
        assert bootstrap_module.main() == 0
        out = capsys.readouterr().out
        assert "USER_POOL_ID=us-east-1_new" in out
        assert "USER_POOL_CLIENT_ID=abc" in out


@pytest.mark.unit
class TestWorkerCli:
    def test_handler_requires_report_id(self) -> None:
        with pytest.raises(ValidationError):
            worker_cli.handler({})

    def test_handler_runs_analysis(self, monkeypatch, tmp_path) -> None:
        analyzer = MagicMock()
        analyzer.run = AsyncMock(
            return_value=AnalysisOutcome(success=True, message="done", analysis={"x": 1})
        )
        settings = Settings(_env_file=None, local_data_dir=str(tmp_path))
        monkeypatch.setattr(worker_cli, "get_settings", lambda: settings)
        monkeypatch.setattr(worker_cli.ReportAnalyzer, "from_settings", lambda s: analyzer)

        assert worker_cli.handler({"reportId": "r1"}) == {"success": True, "message": "done"}
        analyzer.run.assert_awaited_once_with("r1")

    def test_main_exit_codes(self, monkeypatch, capsys) -> None:
        monkeypatch.setattr(
            worker_cli, "handler", MagicMock(return_value={"success": True, "message": "ok"})
        )
        assert worker_cli.main(["r1"]) == 0

        monkeypatch.setattr(worker_cli, "handler", MagicMock(side_effect=RuntimeError("down")))
        assert worker_cli.main(["r1"]) == 1
        assert "Analysis failed: down" in capsys.readouterr().err
