# tests/unit/cli/test_sync_catalog_cli.py
import json

import pytest
from click.testing import CliRunner
from unittest.mock import AsyncMock

from catalog_proxy.cli import sync_catalog as cli_module
from catalog_proxy.core.enums import SyncStatus
from catalog_proxy.core.exceptions import SyncCooldownError
from catalog_proxy.schemas.catalog import SyncResult, SyncStats


@pytest.fixture
def service(mocker):
    service = mocker.MagicMock()
    service.run_sync = AsyncMock(return_value=SyncResult(
        status=SyncStatus.SUCCESS,
        stats=SyncStats(total=2, active=1, paused=1, duration_seconds=3),
        logs=["Obtaining access token...", "COMPLETED: 2 items in 3s"],
    ))
    mocker.patch.object(cli_module, "build_sync_service", return_value=service)
    mocker.patch.object(cli_module, "create_tables", new=AsyncMock())
    mocker.patch.object(cli_module, "engine", new=mocker.MagicMock(dispose=AsyncMock()))
    mocker.patch.object(cli_module, "configure_logging")
    return service


def test_prints_log_and_summary(service):
    result = CliRunner().invoke(cli_module.sync_catalog, ["--force"])

    assert result.exit_code == 0
    assert "COMPLETED: 2 items in 3s" in result.output
    assert "SUCCESS: 2 items (1 active, 1 paused, 0 closed)" in result.output
    service.run_sync.assert_awaited_once_with(force=True, include_items=False)


def test_json_output(service):
    result = CliRunner().invoke(cli_module.sync_catalog, ["--json"])

    assert result.exit_code == 0
    assert json.loads(result.output)["stats"]["total"] == 2


def test_error_exit_code(service):
    service.run_sync.return_value = SyncResult(status=SyncStatus.ERROR, error="boom", logs=["ERROR: boom"])

    result = CliRunner().invoke(cli_module.sync_catalog, [])

    assert result.exit_code == 1


def test_cooldown_exit_code(service):
    service.run_sync.side_effect = SyncCooldownError(retry_after=60)

    result = CliRunner().invoke(cli_module.sync_catalog, [])

    assert result.exit_code == 2
