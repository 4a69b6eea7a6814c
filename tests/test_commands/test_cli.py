import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from cloven.main import app
from cloven.toolkit.panel import Limits, Resources, ServerDetails, ServerUsage, SftpDetails

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(
        json.dumps({"api_key": "key", "panel_url": "https://panel.example.com/", "sftp_password": ""})
    )
    return config_file


@pytest.fixture
def project_dir(tmp_path):
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    return project_dir


@pytest.fixture
def panel():
    panel = MagicMock()
    panel.get_server_details.return_value = ServerDetails(
        identifier="abc123",
        name="My Bot",
        limits=Limits(memory=2048, disk=4096, cpu=200),
        sftp_details=SftpDetails(ip="node.example.com", port=2022),
    )
    panel.get_server_usages.return_value = ServerUsage(
        current_state="running",
        resources=Resources(cpu_absolute=7, memory_bytes=1536, disk_bytes=0),
    )
    panel.get_server_status.return_value = "running"

    with patch("cloven.commands.servers.PanelClient") as panel_cls:
        panel_cls.return_value.__enter__.return_value = panel
        yield panel


def invoke(config_file, project_dir, *args):
    return runner.invoke(
        app, ["--config-file", str(config_file), "--project-dir", str(project_dir), *args]
    )


@pytest.mark.parametrize("command", ["login", "set_api_key"])
def test_login(config_file, project_dir, command):
    result = invoke(config_file, project_dir, command, "ptlc_new_key")

    assert result.exit_code == 0, result.output
    assert "API key set successfully" in result.output
    assert json.loads(config_file.read_text())["api_key"] == "ptlc_new_key"


def test_first_run_creates_config(tmp_path, project_dir):
    config_file = tmp_path / "fresh" / "config.json"

    result = invoke(config_file, project_dir, "login", "ptlc_key")

    assert result.exit_code == 0, result.output
    assert json.loads(config_file.read_text())["api_key"] == "ptlc_key"


def test_invalid_config_file(config_file, project_dir):
    config_file.write_text("{broken")

    result = invoke(config_file, project_dir, "status", "abc123")

    assert result.exit_code == 1
    assert "not valid JSON" in result.output


def test_create_config(config_file, project_dir):
    result = invoke(config_file, project_dir, "create_config")

    assert result.exit_code == 0, result.output
    assert (project_dir / ".cloven_config").read_text().startswith("SERVER_ID = YOUR_SERVER_ID")


def test_init(config_file, project_dir):
    (project_dir / "index.js").write_text("existing")

    with patch("cloven.commands.project.init_package") as init_package:
        result = invoke(config_file, project_dir, "init")

    assert result.exit_code == 0, result.output
    init_package.assert_called_once_with(project_dir)
    assert (project_dir / ".cloven_config").exists()
    assert (project_dir / "index.js").read_text() == "existing"
    assert "paste it in the .cloven_config file" in result.output


def test_help(config_file, project_dir):
    result = invoke(config_file, project_dir, "help")

    assert result.exit_code == 0
    assert "Panel: https://panel.example.com/" in result.output
    assert "  upload" in result.output
    assert "Arguments: server_id" in result.output


@pytest.mark.parametrize(
    "command,signal,verb",
    [("start", "start", "started"), ("stop", "stop", "stopped"), ("restart", "restart", "restarted")],
)
def test_power_commands(config_file, project_dir, panel, command, signal, verb):
    result = invoke(config_file, project_dir, command, "abc123")

    assert result.exit_code == 0, result.output
    panel.send_power_signal.assert_called_once_with("abc123", signal)
    assert f"'My Bot' {verb} successfully." in result.output


def test_status_uses_project_config(config_file, project_dir, panel):
    (project_dir / ".cloven_config").write_text("SERVER_ID = fromfile\n")

    result = invoke(config_file, project_dir, "status")

    assert result.exit_code == 0, result.output
    panel.get_server_status.assert_called_once_with("fromfile")
    assert "Status: `Online`" in result.output


def test_usage(config_file, project_dir, panel):
    result = invoke(config_file, project_dir, "usage", "abc123")

    assert result.exit_code == 0, result.output
    assert "Status: running" in result.output
    assert "CPU: 3.500%" in result.output
    assert "RAM: 1.5 KB / 2.00 GB" in result.output
    assert "Disk: 0 Bytes / 4.00 GB" in result.output


@pytest.mark.parametrize("command", ["start", "stop", "restart", "status", "usage"])
def test_lifecycle_without_server_id(config_file, project_dir, panel, command):
    result = invoke(config_file, project_dir, command)

    assert result.exit_code == 1
    assert "provide a server id" in result.output
    assert panel.method_calls == []


def test_lifecycle_without_api_key(config_file, project_dir, panel):
    config_file.write_text(json.dumps({"api_key": "YOUR_API_KEY"}))

    result = invoke(config_file, project_dir, "status", "abc123")

    assert result.exit_code == 1
    assert "cloven login" in result.output
    assert panel.method_calls == []


def test_remote_failure_exits_non_zero(config_file, project_dir, panel):
    from cloven.errors import RemoteOperationError

    panel.send_power_signal.side_effect = RemoteOperationError("Server is suspended.")

    result = invoke(config_file, project_dir, "start", "abc123")

    assert result.exit_code == 1
    assert "Server is suspended." in result.output


def test_upload_without_project_config(config_file, project_dir):
    result = invoke(config_file, project_dir, "upload")

    assert result.exit_code == 1
    assert "No .cloven_config file found" in result.output


def test_upload_reports_restart(config_file, project_dir):
    with patch("cloven.commands.project.UploadWorkflow") as workflow_cls:
        workflow_cls.return_value.run.return_value.restarted = True
        result = invoke(config_file, project_dir, "upload")

    assert result.exit_code == 0, result.output
    assert "Server has been restarted." in result.output


def test_login_to_read_only_config(config_file, project_dir):
    with patch("cloven.cli_config.Path.write_text", side_effect=PermissionError(13, "Permission denied")):
        result = invoke(config_file, project_dir, "login", "ptlc_new_key")

    assert result.exit_code == 1
    assert "CLOVEN_CONFIG_FILE" in result.output
    assert json.loads(config_file.read_text())["api_key"] == "key"
