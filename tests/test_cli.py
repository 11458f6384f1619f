"""
Tests for CLI module.
"""

from __future__ import annotations

import httpx
import pytest
from click.testing import CliRunner

from imperva_export import cli
from imperva_export.cli import main
from imperva_export.services.export import AsyncExportService

CREDENTIALS = ["--api-id", "test-id", "--api-key", "test-key"]


@pytest.fixture
def fake_api(monkeypatch, handler):
    """Route the CLI's service through a scripted mock API."""
    requests: list[httpx.Request] = []
    state = {"polls": 0, "pending": 1}

    def _route(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "POST":
            return httpx.Response(200, json={"handler": handler, "status": "IN_PROGRESS"})
        state["polls"] += 1
        if state["polls"] <= state["pending"]:
            return httpx.Response(202)
        return httpx.Response(200, content=b"PK\x03\x04zip")

    def _service(settings):
        client = httpx.AsyncClient(transport=httpx.MockTransport(_route))
        return AsyncExportService(
            settings, client=client, backoff_base=0.0, poll_initial_delay=0.0
        )

    monkeypatch.setattr(cli, "AsyncExportService", _service)
    return state, requests


class TestCLIMain:
    """Test main CLI group."""

    def test_help(self):
        """--help shows usage."""
        runner = CliRunner()
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Imperva Export CLI" in result.output
        for command in ("export", "status", "download", "auto"):
            assert command in result.output

    def test_version(self):
        """--version shows version."""
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "imperva-export-cli version 1.0.0" in result.output

    def test_no_credentials(self):
        """Commands fail without credentials."""
        runner = CliRunner()
        result = runner.invoke(main, ["export", "--caid", "1"], env={"API_ID": "", "API_KEY": ""})
        assert result.exit_code == 1
        assert "API_ID" in result.output

    def test_bad_log_level(self):
        """Unknown --log-level is a usage error."""
        runner = CliRunner()
        result = runner.invoke(main, ["--log-level", "trace", "export", "--caid", "1"])
        assert result.exit_code == 2

    def test_missing_config_file(self, tmp_path):
        """Explicit --config must exist."""
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["--config", str(tmp_path / "missing.yaml"), *CREDENTIALS, "export", "--caid", "1"],
        )
        assert result.exit_code == 1
        assert "config file not found" in result.output


class TestCLIExport:
    """Test export command."""

    def test_export_help(self):
        """export --help shows usage."""
        runner = CliRunner()
        result = runner.invoke(main, ["export", "--help"])
        assert result.exit_code == 0
        assert "--caid" in result.output

    def test_export_requires_caid(self):
        """export without --caid is a usage error."""
        runner = CliRunner()
        result = runner.invoke(main, [*CREDENTIALS, "export"])
        assert result.exit_code == 2

    def test_export_invalid_caid(self):
        """caid must be positive."""
        runner = CliRunner()
        result = runner.invoke(main, [*CREDENTIALS, "export", "--caid", "0"])
        assert result.exit_code == 1
        assert "invalid caid" in result.output

    def test_export_prints_handler(self, fake_api, handler):
        """export prints the handler."""
        _, requests = fake_api
        runner = CliRunner()
        result = runner.invoke(main, [*CREDENTIALS, "export", "--caid", "12345"])
        assert result.exit_code == 0, result.output
        assert f"Export initiated. Handler: {handler}" in result.output
        assert requests[0].headers["x-API-Id"] == "test-id"
        assert requests[0].headers["x-API-Key"] == "test-key"

    def test_credentials_from_env(self, fake_api, handler):
        """API_ID and API_KEY are read from the environment."""
        _, requests = fake_api
        runner = CliRunner()
        result = runner.invoke(
            main, ["export", "--caid", "12345"], env={"API_ID": "env-id", "API_KEY": "env-key"}
        )
        assert result.exit_code == 0, result.output
        assert requests[0].headers["x-API-Id"] == "env-id"


class TestCLIStatus:
    """Test status command."""

    def test_status_invalid_handler(self):
        """status rejects malformed handlers."""
        runner = CliRunner()
        result = runner.invoke(
            main, [*CREDENTIALS, "status", "--caid", "1", "--handler", "not-a-uuid"]
        )
        assert result.exit_code == 1
        assert "invalid handler format" in result.output

    def test_status_downloads(self, fake_api, handler, tmp_path):
        """status waits and saves the archive."""
        out = tmp_path / "out"
        runner = CliRunner()
        result = runner.invoke(
            main,
            [*CREDENTIALS, "--output-dir", str(out), "status", "--caid", "12345", "--handler", handler],
        )
        assert result.exit_code == 0, result.output
        assert "Waiting for export to complete" in result.output
        assert "downloaded successfully" in result.output
        assert (out / f"export_12345_{handler}.zip").read_bytes() == b"PK\x03\x04zip"


class TestCLIDownload:
    """Test download command."""

    def test_download_ready(self, fake_api, handler, tmp_path):
        """download saves a finished export."""
        state, _ = fake_api
        state["pending"] = 0
        out = tmp_path / "out"
        runner = CliRunner()
        result = runner.invoke(
            main,
            [*CREDENTIALS, "--output-dir", str(out), "download", "--caid", "12345", "--handler", handler],
        )
        assert result.exit_code == 0, result.output
        assert (out / f"export_12345_{handler}.zip").exists()

    def test_download_not_ready(self, fake_api, handler, tmp_path):
        """download fails while the export is running."""
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                *CREDENTIALS,
                "--output-dir",
                str(tmp_path / "out"),
                "download",
                "--caid",
                "12345",
                "--handler",
                handler,
            ],
        )
        assert result.exit_code == 1
        assert "still in progress" in result.output


class TestCLIAuto:
    """Test auto command."""

    def test_auto(self, fake_api, handler, tmp_path):
        """auto submits, waits and downloads."""
        _, requests = fake_api
        out = tmp_path / "out"
        runner = CliRunner()
        result = runner.invoke(
            main, [*CREDENTIALS, "--output-dir", str(out), "auto", "--caid", "12345"]
        )
        assert result.exit_code == 0, result.output
        assert "downloaded successfully" in result.output
        assert f"Export completed successfully. Handler ID: {handler}" in result.output
        assert [r.method for r in requests] == ["POST", "GET", "GET"]
        assert (out / f"export_12345_{handler}.zip").exists()

    def test_auto_prints_handler_before_waiting(self, fake_api, handler, tmp_path):
        """auto reports the handler before polling so status can resume."""
        runner = CliRunner()
        result = runner.invoke(
            main, [*CREDENTIALS, "--output-dir", str(tmp_path / "out"), "auto", "--caid", "12345"]
        )
        assert result.exit_code == 0, result.output
        initiated = result.output.index(f"Export initiated. Handler ID: {handler}")
        assert initiated < result.output.index("Waiting for export to complete")

    def test_auto_rejects_traversal(self, fake_api):
        """auto refuses an output directory with '..'."""
        _, requests = fake_api
        runner = CliRunner()
        result = runner.invoke(
            main, [*CREDENTIALS, "--output-dir", "../exports", "auto", "--caid", "12345"]
        )
        assert result.exit_code == 1
        assert "invalid output directory" in result.output
        assert requests == []
