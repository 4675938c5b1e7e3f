"""Tests for the agentflow CLI."""

import json

import httpx
import pytest
import respx
import yaml
from click.testing import CliRunner

from agentflow_cli.main import cli
from agentflow_core.admin.signing import verify_signature
from agentflow_core.config import get_settings

BASE_URL = "https://engine.test"
API_KEY = "test-signing-key"


@pytest.fixture
def runner(monkeypatch):
    """Create CLI test runner without Admin API credentials in the environment."""
    monkeypatch.delenv("ADMIN_API_BASE_URL", raising=False)
    monkeypatch.delenv("ADMIN_API_KEY", raising=False)
    get_settings.cache_clear()
    yield CliRunner()
    get_settings.cache_clear()


@pytest.fixture
def config_file(tmp_path, minimal_config):
    path = tmp_path / "agent.json"
    path.write_text(json.dumps(minimal_config))
    return path


def _credentials():
    return ["--base-url", BASE_URL, "--api-key", API_KEY]


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "validate" in result.output
        assert "import" in result.output
        assert "export" in result.output
        assert "sign" in result.output


class TestValidateCommand:
    """Tests for `agentflow validate`."""

    def test_valid_file(self, runner, config_file):
        result = runner.invoke(cli, ["validate", str(config_file)])

        assert result.exit_code == 0
        assert "is valid" in result.output

    def test_valid_yaml_file(self, runner, tmp_path, support_config):
        path = tmp_path / "agent.yaml"
        path.write_text(yaml.safe_dump(support_config))

        result = runner.invoke(cli, ["validate", str(path)])

        assert result.exit_code == 0

    def test_invalid_file(self, runner, tmp_path, minimal_config):
        minimal_config["workflow"]["nodes"][0]["transitions"][0]["target"] = "nonexistent"
        path = tmp_path / "agent.json"
        path.write_text(json.dumps(minimal_config))

        result = runner.invoke(cli, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Errors (1):" in result.output
        assert "targets unknown node 'nonexistent'" in result.output

    def test_json_output(self, runner, tmp_path, minimal_config):
        minimal_config["tts"] = {"enabled": True}
        path = tmp_path / "agent.json"
        path.write_text(json.dumps(minimal_config))

        result = runner.invoke(cli, ["validate", str(path), "-o", "json"])

        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["valid"] is True
        assert report["warnings"][0]["code"] == "deprecated_root_config"

    def test_warn_unreachable(self, runner, tmp_path, minimal_config):
        minimal_config["workflow"]["nodes"].append(
            {"id": "orphan", "type": "standard", "static_text": "Unused"}
        )
        path = tmp_path / "agent.json"
        path.write_text(json.dumps(minimal_config))

        result = runner.invoke(cli, ["validate", str(path), "--warn-unreachable", "-o", "json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["warnings"][0]["node_id"] == "orphan"

    def test_unparseable_file(self, runner, tmp_path):
        path = tmp_path / "agent.json"
        path.write_text("{not json")

        result = runner.invoke(cli, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Could not parse" in result.output


class TestImportCommand:
    """Tests for `agentflow import`."""

    def test_import_dry_run(self, runner, config_file):
        with respx.mock() as respx_mock:
            route = respx_mock.post(f"{BASE_URL}/admin/agents/import").mock(
                return_value=httpx.Response(200, json={
                    "success": True,
                    "result": {"agent_id": "a1", "agent_name": "Test", "action": "validated"},
                })
            )

            result = runner.invoke(
                cli,
                _credentials() + ["import", str(config_file), "--tenant-id", "t1", "--dry-run"],
            )

        assert result.exit_code == 0, result.output
        assert "Dry run passed for Test" in result.output
        sent = json.loads(route.calls.last.request.content)
        assert sent["tenant_id"] == "t1"
        assert sent["dry_run"] is True
        assert "notes" not in sent

    def test_import_invalid_config_sends_nothing(self, runner, tmp_path, minimal_config):
        minimal_config["workflow"]["initial_node"] = "start"
        path = tmp_path / "agent.json"
        path.write_text(json.dumps(minimal_config))

        with respx.mock() as respx_mock:
            result = runner.invoke(cli, _credentials() + ["import", str(path), "--tenant-id", "t1"])

            assert respx_mock.calls.call_count == 0

        assert result.exit_code == 1
        assert "Initial node 'start' does not exist" in result.output

    def test_import_without_credentials(self, runner, config_file):
        result = runner.invoke(cli, ["import", str(config_file), "--tenant-id", "t1"])

        assert result.exit_code == 1
        assert "not configured" in result.output

    def test_import_remote_error(self, runner, config_file):
        with respx.mock() as respx_mock:
            respx_mock.post(f"{BASE_URL}/admin/agents/import").mock(
                return_value=httpx.Response(404, json={"detail": "tenant not found"})
            )

            result = runner.invoke(cli, _credentials() + ["import", str(config_file), "--tenant-id", "t1"])

        assert result.exit_code == 1
        assert "Tenant not found" in result.output

    def test_import_unexpected_response(self, runner, config_file):
        with respx.mock() as respx_mock:
            respx_mock.post(f"{BASE_URL}/admin/agents/import").mock(
                return_value=httpx.Response(200, json={"status": "queued"})
            )

            result = runner.invoke(cli, _credentials() + ["import", str(config_file), "--tenant-id", "t1"])

        assert result.exit_code == 1
        assert "Import failed: Unexpected Admin API response" in result.output
        assert "Invalid import parameters" not in result.output

    def test_import_bad_phone_number(self, runner, config_file):
        result = runner.invoke(
            cli,
            _credentials() + ["import", str(config_file), "--tenant-id", "t1", "--phone-number", "555-0100"],
        )

        assert result.exit_code == 1
        assert "Invalid import parameters" in result.output


class TestExportCommand:
    """Tests for `agentflow export`."""

    def test_export_yaml(self, runner, minimal_config):
        with respx.mock() as respx_mock:
            route = respx_mock.get(path="/admin/agents/t1/a1/export").mock(
                return_value=httpx.Response(200, json={
                    "tenant_id": "t1",
                    "agent_id": "a1",
                    "version": 4,
                    "config_json": minimal_config,
                })
            )

            result = runner.invoke(cli, _credentials() + ["export", "t1", "a1", "--version", "4", "-o", "yaml"])

        assert result.exit_code == 0, result.output
        assert yaml.safe_load(result.output) == minimal_config
        assert route.calls.last.request.url.params["version"] == "4"

    def test_export_json(self, runner, minimal_config):
        with respx.mock() as respx_mock:
            respx_mock.get(path="/admin/agents/t1/a1/export").mock(
                return_value=httpx.Response(200, json={
                    "tenant_id": "t1",
                    "agent_id": "a1",
                    "version": 1,
                    "config_json": minimal_config,
                })
            )

            result = runner.invoke(cli, _credentials() + ["export", "t1", "a1"])

        assert result.exit_code == 0
        assert json.loads(result.output) == minimal_config


class TestSignCommand:
    """Tests for `agentflow sign`."""

    def test_sign_json(self, runner):
        result = runner.invoke(
            cli,
            ["--api-key", API_KEY, "sign", "post", "/admin/rag/query", "--body", '{"query": "hi"}', "-o", "json"],
        )

        assert result.exit_code == 0, result.output
        signed = json.loads(result.output)
        assert signed["method"] == "POST"
        assert signed["body"] == '{"query":"hi"}'
        assert verify_signature(API_KEY, signed["headers"], "POST", "/admin/rag/query", signed["body"]) == (True, None)

    def test_sign_get_ignores_body(self, runner):
        result = runner.invoke(
            cli, ["--api-key", API_KEY, "sign", "GET", "/admin/calls/c1/status", "--body", "{}", "-o", "json"],
        )

        assert json.loads(result.output)["body"] == ""

    def test_sign_without_key(self, runner):
        result = runner.invoke(cli, ["sign", "GET", "/admin/calls/c1/status"])

        assert result.exit_code == 1
        assert "No signing key" in result.output
