"""Tests for the command line entry point."""

import json
from unittest.mock import AsyncMock, patch

import pytest

import cli

from sample_data import ADDRESS_FIXTURE, BLOCK_FIXTURE


@pytest.fixture
def workspace(tmp_path):
    """Config file and fixture file with one static-URL provider."""
    fixtures_path = tmp_path / "homestead.json"
    fixtures_path.write_text(json.dumps({
        "homestead": {"addresses": [ADDRESS_FIXTURE], "blocks": [BLOCK_FIXTURE]},
    }))

    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "fixtures_path": str(fixtures_path),
        "providers": [
            {
                "name": "local",
                "kind": "jsonrpc",
                "endpoints": {"homestead": {"url": "http://localhost:8545"}},
            },
            {
                "name": "cloudflare",
                "kind": "jsonrpc",
                "endpoints": {"homestead": {"url": "https://cloudflare-eth.com"}},
            },
        ],
        "harness": {"throttle_seconds": 0},
        "logging": {"level": "INFO", "format": "text"},
    }))
    return tmp_path, config_path


def run_cli(config_path, tmp_path, *extra):
    return cli.main([
        "--config", str(config_path),
        "--env-file", str(tmp_path / "missing.env"),
        *extra,
    ])


def test_split_list():
    assert cli.split_list(None) is None
    assert cli.split_list(" , ") is None
    assert cli.split_list("Alchemy, etherscan") == ["alchemy", "etherscan"]


def test_missing_config_is_config_error(tmp_path):
    """A missing config file exits with the configuration error code."""
    exit_code = run_cli(tmp_path / "nope.json", tmp_path)

    assert exit_code == cli.EXIT_CONFIG_ERROR


def test_missing_fixtures_is_config_error(workspace):
    tmp_path, config_path = workspace

    exit_code = run_cli(config_path, tmp_path, "--fixtures", str(tmp_path / "nope.json"))

    assert exit_code == cli.EXIT_CONFIG_ERROR


def test_dry_run_lists_cases(workspace, capsys):
    """A dry run lists cases and exclusions without calling providers."""
    tmp_path, config_path = workspace

    exit_code = run_cli(config_path, tmp_path, "--dry-run", "--quiet")

    out = capsys.readouterr().out
    assert exit_code == cli.EXIT_OK
    assert "fetches address balance: local.homestead." in out
    assert "fetches block by number: local.homestead.16" in out
    assert "fetches a pending block: local" in out
    assert "Excluded: cloudflare.homestead: provider excluded" in out


def test_provider_filter(workspace, capsys):
    tmp_path, config_path = workspace

    exit_code = run_cli(config_path, tmp_path, "--dry-run", "--quiet", "--providers", "cloudflare")

    out = capsys.readouterr().out
    assert exit_code == cli.EXIT_OK
    assert "local" not in out


@pytest.mark.parametrize("success,expected", [
    (True, cli.EXIT_OK),
    (False, cli.EXIT_FAILURES),
])
def test_exit_code_follows_run_result(workspace, capsys, success, expected):
    """The exit code reports whether any case failed."""
    tmp_path, config_path = workspace
    results = {"run_id": "r1", "success": success, "results": []}

    with patch("cli.run_matrix", new=AsyncMock(return_value=results)):
        exit_code = run_cli(config_path, tmp_path, "--quiet", "--json-output", "--run-id", "r1")

    assert exit_code == expected
    assert json.loads(capsys.readouterr().out)["success"] is success


def test_unknown_provider_is_config_error(workspace):
    """Asking for a provider the config does not define is a config error."""
    tmp_path, config_path = workspace

    exit_code = run_cli(config_path, tmp_path, "--dry-run", "--providers", "local,pocket")

    assert exit_code == cli.EXIT_CONFIG_ERROR


class TestLoggingSetup:
    """Logging follows the config file and LOG_* overrides."""

    def test_configured_format_applied(self, workspace, monkeypatch):
        tmp_path, config_path = workspace
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_LEVEL", "warning")

        with patch("cli.configure_logging") as configure:
            exit_code = run_cli(config_path, tmp_path, "--dry-run")

        assert exit_code == cli.EXIT_OK
        assert configure.call_args.kwargs["fmt"] == "json"
        assert configure.call_args.kwargs["level"] == "WARNING"

    def test_config_file_format_without_overrides(self, workspace, monkeypatch):
        tmp_path, config_path = workspace
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        with patch("cli.configure_logging") as configure:
            run_cli(config_path, tmp_path, "--dry-run")

        assert configure.call_args.kwargs == {
            "level": "INFO",
            "fmt": "text",
            "service_name": "provider-conformance-cli",
        }

    def test_verbose_overrides_configured_level(self, workspace, monkeypatch):
        tmp_path, config_path = workspace
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        with patch("cli.configure_logging") as configure:
            run_cli(config_path, tmp_path, "--dry-run", "--verbose")

        assert configure.call_args.kwargs["level"] == "DEBUG"
