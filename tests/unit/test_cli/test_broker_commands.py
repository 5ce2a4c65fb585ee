"""Tests for the broker CLI commands."""
from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from groupchat_service.cli.main import cli
from groupchat_service.core.settings import clear_all_caches


@pytest.fixture(autouse=True)
def fresh_settings():
    clear_all_caches()
    yield
    clear_all_caches()


class TestBrokerCheck:
    def test_disabled_broker_fails(self, monkeypatch):
        monkeypatch.setenv("RABBIT_ENABLED", "false")

        result = CliRunner().invoke(cli, ["broker", "check", "--json"])

        assert result.exit_code == 1
        report = json.loads(result.output.splitlines()[0])
        assert report == {"configured": False, "healthy": False, "state": "disconnected"}

    def test_unreachable_broker_fails(self, monkeypatch):
        monkeypatch.setenv("RABBIT_ENABLED", "true")
        monkeypatch.setenv("RABBIT_HOST", "127.0.0.1")
        monkeypatch.setenv("RABBIT_PORT", "1")
        monkeypatch.setenv("RABBIT_CONNECTION_TIMEOUT", "1")

        result = CliRunner().invoke(cli, ["broker", "check"])

        assert result.exit_code == 1
        assert "RabbitMQ unreachable" in result.output
