"""
ccswitch - CLI Tests

Runs `ccswitch.cli.main` against a temporary config file. Channel traffic
goes to the fake channels fixture.
"""

import json

import pytest

from ccswitch import cli
from ccswitch.config import ConfigStore
from ccswitch.core.http_client import ChannelHttpClient
from ccswitch.observability import logging as ccswitch_logging


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch, fake_channels):
    """Keep pytest's log capture and route HTTP to the fake channels."""
    monkeypatch.setattr(ccswitch_logging, "_logging_configured", True)
    monkeypatch.setattr(
        cli, "ChannelHttpClient",
        lambda: ChannelHttpClient(transport=fake_channels.transport),
    )


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "config.json")


def run(config_path, *args):
    return cli.main(["--config", config_path, *args])


class TestChannelCommands:
    """Test add/list/remove/set."""

    def test_add_and_list(self, config_path, capsys):
        assert run(config_path, "add", "main", "https://a.test/v1/chat/completions",
                   "-k", "sk-1", "-m", "gpt-4") == 0
        assert run(config_path, "add", "backup", "https://b.test/v1/chat/completions",
                   "-p", "5", "--disabled") == 0
        capsys.readouterr()

        assert run(config_path, "list") == 0
        out = capsys.readouterr().out

        assert "Configured channels:" in out
        assert "main [enabled] - https://a.test/v1/chat/completions (model: gpt-4, priority: 0)" in out
        assert "backup [disabled]" in out
        assert "model: any" in out
        assert out.index("main") < out.index("backup")

    def test_list_empty(self, config_path, capsys):
        assert run(config_path, "list") == 0
        assert "No channels configured" in capsys.readouterr().out

    def test_duplicate_add_fails(self, config_path, capsys):
        run(config_path, "add", "main", "https://a.test")

        assert run(config_path, "add", "main", "https://b.test") == 1
        assert "Channel 'main' already exists" in capsys.readouterr().err

    def test_remove(self, config_path, capsys):
        run(config_path, "add", "main", "https://a.test")

        assert run(config_path, "remove", "main") == 0
        assert "✓ Channel 'main' removed successfully" in capsys.readouterr().out
        assert ConfigStore(config_path).load().channels == {}

    def test_remove_missing(self, config_path, capsys):
        assert run(config_path, "remove", "ghost") == 1
        assert "not found" in capsys.readouterr().err

    def test_set(self, config_path):
        run(config_path, "add", "main", "https://a.test")

        assert run(config_path, "set", "main", "-p", "3", "--disable", "--timeout", "9") == 0

        channel = ConfigStore(config_path).load().channels["main"]
        assert channel.priority == 3
        assert channel.enabled is False
        assert channel.timeout_seconds == 9.0

    def test_set_without_changes(self, config_path):
        run(config_path, "add", "main", "https://a.test")
        assert run(config_path, "set", "main") == 1


class TestTestCommand:
    """Test `ccswitch test`."""

    def test_all_channels(self, config_path, fake_channels, capsys):
        fake_channels.ok("a.test").status("b.test", 401)
        run(config_path, "add", "a", "https://a.test/v1")
        run(config_path, "add", "b", "https://b.test/v1")
        capsys.readouterr()

        assert run(config_path, "test") == 1
        out = capsys.readouterr().out

        assert "Testing all channels:" in out
        assert "✓ a - Available" in out
        assert "❌ b - Unavailable" in out
        assert "HTTP 401" in out

    def test_single_channel(self, config_path, fake_channels, capsys):
        fake_channels.ok("a.test")
        run(config_path, "add", "a", "https://a.test/v1")
        run(config_path, "add", "b", "https://b.test/v1")
        capsys.readouterr()

        assert run(config_path, "test", "a") == 0
        out = capsys.readouterr().out
        assert "Testing channel: a" in out
        assert fake_channels.hosts() == ["a.test"]

    def test_unknown_channel(self, config_path, capsys):
        run(config_path, "add", "a", "https://a.test/v1")

        assert run(config_path, "test", "ghost") == 1
        assert "Channel 'ghost' not found" in capsys.readouterr().err

    def test_named_channel_with_empty_config(self, config_path, capsys):
        """A named test on an empty config reports the name as missing."""
        assert run(config_path, "test", "ghost") == 1
        captured = capsys.readouterr()
        assert "❌ Channel 'ghost' not found" in captured.err
        assert "No channels configured" not in captured.out


class TestMalformedConfig:
    """Test CLI behaviour on a broken config file."""

    @pytest.mark.parametrize("content", [
        {"channels": {}, "retry_attempts": "three"},
        {"channels": {}, "timeout_seconds": None},
        {"channels": {"a": {"url": "https://a.test", "priority": None}}},
    ])
    def test_exits_with_error(self, config_path, capsys, content):
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(content, f)

        assert run(config_path, "list") == 1
        assert capsys.readouterr().err.startswith("❌ ")


class TestRequestCommand:
    """Test `ccswitch request`."""

    def test_request_with_failover(self, config_path, fake_channels, capsys):
        fake_channels.status("a.test", 500).ok("b.test", "Hi from b")
        run(config_path, "add", "a", "https://a.test/v1")
        run(config_path, "add", "b", "https://b.test/v1", "-p", "1")
        capsys.readouterr()

        assert run(config_path, "request", "Hello", "-m", "gpt-4") == 0
        out = capsys.readouterr().out

        assert "✓ Response from b (model: gpt-4):" in out
        assert "Hi from b" in out
        assert "Usage:" in out

    def test_no_probe_flag(self, config_path, fake_channels):
        fake_channels.ok("a.test")
        run(config_path, "add", "a", "https://a.test/v1")

        assert run(config_path, "request", "Hello", "--no-probe") == 0
        assert fake_channels.hosts("probe") == []

    def test_probe_by_default(self, config_path, fake_channels):
        fake_channels.ok("a.test")
        run(config_path, "add", "a", "https://a.test/v1")

        assert run(config_path, "request", "Hello") == 0
        assert fake_channels.hosts("probe") == ["a.test"]

    def test_request_parameters(self, config_path, fake_channels):
        fake_channels.ok("a.test")
        run(config_path, "add", "a", "https://a.test/v1")

        run(config_path, "request", "Hello", "--max-tokens", "50", "-t", "0.1", "--no-probe")

        payload = fake_channels.calls_to("a.test", "request")[0].payload
        assert payload["max_tokens"] == 50
        assert payload["temperature"] == 0.1
        assert payload["model"] == "gpt-3.5-turbo"

    def test_all_failed(self, config_path, fake_channels, capsys):
        fake_channels.status("a.test", 401)
        run(config_path, "add", "a", "https://a.test/v1")
        capsys.readouterr()

        assert run(config_path, "request", "Hello", "--no-probe") == 1
        err = capsys.readouterr().err
        assert "❌ Request failed: All channels failed: auth failed on channel a" in err

    def test_json_output(self, config_path, fake_channels, capsys):
        fake_channels.status("a.test", 429).ok("b.test")
        run(config_path, "add", "a", "https://a.test/v1")
        run(config_path, "add", "b", "https://b.test/v1")
        capsys.readouterr()

        assert run(config_path, "request", "Hello", "--no-probe", "--json") == 0
        data = json.loads(capsys.readouterr().out)

        assert data["success"] is True
        assert data["channel_used"] == "b"
        assert data["prior_failures"][0]["error_kind"] == "rate_limited"
