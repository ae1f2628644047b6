"""
Tests for the chatgraph command line.
"""

import json

import pytest

from chatgraph import cli

pytestmark = pytest.mark.unit


class _GatewayContext:
    def __init__(self, gateway):
        self.gateway = gateway

    async def __aenter__(self):
        return self.gateway

    async def __aexit__(self, *exc_info):
        return None


@pytest.fixture
def patched_gateway(monkeypatch, gateway):
    monkeypatch.setattr(cli.WahaGatewayClient, "from_settings", classmethod(lambda cls, settings: _GatewayContext(gateway)))
    return gateway


class TestParser:
    def test_run_defaults(self):
        args = cli.build_parser().parse_args(["run"])

        assert args.command == "run"
        assert args.output is None
        assert args.message_limit is None
        assert args.pretty is False

    def test_run_overrides(self):
        args = cli.build_parser().parse_args(["run", "-o", "out.json", "--message-limit", "10", "--batch-size", "2"])

        assert args.output == "out.json"
        assert args.message_limit == 10
        assert args.batch_size == 2

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestRun:
    @pytest.mark.asyncio
    async def test_writes_snapshot_file(self, patched_gateway, tmp_path):
        target = tmp_path / "snapshot.json"
        args = cli.build_parser().parse_args(["run", "--output", str(target), "--message-limit", "1"])

        code = await cli._run(args)

        assert code == 0
        payload = json.loads(target.read_text(encoding="utf-8"))
        assert payload["stats"]["dataLimits"]["maxMessagesPerChat"] == 1
        assert payload["stats"]["totalMessages"] == 4

    @pytest.mark.asyncio
    async def test_failure_exit_code(self, patched_gateway, tmp_path):
        patched_gateway.failures["get_self"] = [Exception("unreachable")]
        args = cli.build_parser().parse_args(["run", "--output", str(tmp_path / "x.json")])

        code = await cli._run(args)

        assert code == 1
        assert not (tmp_path / "x.json").exists()


class TestEntrypointWiring:
    def test_cli_does_not_depend_on_the_api_app(self):
        assert cli.configure_logging.__module__ == "chatgraph.monitoring.logging_config"
        assert not any(
            getattr(value, "__module__", "").startswith("chatgraph.api")
            for value in vars(cli).values()
        )
