"""Unit tests for the models CLI command."""

import json

from vibe_relay.cli.main import cli


class TestModels:
    def test_all_recommendations(self, cli_runner):
        result = cli_runner.invoke(cli, ["models"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)["data"]
        assert data["tasks"]["ask"] == "gpt-4o-mini"
        assert {r["name"] for r in data["agent_roles"]} >= {"coding", "nix"}

    def test_single_task(self, cli_runner):
        result = cli_runner.invoke(cli, ["models", "Coding"])

        assert result.exit_code == 0
        assert json.loads(result.output)["data"] == {
            "task": "coding",
            "model": "claude-opus-4-20250514-thinking",
        }

    def test_unknown_task(self, cli_runner):
        result = cli_runner.invoke(cli, ["models", "juggling"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["data"]["error_code"] == "NOT_FOUND"
        assert "coding" in data["data"]["details"]["known_tasks"]
