"""Tests for RelayConfig loading, validation and resolution.

Tests cover:
1. Defaults and TOML parsing ([relay], [logging], [commands.*])
2. Environment overrides and invalid values
3. Search path priority and explicit config files
4. Per-command provider/model/max_tokens resolution
5. .env loading without overriding existing variables
"""

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from vibe_relay.config import (
    CommandConfig,
    RelayConfig,
    get_config,
    load_config,
    load_env_files,
    reset_config,
    set_config,
)
from vibe_relay.core.errors import ConfigurationError, UnknownCommandTypeError, UnknownProviderError
from vibe_relay.core.providers import CommandType, Provider

SAMPLE_TOML = """
[relay]
max_tokens = 6000
reasoning_effort = "High"
fallback_enabled = false
request_timeout = 30

[logging]
level = "debug"

[commands.ask]
provider = "OpenAI"
model = "gpt-4.1-mini"
max_tokens = 2000

[commands.nix]
provider = "apizh-nix"
"""


class TestRelayConfigDefaults:
    def test_defaults(self):
        config = RelayConfig()
        assert config.max_tokens == 8000
        assert config.fallback_enabled is True
        assert config.request_timeout == 120.0
        assert config.reasoning_effort is None
        assert config.commands == {}
        config.validate()


class TestFromToml:
    def test_parses_all_sections(self, tmp_path):
        path = tmp_path / "vibe-relay.toml"
        path.write_text(SAMPLE_TOML)

        config = RelayConfig.from_toml(path)

        assert config.max_tokens == 6000
        assert config.reasoning_effort == "high"
        assert config.fallback_enabled is False
        assert config.request_timeout == 30.0
        assert config.log_level == "DEBUG"
        assert config.commands[CommandType.ASK] == CommandConfig(
            provider="openai", model="gpt-4.1-mini", max_tokens=2000
        )
        assert config.commands[CommandType.NIX].provider == "apizh-nix"
        config.validate()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RelayConfig.from_toml(tmp_path / "absent.toml")

    def test_unknown_command_table(self):
        with pytest.raises(UnknownCommandTypeError):
            RelayConfig.from_dict({"commands": {"deploy": {"provider": "openai"}}})

    def test_non_table_command_is_skipped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="vibe_relay.config.settings"):
            config = RelayConfig.from_dict({"commands": {"ask": "openai"}})
        assert config.commands == {}
        assert "Invalid command config format for 'ask'" in caplog.text


class TestValidate:
    def test_unknown_provider(self):
        with pytest.raises(UnknownProviderError):
            CommandConfig(provider="mistral").validate()

    def test_collects_all_errors(self):
        config = RelayConfig(max_tokens=0, reasoning_effort="extreme", log_level="LOUD")
        config.commands[CommandType.DOC] = CommandConfig(provider="mistral")
        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()
        message = str(exc_info.value)
        assert "max_tokens must be positive" in message
        assert "reasoning_effort" in message
        assert "log_level" in message
        assert "commands.doc: Unknown provider: mistral" in message


class TestEnvironment:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("VIBE_RELAY_MAX_TOKENS", "1234")
        monkeypatch.setenv("VIBE_RELAY_REASONING_EFFORT", "LOW")
        monkeypatch.setenv("VIBE_RELAY_FALLBACK_ENABLED", "no")
        monkeypatch.setenv("VIBE_RELAY_TIMEOUT", "12.5")
        monkeypatch.setenv("VIBE_RELAY_LOG_LEVEL", "info")

        config = RelayConfig.from_env()

        assert config.max_tokens == 1234
        assert config.reasoning_effort == "low"
        assert config.fallback_enabled is False
        assert config.request_timeout == 12.5
        assert config.log_level == "INFO"

    def test_invalid_numbers_keep_defaults(self, monkeypatch, caplog):
        monkeypatch.setenv("VIBE_RELAY_MAX_TOKENS", "lots")
        monkeypatch.setenv("VIBE_RELAY_TIMEOUT", "soon")
        with caplog.at_level(logging.WARNING, logger="vibe_relay.config.settings"):
            config = RelayConfig.from_env()
        assert config.max_tokens == 8000
        assert config.request_timeout == 120.0
        assert "Invalid VIBE_RELAY_MAX_TOKENS" in caplog.text


class TestLoadConfig:
    def test_no_files_gives_defaults(self):
        config = load_config()
        assert config == RelayConfig()

    def test_project_file_beats_home_file(self, tmp_path):
        home = Path(os.environ["HOME"])
        (home / ".vibe-relay.toml").write_text("[relay]\nmax_tokens = 100\nrequest_timeout = 5\n")
        (tmp_path / "vibe-relay.toml").write_text("[relay]\nmax_tokens = 200\n")

        config = load_config()

        assert config.max_tokens == 200
        # Files replace each other; they are not merged.
        assert config.request_timeout == 120.0

    def test_env_beats_file(self, tmp_path, monkeypatch):
        (tmp_path / "vibe-relay.toml").write_text("[relay]\nmax_tokens = 200\n")
        monkeypatch.setenv("VIBE_RELAY_MAX_TOKENS", "300")
        assert load_config().max_tokens == 300

    def test_explicit_file_via_env(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.toml"
        path.write_text("[relay]\nfallback_enabled = false\n")
        monkeypatch.setenv("VIBE_RELAY_CONFIG_FILE", str(path))
        assert load_config().fallback_enabled is False

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_invalid_file_raises(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('[commands.ask]\nprovider = "mistral"\n')
        with pytest.raises(ConfigurationError):
            load_config(path)


class TestResolution:
    def make_config(self):
        config = RelayConfig(max_tokens=8000)
        config.commands[CommandType.ASK] = CommandConfig(provider="openai", model="gpt-4.1-mini", max_tokens=2000)
        return config

    def test_explicit_provider_wins(self):
        assert self.make_config().resolve_provider("ask", "Gemini") is Provider.GEMINI

    def test_configured_provider(self):
        assert self.make_config().resolve_provider("ask") is Provider.OPENAI

    def test_unconfigured_defers_to_selector(self):
        assert self.make_config().resolve_provider("web") is None

    def test_model_and_max_tokens(self):
        config = self.make_config()
        assert config.resolve_model("ask") == "gpt-4.1-mini"
        assert config.resolve_model("ask", "o3") == "o3"
        assert config.resolve_model("doc") is None
        assert config.resolve_max_tokens("ask") == 2000
        assert config.resolve_max_tokens("ask", 50) == 50
        assert config.resolve_max_tokens("doc") == 8000

    def test_unknown_command_type(self):
        with pytest.raises(UnknownCommandTypeError):
            self.make_config().resolve_provider("deploy")


class TestGlobalConfig:
    def test_get_set_reset(self):
        custom = RelayConfig(max_tokens=42)
        set_config(custom)
        assert get_config() is custom
        reset_config()
        assert get_config() is not custom
        assert get_config().max_tokens == 8000


class TestLoadEnvFiles:
    def test_project_env_loaded_without_override(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("OPENAI_API_KEY=from-project\nGEMINI_API_KEY=from-project\n")
        home_env = Path(os.environ["HOME"]) / ".vibe-relay" / ".env"
        home_env.parent.mkdir()
        home_env.write_text("OPENAI_API_KEY=from-home\nXAI_API_KEY=from-home\n")
        monkeypatch.setenv("GEMINI_API_KEY", "from-shell")

        with patch.dict(os.environ):
            loaded = load_env_files()

            assert [p.name for p in loaded] == [".env", ".env"]
            assert os.environ["OPENAI_API_KEY"] == "from-project"
            assert os.environ["GEMINI_API_KEY"] == "from-shell"
            assert os.environ["XAI_API_KEY"] == "from-home"

    def test_no_env_files(self):
        assert load_env_files() == []
