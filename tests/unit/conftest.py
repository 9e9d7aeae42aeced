"""Shared fixtures for vibe-relay unit tests."""

import pytest

from vibe_relay.config import reset_config
from vibe_relay.core.providers import PROVIDER_REGISTRY

CREDENTIAL_VARS = sorted({d.env_var for d in PROVIDER_REGISTRY.values()})

RELAY_VARS = [
    "VIBE_RELAY_MAX_TOKENS",
    "VIBE_RELAY_REASONING_EFFORT",
    "VIBE_RELAY_FALLBACK_ENABLED",
    "VIBE_RELAY_TIMEOUT",
    "VIBE_RELAY_LOG_LEVEL",
    "VIBE_RELAY_CONFIG_FILE",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path, tmp_path_factory):
    """Isolate tests from real credentials, config files and .env files."""
    for name in CREDENTIAL_VARS + RELAY_VARS:
        monkeypatch.delenv(name, raising=False)
    for root in ("OPENAI", "ANTHROPIC", "GEMINI", "OPENROUTER", "MODELBOX", "XAI", "PERPLEXITY", "APIZH"):
        monkeypatch.delenv(f"{root}_BASE_URL", raising=False)
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def set_credentials(monkeypatch):
    """Set the given credential variables to dummy keys."""

    def _set(*names: str) -> None:
        for name in names:
            monkeypatch.setenv(name, f"test-{name.lower()}")

    return _set
