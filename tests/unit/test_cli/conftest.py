"""Shared fixtures for CLI command tests."""

import os
from typing import Dict, List
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from vibe_relay.core.errors import ProviderUnavailableError
from vibe_relay.core.providers import Provider, TokenUsage, credential_env_var


@pytest.fixture
def cli_runner():
    return CliRunner()


class FakeClient:
    """Provider client that replays a scripted list of fragments and errors."""

    def __init__(self, provider: Provider, script: List[object], calls: List[dict]):
        self.provider = provider
        self.token_usage = None
        self._script = script
        self._calls = calls

    async def stream_prompt(self, prompt, options):
        self._calls.append({"provider": self.provider, "prompt": prompt, "options": options})
        for item in self._script:
            if isinstance(item, Exception):
                raise item
            yield item
        self.token_usage = TokenUsage(prompt_tokens=5, completion_tokens=3)


@pytest.fixture
def fake_providers():
    """Patch provider construction with scripted fake clients.

    Usage:
        calls = fake_providers({Provider.OPENAI: ["Hello"]})
    """
    patchers = []

    def _install(scripts: Dict[Provider, List[object]]) -> List[dict]:
        calls: List[dict] = []

        def factory(provider, environ=None, *, timeout=None, transport=None):
            resolved = Provider(provider)
            if not os.environ.get(credential_env_var(resolved)):
                raise ProviderUnavailableError(f"{resolved.value} is not available", provider=resolved.value)
            return FakeClient(resolved, scripts.get(resolved, []), calls)

        patcher = patch("vibe_relay.cli.streaming.create_provider", side_effect=factory)
        patcher.start()
        patchers.append(patcher)
        return calls

    yield _install
    for patcher in patchers:
        patcher.stop()
