"""
Base provider client abstractions for vibe-relay.

A provider client is built from a provider identifier plus credentials and
exposes one operation: run a prompt with ``ModelOptions`` and stream the
response text. Clients do not retry and do not classify errors beyond the
``ProviderError`` hierarchy; fallback to another provider is the calling
command's decision.

Design principles:
- Dataclasses for request options and usage counters
- Streaming first: ``execute_prompt`` is the joined form of ``stream_prompt``
- Last-call token usage kept on the instance when the backend reports it
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from vibe_relay.core.providers.registry import Provider


@dataclass
class ModelOptions:
    """Options for a single prompt execution.

    Attributes:
        model: Model identifier to request
        max_tokens: Maximum output tokens
        debug: Emit extra diagnostics
        system_prompt: Optional system instruction
        reasoning_effort: Optional effort hint for reasoning models (low|medium|high)
        web_search: Ask the backend to ground the answer in web search when supported
    """

    model: str
    max_tokens: int = 8000
    debug: bool = False
    system_prompt: Optional[str] = None
    reasoning_effort: Optional[str] = None
    web_search: bool = False


@dataclass
class TokenUsage:
    """Token counters reported by the backend for the last call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class ProviderClient(ABC):
    """Abstract client for one provider backend."""

    def __init__(self, provider: Provider):
        self.provider = provider
        self.token_usage: Optional[TokenUsage] = None

    @abstractmethod
    def stream_prompt(self, prompt: str, options: ModelOptions) -> AsyncIterator[str]:
        """Yield response text fragments in the order the backend produces them.

        Raises:
            ProviderError: Any subclass, passed through to the caller unchanged
        """
        raise NotImplementedError

    async def execute_prompt(self, prompt: str, options: ModelOptions) -> str:
        """Run ``prompt`` and return the complete response text."""
        parts = []
        async for fragment in self.stream_prompt(prompt, options):
            parts.append(fragment)
        return "".join(parts)
