"""HTTP provider clients.

Three wire formats cover every registered provider:

* ``OpenAICompatibleClient`` - ``/chat/completions`` with server-sent events.
  Used by openai, openrouter, modelbox, xai, perplexity, apizh and every apizh
  variant.
* ``AnthropicClient`` - ``/v1/messages`` with server-sent events.
* ``GeminiClient`` - ``:streamGenerateContent?alt=sse``.

Error handling:
    - 401/403: ProviderAuthenticationError
    - 404: ModelNotFoundError
    - 429: ProviderRateLimitError
    - other non-2xx: ProviderExecutionError
    - httpx timeouts: ProviderTimeoutError
    - other transport failures: ProviderExecutionError

Clients never retry; the calling command decides whether to fall back.

Base URLs can be overridden per provider with ``<NAME>_BASE_URL`` (for example
``OPENAI_BASE_URL``). apizh variants share ``APIZH_BASE_URL``.

Example usage:
    client = create_provider("openai")
    async for fragment in client.stream_prompt("hi", ModelOptions(model="gpt-4.1")):
        print(fragment, end="")
"""

import json
import logging
import os
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

import httpx

from vibe_relay.core.errors import (
    ModelNotFoundError,
    ProviderAuthenticationError,
    ProviderExecutionError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from vibe_relay.core.providers.base import ModelOptions, ProviderClient, TokenUsage
from vibe_relay.core.providers.registry import Provider, ProviderLike, get_descriptor, parse_provider

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0
ANTHROPIC_VERSION = "2023-06-01"

DEFAULT_BASE_URLS: Dict[Provider, str] = {
    Provider.OPENAI: "https://api.openai.com/v1",
    Provider.OPENROUTER: "https://openrouter.ai/api/v1",
    Provider.MODELBOX: "https://api.model.box/v1",
    Provider.XAI: "https://api.x.ai/v1",
    Provider.PERPLEXITY: "https://api.perplexity.ai",
    Provider.APIZH: "https://api.apizh.com/v1",
    Provider.ANTHROPIC: "https://api.anthropic.com/v1",
    Provider.GEMINI: "https://generativelanguage.googleapis.com/v1beta",
}


def _raise_for_status(response: httpx.Response, provider: Provider) -> None:
    """Translate an error response into the provider error hierarchy."""
    status = response.status_code
    if status < 400:
        return

    try:
        body = response.json()
        error = body.get("error", body) if isinstance(body, dict) else body
        detail = error.get("message", str(error)) if isinstance(error, dict) else str(error)
    except ValueError:
        detail = response.text[:500]

    message = f"{provider.value} returned HTTP {status}: {detail}"
    if status in (401, 403):
        raise ProviderAuthenticationError(message, provider=provider.value, status_code=status)
    if status == 404:
        raise ModelNotFoundError(message, provider=provider.value, status_code=status)
    if status == 429:
        raise ProviderRateLimitError(message, provider=provider.value, status_code=status)
    raise ProviderExecutionError(message, provider=provider.value, status_code=status)


async def _iter_sse_data(response: httpx.Response) -> AsyncIterator[Dict[str, Any]]:
    """Yield decoded JSON payloads from ``data:`` lines of an SSE response."""
    async for line in response.aiter_lines():
        line = line.strip()
        if not line.startswith("data:"):
            continue
        data = line[len("data:"):].strip()
        if not data or data == "[DONE]":
            continue
        try:
            yield json.loads(data)
        except json.JSONDecodeError:
            logger.debug("Skipping undecodable SSE payload: %s", data[:200])


class _HTTPProviderClient(ProviderClient):
    """Shared plumbing: base URL, timeout, transport and error translation."""

    def __init__(
        self,
        provider: Provider,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(provider)
        self._api_key = api_key
        self._base_url = (base_url or self._default_base_url()).rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _default_base_url(self) -> str:
        descriptor = get_descriptor(self.provider)
        root = descriptor.variant_of or self.provider
        return DEFAULT_BASE_URLS[root]

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    async def _stream_events(
        self, url: str, payload: Dict[str, Any]
    ) -> AsyncIterator[Dict[str, Any]]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                async with client.stream("POST", url, json=payload, headers=self._headers()) as response:
                    if response.status_code >= 400:
                        await response.aread()
                        _raise_for_status(response, self.provider)
                    async for event in _iter_sse_data(response):
                        yield event
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(
                f"{self.provider.value} timed out after {self._timeout}s",
                provider=self.provider.value,
                timeout=self._timeout,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderExecutionError(
                f"{self.provider.value} request failed: {exc}",
                provider=self.provider.value,
            ) from exc


REASONING_MODEL_PREFIXES = ("o1", "o3", "o4")


def is_reasoning_model(model: str) -> bool:
    """Return True for OpenAI o-series models, with or without a vendor prefix."""
    name = model.rsplit("/", 1)[-1].lower()
    return name.startswith(REASONING_MODEL_PREFIXES)


class OpenAICompatibleClient(_HTTPProviderClient):
    """Client for backends speaking the OpenAI chat completions protocol."""

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def build_payload(self, prompt: str, options: ModelOptions) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = []
        if options.system_prompt:
            messages.append({"role": "system", "content": options.system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload: Dict[str, Any] = {
            "model": options.model,
            "messages": messages,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        # o-series models reject max_tokens; other models reject reasoning_effort.
        if is_reasoning_model(options.model):
            payload["max_completion_tokens"] = options.max_tokens
            if options.reasoning_effort:
                payload["reasoning_effort"] = options.reasoning_effort
        else:
            payload["max_tokens"] = options.max_tokens
        if options.web_search and self.provider == Provider.OPENROUTER:
            payload["plugins"] = [{"id": "web"}]
        return payload

    async def stream_prompt(self, prompt: str, options: ModelOptions) -> AsyncIterator[str]:
        self.token_usage = None
        url = f"{self._base_url}/chat/completions"
        async for event in self._stream_events(url, self.build_payload(prompt, options)):
            usage = event.get("usage")
            if usage:
                self.token_usage = TokenUsage(
                    prompt_tokens=usage.get("prompt_tokens", 0),
                    completion_tokens=usage.get("completion_tokens", 0),
                )
            for choice in event.get("choices") or []:
                content = (choice.get("delta") or {}).get("content")
                if content:
                    yield content


class AnthropicClient(_HTTPProviderClient):
    """Client for the Anthropic messages API."""

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["x-api-key"] = self._api_key
        headers["anthropic-version"] = ANTHROPIC_VERSION
        return headers

    def build_payload(self, prompt: str, options: ModelOptions) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": options.model,
            "max_tokens": options.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
        }
        if options.system_prompt:
            payload["system"] = options.system_prompt
        if options.web_search:
            payload["tools"] = [{"type": "web_search_20250305", "name": "web_search"}]
        return payload

    async def stream_prompt(self, prompt: str, options: ModelOptions) -> AsyncIterator[str]:
        self.token_usage = TokenUsage()
        url = f"{self._base_url}/messages"
        async for event in self._stream_events(url, self.build_payload(prompt, options)):
            kind = event.get("type")
            if kind == "message_start":
                usage = (event.get("message") or {}).get("usage") or {}
                self.token_usage.prompt_tokens = usage.get("input_tokens", 0)
            elif kind == "message_delta":
                usage = event.get("usage") or {}
                self.token_usage.completion_tokens = usage.get("output_tokens", 0)
            elif kind == "content_block_delta":
                text = (event.get("delta") or {}).get("text")
                if text:
                    yield text
            elif kind == "error":
                error = event.get("error") or {}
                raise ProviderExecutionError(
                    f"anthropic stream error: {error.get('message', error)}",
                    provider=self.provider.value,
                )


class GeminiClient(_HTTPProviderClient):
    """Client for the Google Generative Language API."""

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["x-goog-api-key"] = self._api_key
        return headers

    def build_payload(self, prompt: str, options: ModelOptions) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": options.max_tokens},
        }
        if options.system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": options.system_prompt}]}
        if options.web_search:
            payload["tools"] = [{"google_search": {}}]
        return payload

    async def stream_prompt(self, prompt: str, options: ModelOptions) -> AsyncIterator[str]:
        self.token_usage = None
        url = f"{self._base_url}/models/{options.model}:streamGenerateContent?alt=sse"
        async for event in self._stream_events(url, self.build_payload(prompt, options)):
            usage = event.get("usageMetadata")
            if usage:
                self.token_usage = TokenUsage(
                    prompt_tokens=usage.get("promptTokenCount", 0),
                    completion_tokens=usage.get("candidatesTokenCount", 0),
                )
            for candidate in event.get("candidates") or []:
                for part in (candidate.get("content") or {}).get("parts") or []:
                    text = part.get("text")
                    if text:
                        yield text


def _base_url_override(provider: Provider, environ: Mapping[str, str]) -> Optional[str]:
    descriptor = get_descriptor(provider)
    root = descriptor.variant_of or provider
    return environ.get(f"{root.value.upper()}_BASE_URL") or None


def create_provider(
    provider: ProviderLike,
    environ: Optional[Mapping[str, str]] = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProviderClient:
    """Build the client for ``provider`` using credentials from ``environ``.

    Args:
        provider: Provider identifier (string or enum)
        environ: Mapping to read credentials from (default ``os.environ``)
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (used by tests)

    Raises:
        UnknownProviderError: If the identifier is not registered
        ProviderUnavailableError: If the provider's credential is not set
    """
    resolved = parse_provider(provider)
    source = os.environ if environ is None else environ
    descriptor = get_descriptor(resolved)
    api_key = source.get(descriptor.env_var)
    if not api_key:
        raise ProviderUnavailableError(
            f"The {resolved.value} provider is not available. "
            f"Please set {descriptor.env_var} in your environment.",
            provider=resolved.value,
        )

    kwargs: Dict[str, Any] = {
        "base_url": _base_url_override(resolved, source),
        "timeout": timeout,
        "transport": transport,
    }
    if resolved == Provider.ANTHROPIC:
        return AnthropicClient(resolved, api_key, **kwargs)
    if resolved == Provider.GEMINI:
        return GeminiClient(resolved, api_key, **kwargs)
    return OpenAICompatibleClient(resolved, api_key, **kwargs)
