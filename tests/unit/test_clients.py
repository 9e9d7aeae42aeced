"""Tests for the HTTP provider clients using httpx.MockTransport."""

import json

import httpx
import pytest

from vibe_relay.core.errors import (
    ModelNotFoundError,
    ProviderAuthenticationError,
    ProviderExecutionError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    UnknownProviderError,
)
from vibe_relay.core.providers import (
    AnthropicClient,
    GeminiClient,
    ModelOptions,
    OpenAICompatibleClient,
    Provider,
    create_provider,
)


def sse(*events):
    lines = [f"data: {json.dumps(event)}\n\n" for event in events]
    lines.append("data: [DONE]\n\n")
    return "".join(lines)


class Recorder:
    """MockTransport handler returning a fixed response and recording requests."""

    def __init__(self, status=200, body="", exc=None):
        self.status = status
        self.body = body
        self.exc = exc
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc(f"simulated {self.exc.__name__}", request=request)
        return httpx.Response(self.status, text=self.body)

    @property
    def transport(self):
        return httpx.MockTransport(self)

    @property
    def payload(self):
        return json.loads(self.requests[-1].content)


ENV = {"OPENAI_API_KEY": "sk-openai", "ANTHROPIC_API_KEY": "sk-ant", "GEMINI_API_KEY": "g-key", "APIZH_API_KEY": "z"}


class TestCreateProvider:
    def test_client_classes(self):
        assert isinstance(create_provider("openai", ENV), OpenAICompatibleClient)
        assert isinstance(create_provider("anthropic", ENV), AnthropicClient)
        assert isinstance(create_provider("gemini", ENV), GeminiClient)
        assert isinstance(create_provider("apizh-coding", ENV), OpenAICompatibleClient)

    def test_missing_credential(self):
        with pytest.raises(ProviderUnavailableError) as exc_info:
            create_provider("xai", ENV)
        assert "XAI_API_KEY" in str(exc_info.value)
        assert exc_info.value.provider == "xai"

    def test_unknown_provider(self):
        with pytest.raises(UnknownProviderError):
            create_provider("mistral", ENV)

    @pytest.mark.asyncio
    async def test_variant_uses_apizh_base_url_override(self):
        recorder = Recorder(body=sse({"choices": [{"delta": {"content": "ok"}}]}))
        env = dict(ENV, APIZH_BASE_URL="https://relay.example/v1/")
        client = create_provider("apizh-nix", env, transport=recorder.transport)

        await client.execute_prompt("hi", ModelOptions(model="gpt-4.1"))

        assert str(recorder.requests[0].url) == "https://relay.example/v1/chat/completions"
        assert recorder.requests[0].headers["authorization"] == "Bearer z"


class TestOpenAICompatibleClient:
    @pytest.mark.asyncio
    async def test_streams_content_and_usage(self):
        recorder = Recorder(
            body=sse(
                {"choices": [{"delta": {"role": "assistant"}}]},
                {"choices": [{"delta": {"content": "Hel"}}]},
                {"choices": [{"delta": {"content": "lo"}}]},
                {"choices": [], "usage": {"prompt_tokens": 7, "completion_tokens": 2}},
            )
        )
        client = create_provider("openai", ENV, transport=recorder.transport)
        options = ModelOptions(model="gpt-4.1", max_tokens=100, system_prompt="be brief", reasoning_effort="low")

        fragments = [f async for f in client.stream_prompt("hi", options)]

        assert fragments == ["Hel", "lo"]
        assert client.token_usage.total_tokens == 9
        payload = recorder.payload
        assert payload["model"] == "gpt-4.1"
        assert payload["stream"] is True
        assert payload["messages"][0] == {"role": "system", "content": "be brief"}
        assert payload["max_tokens"] == 100
        assert "reasoning_effort" not in payload
        assert "max_completion_tokens" not in payload
        assert str(recorder.requests[0].url) == "https://api.openai.com/v1/chat/completions"

    @pytest.mark.parametrize("model", ["o3", "o1-mini", "o4-mini", "openai/o3"])
    def test_reasoning_model_payload(self, model):
        """o-series models take max_completion_tokens and reasoning_effort."""
        client = OpenAICompatibleClient(Provider.APIZH_CODING, "k")
        payload = client.build_payload("q", ModelOptions(model=model, max_tokens=500, reasoning_effort="high"))
        assert payload["max_completion_tokens"] == 500
        assert payload["reasoning_effort"] == "high"
        assert "max_tokens" not in payload

    @pytest.mark.parametrize("model", ["gpt-4.1", "sonar-pro", "grok-3-latest", "google/gemini-2.5-pro"])
    def test_chat_model_payload_drops_reasoning_effort(self, model):
        client = OpenAICompatibleClient(Provider.OPENAI, "k")
        payload = client.build_payload("q", ModelOptions(model=model, max_tokens=500, reasoning_effort="medium"))
        assert payload["max_tokens"] == 500
        assert "reasoning_effort" not in payload

    def test_openrouter_web_plugin(self):
        client = OpenAICompatibleClient(Provider.OPENROUTER, "k")
        payload = client.build_payload("q", ModelOptions(model="m", web_search=True))
        assert payload["plugins"] == [{"id": "web"}]

    @pytest.mark.parametrize(
        "status, error_cls",
        [
            (401, ProviderAuthenticationError),
            (403, ProviderAuthenticationError),
            (404, ModelNotFoundError),
            (429, ProviderRateLimitError),
            (500, ProviderExecutionError),
        ],
    )
    @pytest.mark.asyncio
    async def test_status_mapping(self, status, error_cls):
        recorder = Recorder(status=status, body=json.dumps({"error": {"message": "nope"}}))
        client = create_provider("openai", ENV, transport=recorder.transport)

        with pytest.raises(error_cls) as exc_info:
            await client.execute_prompt("hi", ModelOptions(model="gpt-4.1"))

        assert exc_info.value.status_code == status
        assert exc_info.value.provider == "openai"
        assert "nope" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout(self):
        recorder = Recorder(exc=httpx.ReadTimeout)
        client = create_provider("openai", ENV, timeout=3, transport=recorder.transport)
        with pytest.raises(ProviderTimeoutError) as exc_info:
            await client.execute_prompt("hi", ModelOptions(model="gpt-4.1"))
        assert exc_info.value.timeout == 3

    @pytest.mark.asyncio
    async def test_transport_error(self):
        recorder = Recorder(exc=httpx.ConnectError)
        client = create_provider("openai", ENV, transport=recorder.transport)
        with pytest.raises(ProviderExecutionError, match="request failed"):
            await client.execute_prompt("hi", ModelOptions(model="gpt-4.1"))


class TestAnthropicClient:
    @pytest.mark.asyncio
    async def test_streams_text_deltas(self):
        recorder = Recorder(
            body=sse(
                {"type": "message_start", "message": {"usage": {"input_tokens": 11}}},
                {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "Hi"}},
                {"type": "content_block_delta", "delta": {"type": "text_delta", "text": " there"}},
                {"type": "message_delta", "usage": {"output_tokens": 3}},
                {"type": "message_stop"},
            )
        )
        client = create_provider("anthropic", ENV, transport=recorder.transport)

        text = await client.execute_prompt("hi", ModelOptions(model="claude-sonnet-4-20250514", system_prompt="s"))

        assert text == "Hi there"
        assert client.token_usage.prompt_tokens == 11
        assert client.token_usage.completion_tokens == 3
        request = recorder.requests[0]
        assert request.headers["x-api-key"] == "sk-ant"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert recorder.payload["system"] == "s"

    @pytest.mark.asyncio
    async def test_error_event_raises_after_partial_text(self):
        recorder = Recorder(
            body=sse(
                {"type": "content_block_delta", "delta": {"text": "par"}},
                {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}},
            )
        )
        client = create_provider("anthropic", ENV, transport=recorder.transport)
        seen = []
        with pytest.raises(ProviderExecutionError, match="Overloaded"):
            async for fragment in client.stream_prompt("hi", ModelOptions(model="m")):
                seen.append(fragment)
        assert seen == ["par"]


class TestGeminiClient:
    @pytest.mark.asyncio
    async def test_streams_candidate_parts(self):
        recorder = Recorder(
            body=sse(
                {"candidates": [{"content": {"parts": [{"text": "Gem"}]}}]},
                {
                    "candidates": [{"content": {"parts": [{"text": "ini"}]}}],
                    "usageMetadata": {"promptTokenCount": 4, "candidatesTokenCount": 2},
                },
            )
        )
        client = create_provider("gemini", ENV, transport=recorder.transport)

        text = await client.execute_prompt("hi", ModelOptions(model="gemini-2.5-pro", max_tokens=64))

        assert text == "Gemini"
        assert client.token_usage.total_tokens == 6
        request = recorder.requests[0]
        assert request.url.path.endswith("/models/gemini-2.5-pro:streamGenerateContent")
        assert request.url.params["alt"] == "sse"
        assert request.headers["x-goog-api-key"] == "g-key"
        assert recorder.payload["generationConfig"]["maxOutputTokens"] == 64
