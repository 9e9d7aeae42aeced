"""Shared driver for commands that stream a provider answer to stdout.

Provider resolution order for one invocation:

1. ``--provider`` on the command line (fallback disabled, must be available)
2. ``[commands.<type>] provider`` from the config file (skipped with a
   warning when its credential is missing)
3. the fallback selector over the command type's preference list

A ``--model`` (or configured model) applies to the first attempt only; a
fallback provider runs with its own default model.
"""

import sys
from dataclasses import dataclass
from typing import Optional

from vibe_relay.cli.logging import get_cli_logger
from vibe_relay.cli.output import emit_diagnostic, emit_error, emit_exception, emit_text
from vibe_relay.cli.registry import CLIContext
from vibe_relay.cli.resilience import run_async
from vibe_relay.core.errors import ConfigurationError, NoProviderAvailableError
from vibe_relay.core.execution import ChunkKind, CommandExecution, CommandGenerator
from vibe_relay.core.fallback import stream_with_fallback
from vibe_relay.core.providers import (
    CommandType,
    CredentialSnapshot,
    ModelOptions,
    Provider,
    create_provider,
    credential_env_var,
    get_default_model,
    list_available_providers,
)

logger = get_cli_logger("streaming")

NO_PROVIDER_REMEDIATION = "Set one of the listed API key environment variables (for example in ~/.vibe-relay/.env)"


@dataclass
class PromptRequest:
    """Everything a streaming command needs besides the prompt text."""

    command_type: CommandType
    provider: Optional[str] = None
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    reasoning_effort: Optional[str] = None
    web_search: bool = False
    system_prompt: Optional[str] = None
    fallback: Optional[bool] = None


def _resolve_start(cli_ctx: CLIContext, request: PromptRequest, credentials: CredentialSnapshot) -> Optional[Provider]:
    try:
        start = cli_ctx.config.resolve_provider(request.command_type, request.provider)
    except ConfigurationError as exc:
        emit_exception(exc)

    if start is None or credentials.has(credential_env_var(start)):
        return start
    if not request.provider:
        logger.warning(
            "Configured provider %s is not available (%s is not set); selecting from the preference list",
            start.value,
            credential_env_var(start),
        )
        return None

    available = [info.provider.value for info in list_available_providers(credentials)]
    emit_error(
        f"Provider {start.value} is not available. "
        f"Please set {credential_env_var(start)} in your environment.",
        code="UNAVAILABLE",
        error_type="unavailable",
        remediation=f"Available providers: {', '.join(available)}" if available else NO_PROVIDER_REMEDIATION,
        details={"provider": start.value, "available_providers": available},
    )


def stream_prompt(cli_ctx: CLIContext, prompt: str, request: PromptRequest) -> str:
    """Stream the answer for ``prompt`` to stdout and return the full text.

    Exits with status 1 after emitting an error when the invocation fails.
    """
    config = cli_ctx.config
    credentials = CredentialSnapshot.from_env()
    start = _resolve_start(cli_ctx, request, credentials)
    first_model = config.resolve_model(request.command_type, request.model)
    if start is None and not request.model and config.get_command_config(request.command_type).provider:
        # The configured model belongs to the skipped configured provider.
        first_model = None
    max_tokens = config.resolve_max_tokens(request.command_type, request.max_tokens)
    allow_fallback = config.fallback_enabled if request.fallback is None else request.fallback
    if request.provider:
        allow_fallback = False

    attempt_count = 0

    async def run_attempt(provider: Provider) -> CommandGenerator:
        nonlocal attempt_count
        attempt_count += 1
        model = first_model if attempt_count == 1 and first_model else get_default_model(provider)
        client = create_provider(provider, timeout=config.request_timeout)
        options = ModelOptions(
            model=model,
            max_tokens=max_tokens,
            debug=cli_ctx.debug,
            system_prompt=request.system_prompt,
            reasoning_effort=request.reasoning_effort or config.reasoning_effort,
            web_search=request.web_search,
        )
        if cli_ctx.debug:
            emit_diagnostic(f"[debug] provider={provider.value} model={model} max_tokens={max_tokens}")
        async for fragment in client.stream_prompt(prompt, options):
            yield fragment
        if cli_ctx.debug and client.token_usage is not None:
            usage = client.token_usage
            emit_diagnostic(
                f"[debug] tokens prompt={usage.prompt_tokens} "
                f"completion={usage.completion_tokens} total={usage.total_tokens}"
            )

    async def drive() -> CommandExecution:
        producer = stream_with_fallback(
            request.command_type,
            run_attempt,
            start_provider=start,
            credentials=credentials,
            allow_fallback=allow_fallback,
        )
        async with CommandExecution(producer) as execution:
            async for chunk in execution.chunks():
                if chunk.kind is ChunkKind.TEXT:
                    emit_text(chunk.text)
        return execution

    execution = run_async(drive)
    error = execution.error
    if error is None:
        if execution.partial_output and not execution.partial_output.endswith("\n"):
            emit_text("\n")
        return execution.partial_output

    if execution.partial_output:
        # Output already reached stdout; report the failure on stderr only.
        emit_text("\n")
        emit_diagnostic(f"Error: {error}")
        sys.exit(1)
    if isinstance(error, NoProviderAvailableError):
        emit_exception(error, remediation=NO_PROVIDER_REMEDIATION)
    if isinstance(error, Exception):
        emit_exception(error)
    raise error
