"""Ask command: stream a one-off answer from the best available provider."""

from typing import Optional

import click

from vibe_relay.cli.logging import cli_command, get_cli_logger
from vibe_relay.cli.registry import get_context
from vibe_relay.cli.resilience import handle_keyboard_interrupt
from vibe_relay.cli.streaming import PromptRequest, stream_prompt
from vibe_relay.core.providers import CommandType

logger = get_cli_logger()

REASONING_EFFORTS = ["low", "medium", "high"]


@click.command("ask")
@click.argument("query")
@click.option("--provider", help="Provider to use instead of the preference list (disables fallback).")
@click.option("--model", help="Model to request from the first provider.")
@click.option("--max-tokens", type=click.IntRange(min=1), help="Maximum output tokens.")
@click.option(
    "--reasoning-effort",
    type=click.Choice(REASONING_EFFORTS),
    help="Effort hint for reasoning models.",
)
@click.option("--web-search", is_flag=True, help="Ground the answer in web search where supported.")
@click.option("--system-prompt", help="System instruction sent with the query.")
@click.option(
    "--fallback/--no-fallback",
    default=None,
    help="Try the next provider when one fails before answering.",
)
@click.pass_context
@cli_command("ask")
@handle_keyboard_interrupt()
def ask_cmd(
    ctx: click.Context,
    query: str,
    provider: Optional[str],
    model: Optional[str],
    max_tokens: Optional[int],
    reasoning_effort: Optional[str],
    web_search: bool,
    system_prompt: Optional[str],
    fallback: Optional[bool],
) -> None:
    """Ask QUERY and stream the answer to stdout."""
    cli_ctx = get_context(ctx)
    stream_prompt(
        cli_ctx,
        query,
        PromptRequest(
            command_type=CommandType.ASK,
            provider=provider,
            model=model,
            max_tokens=max_tokens,
            reasoning_effort=reasoning_effort,
            web_search=web_search,
            system_prompt=system_prompt,
            fallback=fallback,
        ),
    )
