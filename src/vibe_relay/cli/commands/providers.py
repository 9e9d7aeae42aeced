"""Provider inspection commands: availability and fallback selection."""

from typing import Optional

import click

from vibe_relay.cli.logging import cli_command, get_cli_logger
from vibe_relay.cli.output import emit_exception, emit_success
from vibe_relay.cli.resilience import handle_keyboard_interrupt
from vibe_relay.core.errors import ConfigurationError
from vibe_relay.core.providers import (
    CommandType,
    CredentialSnapshot,
    credential_env_var,
    describe_candidates,
    list_all_providers,
    list_available_providers,
    parse_command_type,
    select_next_provider,
)

logger = get_cli_logger()


@click.group("providers")
def providers_group() -> None:
    """Inspect providers and the fallback order."""
    pass


@providers_group.command("list")
@click.option("--available", "available_only", is_flag=True, help="Only show providers with credentials set.")
@click.pass_context
@cli_command("providers-list")
@handle_keyboard_interrupt()
def providers_list_cmd(ctx: click.Context, available_only: bool) -> None:
    """List registered providers with availability and default model."""
    credentials = CredentialSnapshot.from_env()
    infos = list_available_providers(credentials) if available_only else list_all_providers(credentials)
    emit_success(
        {
            "providers": [
                {**info.to_dict(), "env_var": credential_env_var(info.provider)} for info in infos
            ],
            "count": len(infos),
        }
    )


@providers_group.command("select")
@click.argument("command_type", metavar="COMMAND_TYPE")
@click.option("--after", "after", help="Provider already tried; selection starts after it.")
@click.pass_context
@cli_command("providers-select")
@handle_keyboard_interrupt()
def providers_select_cmd(ctx: click.Context, command_type: str, after: Optional[str]) -> None:
    """Show which provider COMMAND_TYPE would use next.

    COMMAND_TYPE is one of: web, repo, plan_file, plan_thinking, doc, ask,
    browser, nix.
    """
    credentials = CredentialSnapshot.from_env()
    try:
        ctype: CommandType = parse_command_type(command_type)
        selected = select_next_provider(ctype, after, credentials)
    except ConfigurationError as exc:
        emit_exception(exc, remediation=f"Use one of: {', '.join(c.value for c in CommandType)}")

    emit_success(
        {
            "command_type": ctype.value,
            "after": after,
            "selected": selected.value if selected is not None else None,
            "candidates": [info.to_dict() for info in describe_candidates(ctype, credentials)],
        }
    )
