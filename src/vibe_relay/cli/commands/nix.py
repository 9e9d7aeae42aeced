"""Nix commands for the flake in the current directory.

``assist`` takes any free-form request. ``explain``, ``analyze``, ``suggest`` and
``fix`` work on an existing flake.nix, ``init`` writes a new one and
``troubleshoot`` reports on the local setup.

When nix is missing or a required flake.nix is absent, the commands print the
matching help message and exit successfully instead of calling a provider.
"""

from typing import Any, Callable, Optional

import click

from vibe_relay.cli.logging import cli_command, get_cli_logger
from vibe_relay.cli.output import emit_diagnostic, emit_error, emit_text
from vibe_relay.cli.registry import get_context
from vibe_relay.cli.resilience import handle_keyboard_interrupt
from vibe_relay.cli.streaming import PromptRequest, stream_prompt
from vibe_relay.core import nix as nix_env
from vibe_relay.core.providers import CommandType

logger = get_cli_logger()


def _provider_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--max-tokens", type=click.IntRange(min=1), help="Maximum output tokens.")(func)
    func = click.option("--model", help="Model to request from the first provider.")(func)
    func = click.option("--provider", help="Provider to use instead of the preference list.")(func)
    return func


def _read_flake_or_exit() -> str:
    try:
        return nix_env.read_flake()
    except OSError as e:
        emit_error(
            f"Failed to read flake.nix: {e}",
            code="IO_ERROR",
            error_type="io",
            remediation="Check file permissions for flake.nix",
        )


def _flake_context(env: nix_env.NixEnvironment) -> str:
    """Return flake.nix for use as prompt context, or "" when it is absent or unreadable."""
    if not env.has_flake:
        return ""
    try:
        return nix_env.read_flake()
    except OSError as e:
        logger.warning("Could not read flake.nix: %s", e)
        return ""


def _usable(env: nix_env.NixEnvironment) -> bool:
    """Print the blocking help message and return False, or warn and return True."""
    message = nix_env.help_message(env)
    if not env.has_nix or not env.has_flake:
        emit_text(message + "\n")
        return False
    if message:
        emit_diagnostic(message)
    return True


@click.group("nix")
def nix_group() -> None:
    """Nix flake assistance."""
    pass


@nix_group.command("explain")
@click.argument("query", required=False, default="")
@_provider_options
@click.pass_context
@cli_command("nix-explain")
@handle_keyboard_interrupt()
def nix_explain_cmd(
    ctx: click.Context,
    query: str,
    provider: Optional[str],
    model: Optional[str],
    max_tokens: Optional[int],
) -> None:
    """Explain flake.nix, or only the part about QUERY."""
    env = nix_env.detect_environment()
    if not _usable(env):
        return

    flake = _read_flake_or_exit()
    emit_text("Explaining flake.nix...\n\n")
    stream_prompt(
        get_context(ctx),
        nix_env.build_explain_prompt(flake, query),
        PromptRequest(command_type=CommandType.NIX, provider=provider, model=model, max_tokens=max_tokens),
    )


@nix_group.command("analyze")
@_provider_options
@click.pass_context
@cli_command("nix-analyze")
@handle_keyboard_interrupt()
def nix_analyze_cmd(
    ctx: click.Context,
    provider: Optional[str],
    model: Optional[str],
    max_tokens: Optional[int],
) -> None:
    """Review flake.nix for structure, dependencies and improvements."""
    env = nix_env.detect_environment()
    if not _usable(env):
        return

    flake = _read_flake_or_exit()
    emit_text("Analyzing flake.nix...\n" + "\n".join(env.summary_lines()) + "\n\n")
    stream_prompt(
        get_context(ctx),
        nix_env.build_analyze_prompt(flake, env),
        PromptRequest(command_type=CommandType.REPO, provider=provider, model=model, max_tokens=max_tokens),
    )


@nix_group.command("fix")
@click.argument("query", required=False, default="")
@_provider_options
@click.pass_context
@cli_command("nix-fix")
@handle_keyboard_interrupt()
def nix_fix_cmd(
    ctx: click.Context,
    query: str,
    provider: Optional[str],
    model: Optional[str],
    max_tokens: Optional[int],
) -> None:
    """Suggest a fix for QUERY, or for whatever `nix flake check` reports."""
    env = nix_env.detect_environment()
    if not env.has_nix:
        emit_text(nix_env.NIX_INSTALL_HINT + "\n")
        return

    problem = query.strip()
    flake = ""
    error_details = ""
    if env.has_flake:
        flake = _read_flake_or_exit()
        ok, output = nix_env.flake_check()
        if not ok:
            error_details = output
            if not problem:
                problem = output.splitlines()[0] if output else "nix flake check failed"
    if not problem:
        problem = "No flake.nix in the current directory" if not env.has_flake else "General flake review"

    emit_text(f"Problem: {problem}\n\n")
    stream_prompt(
        get_context(ctx),
        nix_env.build_fix_prompt(problem, env, flake=flake, error_details=error_details),
        PromptRequest(command_type=CommandType.NIX, provider=provider, model=model, max_tokens=max_tokens),
    )


@nix_group.command("assist")
@click.argument("query", required=False, default="")
@_provider_options
@click.pass_context
@cli_command("nix-assist")
@handle_keyboard_interrupt()
def nix_assist_cmd(
    ctx: click.Context,
    query: str,
    provider: Optional[str],
    model: Optional[str],
    max_tokens: Optional[int],
) -> None:
    """Help with any Nix task described in QUERY."""
    if not query.strip():
        emit_text(nix_env.ASSIST_USAGE + "\n")
        return

    env = nix_env.detect_environment()
    emit_text(
        f"Nix: {'yes' if env.has_nix else 'no'} | "
        f"flake.nix: {'yes' if env.has_flake else 'no'} | "
        f"Project: {env.project_type or 'unknown'}\n\n"
    )
    prompt = nix_env.build_assist_prompt(
        query,
        env,
        flake=_flake_context(env),
        files=nix_env.list_directory(),
    )
    stream_prompt(
        get_context(ctx),
        prompt,
        PromptRequest(command_type=CommandType.NIX, provider=provider, model=model, max_tokens=max_tokens),
    )


@nix_group.command("init")
@click.argument("project_type", required=False, default="")
@_provider_options
@click.pass_context
@cli_command("nix-init")
@handle_keyboard_interrupt()
def nix_init_cmd(
    ctx: click.Context,
    project_type: str,
    provider: Optional[str],
    model: Optional[str],
    max_tokens: Optional[int],
) -> None:
    """Generate flake.nix for this project, or for PROJECT_TYPE."""
    env = nix_env.detect_environment()
    if not env.has_nix:
        emit_text(nix_env.NIX_INSTALL_HINT + "\n")
        return
    if env.has_flake:
        emit_text(nix_env.FLAKE_EXISTS_MESSAGE + "\n")
        return

    target_type = project_type.strip() or env.project_type or "Generic"
    emit_text(f"Generating flake.nix for a {target_type} project...\n\n")
    answer = stream_prompt(
        get_context(ctx),
        nix_env.build_init_prompt(target_type),
        PromptRequest(command_type=CommandType.NIX, provider=provider, model=model, max_tokens=max_tokens),
    )

    content = nix_env.clean_flake_content(answer)
    if not content:
        emit_error(
            "The provider returned no flake.nix content",
            code="AI_PROVIDER_ERROR",
            error_type="ai_provider",
            remediation="Try again, or pick another provider with --provider",
        )
    try:
        path = nix_env.write_flake(content)
    except OSError as e:
        emit_error(
            f"Failed to write flake.nix: {e}",
            code="IO_ERROR",
            error_type="io",
            remediation="Check write permissions for the current directory",
        )
    logger.info("Wrote %s", path)
    emit_text(f"\nWrote {path.name}\n\nNext steps:\n" + "\n".join(nix_env.init_next_steps(env)) + "\n")


@nix_group.command("suggest")
@_provider_options
@click.pass_context
@cli_command("nix-suggest")
@handle_keyboard_interrupt()
def nix_suggest_cmd(
    ctx: click.Context,
    provider: Optional[str],
    model: Optional[str],
    max_tokens: Optional[int],
) -> None:
    """Suggest improvements to flake.nix."""
    env = nix_env.detect_environment()
    if not _usable(env):
        return

    flake = _read_flake_or_exit()
    emit_text("Generating suggestions...\n\n")
    stream_prompt(
        get_context(ctx),
        nix_env.build_suggest_prompt(flake, env),
        PromptRequest(command_type=CommandType.REPO, provider=provider, model=model, max_tokens=max_tokens),
    )


@nix_group.command("troubleshoot")
@click.argument("query", required=False, default="")
@_provider_options
@click.pass_context
@cli_command("nix-troubleshoot")
@handle_keyboard_interrupt()
def nix_troubleshoot_cmd(
    ctx: click.Context,
    query: str,
    provider: Optional[str],
    model: Optional[str],
    max_tokens: Optional[int],
) -> None:
    """Diagnose the problem in QUERY, or run a generic health check."""
    env = nix_env.detect_environment()
    emit_text("Environment report:\n" + "\n".join(env.summary_lines()) + "\n\n")

    if query.strip():
        stream_prompt(
            get_context(ctx),
            nix_env.build_troubleshoot_prompt(query, env, flake=_flake_context(env)),
            PromptRequest(command_type=CommandType.REPO, provider=provider, model=model, max_tokens=max_tokens),
        )
        return

    issues = nix_env.find_issues(env)
    if not issues:
        emit_text(
            "No obvious problems found.\n\n"
            "Describe a specific problem with:\n"
            '  vibe-relay nix troubleshoot "what goes wrong"\n'
        )
        return

    remedies = []
    if not env.has_nix:
        remedies.append(nix_env.NIX_INSTALL_HINT)
    elif not env.has_flake:
        remedies.append(nix_env.NO_FLAKE_HINT)
    elif env.has_git and not env.flake_tracked:
        remedies.append(nix_env.UNTRACKED_FLAKE_HINT)
    emit_text(
        "Problems found:\n"
        + "\n".join(f"- {issue}" for issue in issues)
        + "\n"
        + "".join(f"\n{remedy}\n" for remedy in remedies)
    )
