"""vibe-relay CLI entry point.

Global options are parsed by the root group, which loads .env files and the
TOML configuration once and stores them on a ``CLIContext`` for commands.
"""

from pathlib import Path
from typing import Optional

import click

from vibe_relay import __version__
from vibe_relay.cli.commands import ask_cmd, models_cmd, nix_group, providers_group
from vibe_relay.cli.logging import configure_logging, get_cli_logger
from vibe_relay.cli.output import emit_error
from vibe_relay.cli.registry import CLIContext, set_context
from vibe_relay.config import load_config, load_env_files
from vibe_relay.config.settings import VALID_LOG_LEVELS

logger = get_cli_logger()


@click.group()
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to a vibe-relay.toml file (default: VIBE_RELAY_CONFIG_FILE or the standard search paths).",
)
@click.option("--debug", is_flag=True, help="Print provider, model and token usage diagnostics to stderr.")
@click.option(
    "--log-level",
    type=click.Choice(VALID_LOG_LEVELS, case_sensitive=False),
    help="Logging level (overrides config and VIBE_RELAY_LOG_LEVEL).",
)
@click.version_option(__version__, prog_name="vibe-relay")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[Path], debug: bool, log_level: Optional[str]) -> None:
    """vibe-relay: route AI commands to the best available provider."""
    load_env_files()

    try:
        config = load_config(config_file)
    except FileNotFoundError as e:
        emit_error(
            str(e),
            code="NOT_FOUND",
            error_type="not_found",
            remediation="Check the --config path or VIBE_RELAY_CONFIG_FILE",
            details={"config_file": str(config_file) if config_file else None},
        )
    except ValueError as e:
        emit_error(
            str(e),
            code="VALIDATION_ERROR",
            error_type="validation",
            remediation="Fix the listed settings in your vibe-relay.toml",
        )

    if log_level:
        config.log_level = log_level.upper()
    configure_logging(config.log_level)
    logger.debug(f"Loaded configuration: fallback_enabled={config.fallback_enabled}")

    set_context(ctx, CLIContext(config=config, debug=debug, config_file=config_file))


cli.add_command(ask_cmd)
cli.add_command(models_cmd)
cli.add_command(nix_group)
cli.add_command(providers_group)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
