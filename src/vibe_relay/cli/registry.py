"""Per-invocation CLI context stored on ``click.Context.obj``."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import click

from vibe_relay.config import RelayConfig


@dataclass
class CLIContext:
    """Global options and loaded configuration for one CLI invocation.

    Attributes:
        config: Loaded relay configuration
        debug: Emit provider/model/usage diagnostics to stderr
        config_file: Explicit --config path, if any
    """

    config: RelayConfig = field(default_factory=RelayConfig)
    debug: bool = False
    config_file: Optional[Path] = None


def set_context(ctx: click.Context, cli_ctx: CLIContext) -> CLIContext:
    ctx.obj = cli_ctx
    return cli_ctx


def get_context(ctx: click.Context) -> CLIContext:
    """Return the CLIContext for ``ctx``, creating a default one if missing."""
    root = ctx.find_root()
    if not isinstance(root.obj, CLIContext):
        root.obj = CLIContext()
    return root.obj
