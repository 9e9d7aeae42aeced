"""CLI commands and command groups."""

from vibe_relay.cli.commands.ask import ask_cmd
from vibe_relay.cli.commands.models import models_cmd
from vibe_relay.cli.commands.nix import nix_group
from vibe_relay.cli.commands.providers import providers_group

__all__ = [
    "ask_cmd",
    "models_cmd",
    "nix_group",
    "providers_group",
]
