"""vibe-relay command line interface.

Entry point: ``vibe-relay`` -> ``vibe_relay.cli.main:main``.
"""

from vibe_relay.cli.main import cli, main

__all__ = ["cli", "main"]
