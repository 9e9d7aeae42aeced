"""vibe-relay: provider resolution, fallback and streaming for AI CLI commands."""

__version__ = "0.1.0"
