"""Configuration loading for vibe-relay."""

from vibe_relay.config.settings import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TIMEOUT,
    CommandConfig,
    RelayConfig,
    get_config,
    load_config,
    load_env_files,
    reset_config,
    set_config,
)

__all__ = [
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_TIMEOUT",
    "CommandConfig",
    "RelayConfig",
    "get_config",
    "load_config",
    "load_env_files",
    "reset_config",
    "set_config",
]
