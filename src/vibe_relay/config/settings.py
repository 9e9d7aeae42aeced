"""Relay configuration: RelayConfig, CommandConfig and load/get/set/reset functions."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from dotenv import load_dotenv

from vibe_relay.config._paths import _default_config_search_paths, _default_env_file_paths
from vibe_relay.core.errors import ConfigurationError
from vibe_relay.core.providers.preferences import CommandType, CommandTypeLike, parse_command_type
from vibe_relay.core.providers.registry import Provider, ProviderLike, parse_provider

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 8000
DEFAULT_TIMEOUT = 120.0
VALID_REASONING_EFFORTS = ("low", "medium", "high")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


@dataclass
class CommandConfig:
    """Per-command overrides consulted before the fallback selector.

    TOML Configuration Example:
        [commands.ask]
        provider = "openai"
        model = "gpt-4.1"
        max_tokens = 4000

    Attributes:
        provider: Provider to use instead of the preference list (optional)
        model: Model to request instead of the provider default (optional)
        max_tokens: Output token limit for this command (optional)
    """

    provider: Optional[str] = None
    model: Optional[str] = None
    max_tokens: Optional[int] = None

    def validate(self) -> None:
        """Validate the command configuration.

        Raises:
            ConfigurationError: If the provider is unknown or max_tokens is not positive
        """
        if self.provider is not None:
            parse_provider(self.provider)
        if self.max_tokens is not None and self.max_tokens < 1:
            raise ConfigurationError(f"max_tokens must be positive, got {self.max_tokens}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommandConfig":
        config = cls()
        if "provider" in data:
            config.provider = str(data["provider"]).strip().lower()
        if "model" in data:
            config.model = str(data["model"])
        if "max_tokens" in data:
            config.max_tokens = int(data["max_tokens"])
        return config


@dataclass
class RelayConfig:
    """vibe-relay configuration parsed from vibe-relay.toml.

    TOML Configuration Example:
        [relay]
        max_tokens = 8000            # Default output token limit
        reasoning_effort = "medium"  # low | medium | high
        fallback_enabled = true      # Try the next provider when one fails
        request_timeout = 120.0      # Per-request HTTP timeout in seconds

        [logging]
        level = "WARNING"

        [commands.nix]
        provider = "apizh-nix"
        model = "gpt-4.1-2025-04-14"

    Environment Variables:
        - VIBE_RELAY_MAX_TOKENS: Default output token limit
        - VIBE_RELAY_REASONING_EFFORT: Default reasoning effort
        - VIBE_RELAY_FALLBACK_ENABLED: Enable provider fallback
        - VIBE_RELAY_TIMEOUT: Request timeout
        - VIBE_RELAY_LOG_LEVEL: Log level

    Attributes:
        max_tokens: Default output token limit
        reasoning_effort: Default reasoning effort hint (optional)
        fallback_enabled: Whether commands fall back to the next provider on failure
        request_timeout: Per-request timeout for provider clients in seconds
        log_level: Logging level name
        commands: Per-command overrides keyed by CommandType
    """

    max_tokens: int = DEFAULT_MAX_TOKENS
    reasoning_effort: Optional[str] = None
    fallback_enabled: bool = True
    request_timeout: float = DEFAULT_TIMEOUT
    log_level: str = "WARNING"
    commands: Dict[CommandType, CommandConfig] = field(default_factory=dict)

    def get_command_config(self, command_type: CommandTypeLike) -> CommandConfig:
        return self.commands.get(parse_command_type(command_type), CommandConfig())

    def resolve_provider(
        self,
        command_type: CommandTypeLike,
        explicit: Optional[ProviderLike] = None,
    ) -> Optional[Provider]:
        """Return the explicit provider, else the configured one, else None.

        None means the caller should ask the fallback selector.

        Raises:
            UnknownProviderError: If the chosen identifier is not registered
        """
        if explicit:
            return parse_provider(explicit)
        configured = self.get_command_config(command_type).provider
        if configured:
            return parse_provider(configured)
        return None

    def resolve_model(self, command_type: CommandTypeLike, explicit: Optional[str] = None) -> Optional[str]:
        return explicit or self.get_command_config(command_type).model

    def resolve_max_tokens(self, command_type: CommandTypeLike, explicit: Optional[int] = None) -> int:
        return explicit or self.get_command_config(command_type).max_tokens or self.max_tokens

    def validate(self) -> None:
        """Validate the relay configuration.

        Raises:
            ConfigurationError: Listing every invalid setting
        """
        errors: List[str] = []
        if self.max_tokens < 1:
            errors.append(f"max_tokens must be positive, got {self.max_tokens}")
        if self.request_timeout <= 0:
            errors.append(f"request_timeout must be positive, got {self.request_timeout}")
        if self.reasoning_effort is not None and self.reasoning_effort not in VALID_REASONING_EFFORTS:
            errors.append(
                f"reasoning_effort must be one of {list(VALID_REASONING_EFFORTS)}, "
                f"got '{self.reasoning_effort}'"
            )
        if self.log_level not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be one of {list(VALID_LOG_LEVELS)}, got '{self.log_level}'")
        for command_type, command_config in self.commands.items():
            try:
                command_config.validate()
            except ConfigurationError as e:
                errors.append(f"commands.{command_type.value}: {e}")

        if errors:
            raise ConfigurationError("Invalid configuration:\n" + "\n".join(errors))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RelayConfig":
        """Create RelayConfig from a parsed TOML document.

        Raises:
            ConfigurationError: If a [commands.*] table names an unknown command type
        """
        config = cls()
        relay = data.get("relay", {})
        if isinstance(relay, dict):
            if "max_tokens" in relay:
                config.max_tokens = int(relay["max_tokens"])
            if "reasoning_effort" in relay:
                config.reasoning_effort = str(relay["reasoning_effort"]).lower()
            if "fallback_enabled" in relay:
                config.fallback_enabled = _parse_bool(relay["fallback_enabled"])
            if "request_timeout" in relay:
                config.request_timeout = float(relay["request_timeout"])
        else:
            logger.warning(f"Invalid [relay] format (expected table): {type(relay)}")

        log = data.get("logging", {})
        if isinstance(log, dict) and "level" in log:
            config.log_level = str(log["level"]).upper()

        commands = data.get("commands", {})
        if isinstance(commands, dict):
            for name, command_data in commands.items():
                command_type = parse_command_type(name)
                if isinstance(command_data, dict):
                    config.commands[command_type] = CommandConfig.from_dict(command_data)
                else:
                    logger.warning(
                        f"Invalid command config format for '{name}' (expected table): {type(command_data)}"
                    )
        else:
            logger.warning(f"Invalid [commands] format (expected table): {type(commands)}")

        return config

    @classmethod
    def from_toml(cls, path: Path) -> "RelayConfig":
        """Load configuration from a TOML file.

        Raises:
            FileNotFoundError: If the config file doesn't exist
        """
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls.from_dict(data)

    def apply_env(self) -> None:
        """Override settings from VIBE_RELAY_* environment variables."""
        if max_tokens := os.environ.get("VIBE_RELAY_MAX_TOKENS"):
            try:
                self.max_tokens = int(max_tokens)
            except ValueError:
                logger.warning(f"Invalid VIBE_RELAY_MAX_TOKENS: {max_tokens}, using {self.max_tokens}")

        if effort := os.environ.get("VIBE_RELAY_REASONING_EFFORT"):
            self.reasoning_effort = effort.strip().lower()

        if fallback := os.environ.get("VIBE_RELAY_FALLBACK_ENABLED"):
            self.fallback_enabled = _parse_bool(fallback)

        if timeout := os.environ.get("VIBE_RELAY_TIMEOUT"):
            try:
                self.request_timeout = float(timeout)
            except ValueError:
                logger.warning(f"Invalid VIBE_RELAY_TIMEOUT: {timeout}, using {self.request_timeout}")

        if level := os.environ.get("VIBE_RELAY_LOG_LEVEL"):
            self.log_level = level.strip().upper()

    @classmethod
    def from_env(cls) -> "RelayConfig":
        """Create RelayConfig from environment variables only."""
        config = cls()
        config.apply_env()
        return config


def load_env_files() -> List[Path]:
    """Load credential .env files without overriding variables already set.

    Returns:
        The files that were found and loaded
    """
    loaded = []
    for path in _default_env_file_paths():
        if path.is_file():
            load_dotenv(path, override=False)
            loaded.append(path)
            logger.debug(f"Loaded environment from {path}")
    return loaded


def load_config(config_file: Optional[Path] = None, use_env: bool = True) -> RelayConfig:
    """Load configuration from TOML with environment overrides.

    Priority (highest to lowest):
    1. Environment variables
    2. Explicit config file (or VIBE_RELAY_CONFIG_FILE), otherwise the last
       existing file in the default search paths
    3. Default values

    Raises:
        FileNotFoundError: If an explicit config file does not exist
        ConfigurationError: If the resulting configuration is invalid
    """
    config = RelayConfig()

    explicit = config_file or os.environ.get("VIBE_RELAY_CONFIG_FILE")
    if explicit:
        config = RelayConfig.from_toml(Path(explicit))
        logger.debug(f"Loaded config from {explicit}")
    else:
        for path in _default_config_search_paths():
            if path.exists():
                config = RelayConfig.from_toml(path)
                logger.debug(f"Loaded config from {path}")

    if use_env:
        config.apply_env()

    config.validate()
    return config


_relay_config: Optional[RelayConfig] = None


def get_config() -> RelayConfig:
    """Get the global configuration instance (loaded on first call)."""
    global _relay_config
    if _relay_config is None:
        _relay_config = load_config()
    return _relay_config


def set_config(config: RelayConfig) -> None:
    global _relay_config
    _relay_config = config


def reset_config() -> None:
    """Reset the global configuration. Useful for testing or reloading."""
    global _relay_config
    _relay_config = None
