"""Error hierarchy for vibe-relay.

Configuration errors (unknown provider, unknown command type) are programmer or
config mistakes and are fatal at selection time. Provider errors come from a
single provider call and may be recovered at the command layer by falling back
to the next provider in the preference list.

Usage:
    from vibe_relay.core.errors import error_to_response

    try:
        run_command()
    except Exception as e:
        result = error_to_response(e)
        if result is None:
            raise
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple, Type

if TYPE_CHECKING:
    from vibe_relay.core.providers.registry import ProviderInfo


class ConfigurationError(ValueError):
    """Raised for invalid static configuration (tables, config files, ids)."""


class UnknownProviderError(ConfigurationError):
    """Raised when a provider identifier is not in the registry."""

    def __init__(self, provider: Any):
        self.provider = provider
        super().__init__(f"Unknown provider: {provider}")


class UnknownCommandTypeError(ConfigurationError):
    """Raised when a command type has no registered preference list."""

    def __init__(self, command_type: Any):
        self.command_type = command_type
        super().__init__(f"Unknown command type: {command_type}")


class ProviderError(RuntimeError):
    """Base exception for provider call failures."""

    def __init__(self, message: str, *, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(ProviderError):
    """Raised when a provider cannot be constructed (missing credential)."""


class ProviderExecutionError(ProviderError):
    """Raised when a provider call returns an error response."""

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, provider=provider)
        self.status_code = status_code


class ProviderAuthenticationError(ProviderExecutionError):
    """Raised on 401/403 responses."""


class ProviderRateLimitError(ProviderExecutionError):
    """Raised on 429 responses."""


class ModelNotFoundError(ProviderExecutionError):
    """Raised when the provider does not know the requested model."""


class ProviderTimeoutError(ProviderError):
    """Raised when a provider does not respond within the client timeout.

    Attributes:
        provider: Provider that timed out
        timeout: Configured timeout value in seconds
    """

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(message, provider=provider)
        self.timeout = timeout


class NoProviderAvailableError(ProviderError):
    """Raised by commands when the preference list has no usable provider left.

    The message enumerates every candidate that was considered together with
    its availability and credential variable so users can self-diagnose
    missing keys without reading logs.

    Attributes:
        command_type: Command type whose preference list was exhausted
        candidates: ProviderInfo for every provider in the preference list
        attempts: (provider, error message) pairs for providers that failed
    """

    def __init__(
        self,
        command_type: str,
        candidates: Sequence["ProviderInfo"],
        attempts: Optional[Sequence[Tuple[str, str]]] = None,
    ):
        self.command_type = command_type
        self.candidates = list(candidates)
        self.attempts = list(attempts or [])
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        from vibe_relay.core.providers.registry import credential_env_var

        lines = [f"No AI provider available for '{self.command_type}'."]
        failed = dict(self.attempts)
        lines.append("Providers checked:")
        for info in self.candidates:
            name = info.provider.value
            if name in failed:
                state = f"failed: {failed[name]}"
            elif info.available:
                state = "available"
            else:
                state = f"missing {credential_env_var(info.provider)}"
            lines.append(f"- {name} ({state})")
        lines.append("Set one of the API keys above (or run with --provider) and try again.")
        return "\n".join(lines)

    def to_details(self) -> Dict[str, Any]:
        from vibe_relay.core.providers.registry import credential_env_var

        return {
            "command_type": self.command_type,
            "candidates": [
                {
                    "provider": info.provider.value,
                    "available": info.available,
                    "env_var": credential_env_var(info.provider),
                }
                for info in self.candidates
            ],
            "attempts": [{"provider": p, "error": e} for p, e in self.attempts],
        }


ERROR_MAPPINGS: Dict[Type[Exception], Tuple[str, str]] = {
    # --- Configuration errors ---
    ConfigurationError: ("VALIDATION_ERROR", "validation"),
    UnknownProviderError: ("INVALID_PROVIDER", "validation"),
    UnknownCommandTypeError: ("INVALID_COMMAND_TYPE", "validation"),
    # --- Provider errors ---
    ProviderError: ("AI_PROVIDER_ERROR", "ai_provider"),
    ProviderUnavailableError: ("UNAVAILABLE", "unavailable"),
    ProviderExecutionError: ("AI_PROVIDER_ERROR", "ai_provider"),
    ProviderAuthenticationError: ("UNAUTHORIZED", "authentication"),
    ProviderRateLimitError: ("RATE_LIMIT_EXCEEDED", "rate_limit"),
    ModelNotFoundError: ("NOT_FOUND", "not_found"),
    ProviderTimeoutError: ("AI_PROVIDER_TIMEOUT", "unavailable"),
    NoProviderAvailableError: ("AI_NO_PROVIDER", "unavailable"),
}


def error_to_response(exc: Exception) -> Optional[Dict[str, Any]]:
    """Convert a known exception to an error envelope dict, or None if unknown.

    Looks up the exception's *exact* type in ERROR_MAPPINGS.
    """
    mapping = ERROR_MAPPINGS.get(type(exc))
    if mapping is None:
        return None

    code, error_type = mapping
    data: Dict[str, Any] = {"error_code": code, "error_type": error_type}
    provider = getattr(exc, "provider", None)
    if provider is not None:
        data["provider"] = getattr(provider, "value", provider)
    if isinstance(exc, NoProviderAvailableError):
        data["details"] = exc.to_details()
    return {
        "success": False,
        "data": data,
        "error": str(exc),
        "meta": {"version": "response-v2"},
    }


__all__: List[str] = [
    "ConfigurationError",
    "UnknownProviderError",
    "UnknownCommandTypeError",
    "ProviderError",
    "ProviderUnavailableError",
    "ProviderExecutionError",
    "ProviderAuthenticationError",
    "ProviderRateLimitError",
    "ModelNotFoundError",
    "ProviderTimeoutError",
    "NoProviderAvailableError",
    "ERROR_MAPPINGS",
    "error_to_response",
]
