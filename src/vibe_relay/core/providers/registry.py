"""Provider registry and availability resolver.

The registry is a static table of every provider vibe-relay can route to.
Each entry names a default model and the environment variable whose presence
makes the provider usable. Specialized apizh variants reuse the apizh
credential and differ only in default model and purpose.

Availability is never cached: every query takes a ``CredentialSnapshot``
(a fresh snapshot of ``os.environ`` when none is supplied), so keys exported
mid-session are picked up without explicit invalidation.

Example:
    from vibe_relay.core.providers.registry import (
        CredentialSnapshot,
        list_available_providers,
    )

    creds = CredentialSnapshot.from_env({"OPENAI_API_KEY": "sk-..."})
    [info.provider for info in list_available_providers(creds)]
    # [<Provider.OPENAI: 'openai'>]
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Mapping, Optional, Union

from vibe_relay.core.errors import ConfigurationError, UnknownProviderError


class Provider(str, Enum):
    """Closed set of provider identifiers."""

    PERPLEXITY = "perplexity"
    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"
    MODELBOX = "modelbox"
    XAI = "xai"
    APIZH = "apizh"
    # apizh variants
    APIZH_CODING = "apizh-coding"
    APIZH_CHINESE = "apizh-chinese"
    APIZH_ANALYSIS = "apizh-analysis"
    APIZH_CREATIVE = "apizh-creative"
    APIZH_MATH = "apizh-math"
    APIZH_WEB = "apizh-web"
    APIZH_REASONING = "apizh-reasoning"
    APIZH_COST = "apizh-cost"
    APIZH_NIX = "apizh-nix"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static metadata for one registered provider.

    Attributes:
        provider: Provider identifier
        default_model: Model used when neither the caller nor config picks one
        env_var: Environment variable whose presence makes the provider usable
        variant_of: Parent provider for specialized variants (shares env_var)
        purpose: Short human-readable description of what the entry is for
    """

    provider: Provider
    default_model: str
    env_var: str
    variant_of: Optional[Provider] = None
    purpose: str = ""

    @property
    def is_variant(self) -> bool:
        return self.variant_of is not None


def _variant(provider: Provider, model: str, purpose: str) -> ProviderDescriptor:
    return ProviderDescriptor(
        provider=provider,
        default_model=model,
        env_var="APIZH_API_KEY",
        variant_of=Provider.APIZH,
        purpose=purpose,
    )


# Registry order is the order list_all_providers() reports.
PROVIDER_REGISTRY: Dict[Provider, ProviderDescriptor] = {
    d.provider: d
    for d in (
        ProviderDescriptor(Provider.PERPLEXITY, "sonar-pro", "PERPLEXITY_API_KEY", purpose="web search"),
        ProviderDescriptor(Provider.GEMINI, "gemini-2.5-pro", "GEMINI_API_KEY", purpose="large context"),
        ProviderDescriptor(Provider.OPENAI, "gpt-4.1", "OPENAI_API_KEY", purpose="general purpose"),
        ProviderDescriptor(
            Provider.ANTHROPIC, "claude-sonnet-4-20250514", "ANTHROPIC_API_KEY", purpose="tool use"
        ),
        ProviderDescriptor(Provider.OPENROUTER, "google/gemini-2.5-pro", "OPENROUTER_API_KEY", purpose="router"),
        ProviderDescriptor(Provider.MODELBOX, "google/gemini-2.5-pro", "MODELBOX_API_KEY", purpose="router"),
        ProviderDescriptor(Provider.XAI, "grok-3-latest", "XAI_API_KEY", purpose="general purpose"),
        ProviderDescriptor(Provider.APIZH, "gpt-4o-mini", "APIZH_API_KEY", purpose="API relay"),
        _variant(Provider.APIZH_CODING, "o3", "coding and code generation"),
        _variant(Provider.APIZH_CHINESE, "qwen3-235b-a22b", "Chinese content"),
        _variant(Provider.APIZH_ANALYSIS, "claude-sonnet-4-20250514", "analysis and research"),
        _variant(Provider.APIZH_CREATIVE, "claude-opus-4-20250514", "creative writing"),
        _variant(Provider.APIZH_MATH, "o1", "math and science reasoning"),
        _variant(Provider.APIZH_WEB, "gemini-2.5-pro-exp-03-25", "web search"),
        _variant(Provider.APIZH_REASONING, "o1-mini", "logical reasoning"),
        _variant(Provider.APIZH_COST, "gpt-4o-mini", "cost optimized"),
        _variant(Provider.APIZH_NIX, "gpt-4.1-2025-04-14", "Nix package management"),
    )
}


def _validate_registry() -> None:
    missing = [p.value for p in Provider if p not in PROVIDER_REGISTRY]
    if missing:
        raise ConfigurationError(f"Providers missing from registry: {missing}")
    for descriptor in PROVIDER_REGISTRY.values():
        if descriptor.variant_of is not None:
            parent = PROVIDER_REGISTRY[descriptor.variant_of]
            if parent.env_var != descriptor.env_var:
                raise ConfigurationError(
                    f"Variant {descriptor.provider.value} must share the "
                    f"{parent.env_var} credential of {parent.provider.value}"
                )


_validate_registry()


@dataclass(frozen=True)
class CredentialSnapshot:
    """Point-in-time view of which credential variables are set.

    A variable counts as present when it holds a non-empty string.
    """

    present: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CredentialSnapshot":
        """Snapshot credential presence from ``environ`` (default ``os.environ``)."""
        source = os.environ if environ is None else environ
        env_vars = {d.env_var for d in PROVIDER_REGISTRY.values()}
        return cls(present=frozenset(name for name in env_vars if source.get(name)))

    def has(self, env_var: str) -> bool:
        return env_var in self.present


@dataclass(frozen=True)
class ProviderInfo:
    """Derived availability record, built per query and never stored."""

    provider: Provider
    available: bool
    default_model: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "provider": self.provider.value,
            "available": self.available,
            "default_model": self.default_model,
        }


ProviderLike = Union[Provider, str]


def parse_provider(value: ProviderLike) -> Provider:
    """Coerce a string or enum member into a ``Provider``.

    Raises:
        UnknownProviderError: If ``value`` is not a registered identifier
    """
    if isinstance(value, Provider):
        return value
    try:
        return Provider(str(value).strip().lower())
    except ValueError:
        raise UnknownProviderError(value) from None


def _lookup(value: ProviderLike) -> Optional[Provider]:
    try:
        return parse_provider(value)
    except UnknownProviderError:
        return None


def get_descriptor(provider: ProviderLike) -> ProviderDescriptor:
    return PROVIDER_REGISTRY[parse_provider(provider)]


def get_default_model(provider: ProviderLike) -> str:
    """Return the default model for ``provider``.

    Raises:
        UnknownProviderError: If the identifier is not registered
    """
    return get_descriptor(provider).default_model


def credential_env_var(provider: ProviderLike) -> str:
    return get_descriptor(provider).env_var


def _resolve_credentials(credentials: Optional[CredentialSnapshot]) -> CredentialSnapshot:
    return credentials if credentials is not None else CredentialSnapshot.from_env()


def _info(descriptor: ProviderDescriptor, credentials: CredentialSnapshot) -> ProviderInfo:
    return ProviderInfo(
        provider=descriptor.provider,
        available=credentials.has(descriptor.env_var),
        default_model=descriptor.default_model,
    )


def list_all_providers(credentials: Optional[CredentialSnapshot] = None) -> List[ProviderInfo]:
    """Return availability for every registered provider, variants included."""
    creds = _resolve_credentials(credentials)
    return [_info(descriptor, creds) for descriptor in PROVIDER_REGISTRY.values()]


def get_provider_info(
    provider_id: ProviderLike,
    credentials: Optional[CredentialSnapshot] = None,
) -> Optional[ProviderInfo]:
    """Return the ProviderInfo for ``provider_id``, or None when unrecognized."""
    provider = _lookup(provider_id)
    if provider is None:
        return None
    return _info(PROVIDER_REGISTRY[provider], _resolve_credentials(credentials))


def is_provider_available(
    provider_id: ProviderLike,
    credentials: Optional[CredentialSnapshot] = None,
) -> bool:
    info = get_provider_info(provider_id, credentials)
    return info is not None and info.available


def list_available_providers(credentials: Optional[CredentialSnapshot] = None) -> List[ProviderInfo]:
    return [info for info in list_all_providers(credentials) if info.available]
