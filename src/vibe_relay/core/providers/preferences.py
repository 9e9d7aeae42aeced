"""Preference table and fallback selector.

Every ``CommandType`` owns one ordered tuple of providers, most preferred
first. ``select_next_provider`` walks that tuple and returns the first
provider whose credential is present, optionally starting after a provider
that was already tried.

The table is validated at import time: it must be total over ``CommandType``,
every list must be non-empty and duplicate-free, and every entry must be a
registered provider.

Example:
    from vibe_relay.core.providers.preferences import CommandType, select_next_provider

    first = select_next_provider(CommandType.ASK)
    if first is not None:
        second = select_next_provider(CommandType.ASK, first)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from vibe_relay.core.errors import (
    ConfigurationError,
    UnknownCommandTypeError,
    UnknownProviderError,
)
from vibe_relay.core.providers.registry import (
    PROVIDER_REGISTRY,
    CredentialSnapshot,
    Provider,
    ProviderInfo,
    ProviderLike,
    get_provider_info,
    list_all_providers,
    parse_provider,
)

logger = logging.getLogger(__name__)


class CommandType(str, Enum):
    """Task categories, each with its own provider preference order.

    Values:
        WEB: Web search backed questions
        REPO: Repository / codebase analysis
        PLAN_FILE: File identification step of planning
        PLAN_THINKING: Reasoning step of planning
        DOC: Documentation generation
        ASK: Direct questions
        BROWSER: Browser automation
        NIX: Nix flake assistance
    """

    WEB = "web"
    REPO = "repo"
    PLAN_FILE = "plan_file"
    PLAN_THINKING = "plan_thinking"
    DOC = "doc"
    ASK = "ask"
    BROWSER = "browser"
    NIX = "nix"

    def __str__(self) -> str:
        return self.value


_P = Provider

PROVIDER_PREFERENCE: Dict[CommandType, Tuple[Provider, ...]] = {
    CommandType.WEB: (_P.APIZH_WEB, _P.PERPLEXITY, _P.GEMINI, _P.MODELBOX, _P.OPENROUTER, _P.APIZH),
    CommandType.REPO: (
        _P.APIZH_ANALYSIS,
        _P.GEMINI,
        _P.MODELBOX,
        _P.OPENROUTER,
        _P.OPENAI,
        _P.PERPLEXITY,
        _P.ANTHROPIC,
        _P.XAI,
        _P.APIZH,
    ),
    CommandType.PLAN_FILE: (
        _P.APIZH_COST,
        _P.GEMINI,
        _P.MODELBOX,
        _P.OPENROUTER,
        _P.OPENAI,
        _P.PERPLEXITY,
        _P.ANTHROPIC,
        _P.XAI,
        _P.APIZH,
    ),
    CommandType.PLAN_THINKING: (
        _P.APIZH_REASONING,
        _P.OPENAI,
        _P.MODELBOX,
        _P.OPENROUTER,
        _P.GEMINI,
        _P.ANTHROPIC,
        _P.PERPLEXITY,
        _P.XAI,
        _P.APIZH,
    ),
    CommandType.DOC: (
        _P.APIZH_ANALYSIS,
        _P.GEMINI,
        _P.MODELBOX,
        _P.OPENROUTER,
        _P.OPENAI,
        _P.PERPLEXITY,
        _P.ANTHROPIC,
        _P.XAI,
        _P.APIZH,
    ),
    CommandType.ASK: (
        _P.APIZH_COST,
        _P.OPENAI,
        _P.MODELBOX,
        _P.OPENROUTER,
        _P.GEMINI,
        _P.ANTHROPIC,
        _P.PERPLEXITY,
        _P.APIZH,
    ),
    CommandType.BROWSER: (
        _P.APIZH_ANALYSIS,
        _P.ANTHROPIC,
        _P.OPENAI,
        _P.MODELBOX,
        _P.OPENROUTER,
        _P.GEMINI,
        _P.PERPLEXITY,
        _P.APIZH,
    ),
    CommandType.NIX: (
        _P.APIZH_NIX,
        _P.APIZH_ANALYSIS,
        _P.OPENAI,
        _P.ANTHROPIC,
        _P.GEMINI,
        _P.OPENROUTER,
        _P.MODELBOX,
        _P.APIZH,
    ),
}


def validate_preference_table(
    table: Dict[CommandType, Tuple[Provider, ...]],
) -> None:
    """Check that ``table`` is total, non-empty, duplicate-free and registered.

    Raises:
        ConfigurationError: Listing every problem found
    """
    errors: List[str] = []
    for command_type in CommandType:
        if command_type not in table:
            errors.append(f"{command_type.value}: no preference list")
            continue
        providers = table[command_type]
        if not providers:
            errors.append(f"{command_type.value}: preference list is empty")
        seen = set()
        for provider in providers:
            if provider not in PROVIDER_REGISTRY:
                errors.append(f"{command_type.value}: unregistered provider {provider!r}")
            if provider in seen:
                errors.append(f"{command_type.value}: duplicate provider {provider.value}")
            seen.add(provider)

    if errors:
        raise ConfigurationError("Invalid provider preference table:\n" + "\n".join(errors))


validate_preference_table(PROVIDER_PREFERENCE)


CommandTypeLike = Union[CommandType, str]


def parse_command_type(value: CommandTypeLike) -> CommandType:
    """Coerce a string or enum member into a ``CommandType``.

    Raises:
        UnknownCommandTypeError: If ``value`` has no preference list
    """
    if isinstance(value, CommandType):
        return value
    try:
        return CommandType(str(value).strip().lower())
    except ValueError:
        raise UnknownCommandTypeError(value) from None


def get_preference_list(command_type: CommandTypeLike) -> Tuple[Provider, ...]:
    return PROVIDER_PREFERENCE[parse_command_type(command_type)]


def describe_candidates(
    command_type: CommandTypeLike,
    credentials: Optional[CredentialSnapshot] = None,
) -> List[ProviderInfo]:
    """Return availability for each provider in the preference list, in order."""
    creds = credentials if credentials is not None else CredentialSnapshot.from_env()
    by_provider = {info.provider: info for info in list_all_providers(creds)}
    return [by_provider[p] for p in get_preference_list(command_type)]


def _start_index(order: Tuple[Provider, ...], current: Optional[ProviderLike]) -> int:
    if current is None:
        return 0
    try:
        provider = parse_provider(current)
    except UnknownProviderError:
        return 0
    if provider not in order:
        # Unlisted: scan from the top like a fresh selection.
        return 0
    return order.index(provider) + 1


def select_next_provider(
    command_type: CommandTypeLike,
    current_provider: Optional[ProviderLike] = None,
    credentials: Optional[CredentialSnapshot] = None,
) -> Optional[Provider]:
    """Return the next available provider for ``command_type``.

    Args:
        command_type: Task category whose preference list is walked
        current_provider: Provider already tried; scanning starts after its
            first occurrence. When it is not in the list, scanning starts at
            the top.
        credentials: Credential snapshot (fresh from the environment if None)

    Returns:
        The most preferred available provider after the start position, or
        None when the list is exhausted.

    Raises:
        UnknownCommandTypeError: If ``command_type`` has no preference list
    """
    order = get_preference_list(command_type)
    creds = credentials if credentials is not None else CredentialSnapshot.from_env()

    for provider in order[_start_index(order, current_provider):]:
        info = get_provider_info(provider, creds)
        if info is not None and info.available:
            return provider
        logger.info("Provider %s is not available", provider.value)

    return None
