"""Provider fallback at the command layer.

``stream_with_fallback`` relays one provider attempt at a time. When an
attempt fails before producing any output, it asks the fallback selector for
the next provider after the failed one and starts a fresh attempt. Once an
attempt has emitted text, a later failure is final: partial output is never
retracted or repeated by a second provider.

When no provider is left, ``NoProviderAvailableError`` is raised with every
candidate in the preference list and the error of every failed attempt.
"""

import logging
from typing import AsyncIterator, Callable, List, Optional, Tuple

from vibe_relay.core.errors import NoProviderAvailableError, ProviderError
from vibe_relay.core.execution import CommandGenerator
from vibe_relay.core.providers.preferences import (
    CommandTypeLike,
    describe_candidates,
    parse_command_type,
    select_next_provider,
)
from vibe_relay.core.providers.registry import (
    CredentialSnapshot,
    Provider,
    ProviderLike,
    parse_provider,
)

logger = logging.getLogger(__name__)

AttemptFactory = Callable[[Provider], CommandGenerator]


async def stream_with_fallback(
    command_type: CommandTypeLike,
    run_attempt: AttemptFactory,
    *,
    start_provider: Optional[ProviderLike] = None,
    credentials: Optional[CredentialSnapshot] = None,
    allow_fallback: bool = True,
) -> AsyncIterator[str]:
    """Relay chunks from ``run_attempt(provider)``, falling back on early failure.

    Args:
        command_type: Preference list to walk
        run_attempt: Builds the producer for one provider attempt
        start_provider: First provider to try (explicit override); the
            selector picks the most preferred available one when None
        credentials: Credential snapshot shared by every selection
        allow_fallback: When False the first provider error is re-raised

    Raises:
        UnknownCommandTypeError: If ``command_type`` is not registered
        NoProviderAvailableError: When the preference list is exhausted
        ProviderError: When an attempt fails after emitting output, or
            fallback is disabled
    """
    ctype = parse_command_type(command_type)
    creds = credentials if credentials is not None else CredentialSnapshot.from_env()
    attempts: List[Tuple[str, str]] = []

    if start_provider is not None:
        provider: Optional[Provider] = parse_provider(start_provider)
    else:
        provider = select_next_provider(ctype, credentials=creds)

    while provider is not None:
        emitted = False
        try:
            async for text in run_attempt(provider):
                emitted = True
                yield text
            return
        except ProviderError as exc:
            if emitted or not allow_fallback:
                raise
            attempts.append((provider.value, str(exc)))
            logger.warning("Provider %s failed: %s; trying next provider", provider.value, exc)
            provider = select_next_provider(ctype, provider, creds)

    raise NoProviderAvailableError(ctype.value, describe_candidates(ctype, creds), attempts)
