"""
Provider registry, preference table and clients for vibe-relay.

Example usage:
    from vibe_relay.core.providers import (
        CommandType,
        ModelOptions,
        create_provider,
        get_default_model,
        select_next_provider,
    )

    provider = select_next_provider(CommandType.ASK)
    if provider is not None:
        client = create_provider(provider)
        options = ModelOptions(model=get_default_model(provider))
        answer = await client.execute_prompt("Hello", options)
"""

from vibe_relay.core.providers.base import (
    ModelOptions,
    ProviderClient,
    TokenUsage,
)
from vibe_relay.core.providers.clients import (
    AnthropicClient,
    GeminiClient,
    OpenAICompatibleClient,
    create_provider,
)
from vibe_relay.core.providers.preferences import (
    PROVIDER_PREFERENCE,
    CommandType,
    describe_candidates,
    get_preference_list,
    parse_command_type,
    select_next_provider,
)
from vibe_relay.core.providers.registry import (
    PROVIDER_REGISTRY,
    CredentialSnapshot,
    Provider,
    ProviderDescriptor,
    ProviderInfo,
    credential_env_var,
    get_default_model,
    get_provider_info,
    is_provider_available,
    list_all_providers,
    list_available_providers,
    parse_provider,
)

__all__ = [
    # Registry
    "Provider",
    "ProviderDescriptor",
    "ProviderInfo",
    "CredentialSnapshot",
    "PROVIDER_REGISTRY",
    "parse_provider",
    "credential_env_var",
    "get_default_model",
    "get_provider_info",
    "is_provider_available",
    "list_all_providers",
    "list_available_providers",
    # Preferences
    "CommandType",
    "PROVIDER_PREFERENCE",
    "parse_command_type",
    "get_preference_list",
    "describe_candidates",
    "select_next_provider",
    # Clients
    "ModelOptions",
    "TokenUsage",
    "ProviderClient",
    "OpenAICompatibleClient",
    "AnthropicClient",
    "GeminiClient",
    "create_provider",
]
