"""Task-based model recommendations for the apizh relay.

Static lookup tables mapping a task name to a suggested model, and agent
roles to a (provider, model) pair. Used by ``vibe-relay models``.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from vibe_relay.core.providers.registry import Provider


APIZH_TASK_MODELS: Dict[str, str] = {
    "web": "gemini-2.5-pro-exp-03-25",
    "repo": "claude-sonnet-4-20250514",
    "plan_file": "gpt-4o-mini",
    "plan_thinking": "claude-opus-4-20250514",
    "doc": "gpt-4o",
    "ask": "gpt-4o-mini",
    "browser": "claude-sonnet-4-20250514",
    "coding": "claude-opus-4-20250514-thinking",
    "chinese": "qwen3-235b-a22b",
    "analysis": "claude-sonnet-4-20250514",
    "math": "o1-mini",
    "reasoning": "o1",
    "creative": "claude-opus-4-20250514",
    "long-context": "gpt-4.1",
}


@dataclass(frozen=True)
class AgentRole:
    name: str
    provider: Provider
    model: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "provider": self.provider.value,
            "model": self.model,
            "description": self.description,
        }


AGENT_ROLES: Dict[str, AgentRole] = {
    role.name: role
    for role in (
        AgentRole("coding", Provider.APIZH_CODING, "o3", "Code generation, debugging and architecture"),
        AgentRole(
            "web-search",
            Provider.APIZH_WEB,
            "gemini-2.5-pro-exp-03-25",
            "Real-time information retrieval and market research",
        ),
        AgentRole(
            "tooling",
            Provider.APIZH_ANALYSIS,
            "claude-sonnet-4-20250514",
            "MCP integration, system operations and toolchain management",
        ),
        AgentRole(
            "large-context",
            Provider.APIZH_REASONING,
            "gemini-2.5-pro-exp-03-25",
            "System analysis, long documents and strategic planning",
        ),
        AgentRole("nix", Provider.APIZH_NIX, "gpt-4.1-2025-04-14", "Flake configuration and environment management"),
    )
}


def recommend_model(task: str) -> Optional[str]:
    """Return the suggested model for ``task``, or None for unknown tasks."""
    return APIZH_TASK_MODELS.get(task.strip().lower())


def list_tasks() -> List[str]:
    return sorted(APIZH_TASK_MODELS)
