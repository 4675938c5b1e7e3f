"""
Agent Configuration Module

Validated import, export and version activation of agent workflow configs.
"""

from agentflow_core.agent_config.service import (
    ActivationResult,
    AgentConfigService,
    InMemoryVersionStore,
    StoredVersion,
    VersionStore,
)

__all__ = [
    "ActivationResult",
    "AgentConfigService",
    "InMemoryVersionStore",
    "StoredVersion",
    "VersionStore",
]
