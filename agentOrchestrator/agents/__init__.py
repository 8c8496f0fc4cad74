"""Agent catalog: specs, registry and YAML scanner."""

from .interfaces import AgentCatalog, ModelResolver
from .schema import AgentSpec
from .registry import AgentRegistry
from .scanner import scan_agents_from_config, parse_agent_spec_from_config

__all__ = [
    "AgentCatalog",
    "ModelResolver",
    "AgentSpec",
    "AgentRegistry",
    "scan_agents_from_config",
    "parse_agent_spec_from_config",
]
