"""Runtime assembly for the agent orchestrator."""

from __future__ import annotations

import logging
from typing import Optional, Union

from agentOrchestrator.agents import AgentRegistry, scan_agents_from_config
from agentOrchestrator.config import Settings, get_settings
from agentOrchestrator.models import ChatModelCompletionService, CompletionService
from agentOrchestrator.orchestration import InMemoryEventBus, Orchestrator, RunRegistry
from agentOrchestrator.orchestration.events import EventBus
from agentOrchestrator.orchestration.strategies import PromptProvider
from agentOrchestrator.telemetry import configure_tracing
from agentOrchestrator.tools import ToolMeta, ToolRegistry
from agentOrchestrator.tools.builtin import (
    ORCHESTRATE,
    ORCHESTRATE_KILL,
    ORCHESTRATE_LIST,
    create_orchestrator_tools,
)
from .model_resolver import build_model_resolver, has_credentials, resolve_model_configs

LOGGER = logging.getLogger(__name__)

# Agents may nest orchestrate calls (bounded by max_depth); run control stays with the caller
_TOOL_META = (
    ToolMeta(name=ORCHESTRATE, risk="medium", tags=["orchestration"], available_to_agents=True),
    ToolMeta(name=ORCHESTRATE_LIST, risk="low", tags=["orchestration", "read"], available_to_agents=False),
    ToolMeta(name=ORCHESTRATE_KILL, risk="medium", tags=["orchestration"], available_to_agents=False),
)


def _create_agent_registry(settings: Settings) -> AgentRegistry:
    agents_file = settings.orchestrator.agents_file
    if not agents_file:
        LOGGER.info("No agents file configured; starting with an empty agent catalog")
        return AgentRegistry()
    return scan_agents_from_config(agents_file)


def _create_completion_service(settings: Settings, tool_registry: ToolRegistry) -> Optional[CompletionService]:
    model_configs = resolve_model_configs(settings)
    if not has_credentials(model_configs, "chat"):
        LOGGER.warning("No chat model API key configured; orchestrate calls will fail with NO_LLM")
        return None
    resolver = build_model_resolver(model_configs)
    LOGGER.info(f"Model slots: base={model_configs['base']['id']} chat={model_configs['chat']['id']}")
    return ChatModelCompletionService(resolver, tool_registry=tool_registry, routing_provider="base")


def build_orchestrator(
    settings: Optional[Settings] = None,
    agent_registry: Optional[AgentRegistry] = None,
    completion_service: Optional[CompletionService] = None,
    event_bus: Optional[EventBus] = None,
    system_prompt: Optional[Union[str, PromptProvider]] = None,
    tool_registry: Optional[ToolRegistry] = None,
) -> Orchestrator:
    """Wire settings, agent catalog, completion service, events and tools.

    Anything passed explicitly wins over what settings would build, which is
    how tests inject fake completion services.

    Returns:
        Orchestrator with its tools registered in `orchestrator.tool_registry`
    """
    settings = settings or get_settings()
    configure_tracing(settings.observability)

    tool_registry = tool_registry if tool_registry is not None else ToolRegistry()
    agent_registry = agent_registry if agent_registry is not None else _create_agent_registry(settings)
    if completion_service is None:
        completion_service = _create_completion_service(settings, tool_registry)
    event_bus = event_bus if event_bus is not None else InMemoryEventBus()

    orch_settings = settings.orchestrator
    runs = RunRegistry(
        max_concurrent=orch_settings.max_concurrent,
        max_depth=orch_settings.max_depth,
        archive_after=orch_settings.archive_after_seconds,
    )
    orchestrator = Orchestrator(
        runs=runs,
        catalog=agent_registry,
        completion=completion_service,
        system_prompt=system_prompt if system_prompt is not None else orch_settings.system_prompt,
        events=event_bus,
        routing_max_tokens=orch_settings.routing_max_tokens,
        task_preview_chars=orch_settings.task_preview_chars,
        result_preview_chars=orch_settings.result_preview_chars,
    )

    tools = create_orchestrator_tools(orchestrator)
    for tool in tools:
        tool_registry.register_tool(tool)
    for meta in _TOOL_META:
        tool_registry.register_meta(meta)
    orchestrator.tool_registry = tool_registry
    orchestrator.tools = tools

    stats = agent_registry.get_stats()
    LOGGER.info(
        f"Orchestrator ready: {stats['enabled']}/{stats['registered']} agents enabled, "
        f"max_concurrent={runs.max_concurrent}, max_depth={runs.max_depth}, "
        f"llm={'yes' if completion_service is not None else 'no'}"
    )
    return orchestrator


__all__ = ["build_orchestrator"]
