"""Dispatch strategies: auto-route, fan-out and pipeline.

Executors are plain coroutines over their inputs. They read the agent
catalog, call the completion service and report the routing decision through
`StrategyContext.on_routed`; they never touch the run registry. The execution
manager picks the executor once via `EXECUTORS[strategy]`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from agentOrchestrator.agents import AgentCatalog, AgentSpec
from agentOrchestrator.models import CompletionRequest, CompletionService
from agentOrchestrator.utils.error_handler import OrchestrateError, ValidationError
from agentOrchestrator.utils.logging_utils import log_routing_decision

LOGGER = logging.getLogger(__name__)

SPAWN_ID = "_spawn"
ROUTING_MAX_TOKENS = 50

AGENT_INSTRUCTIONS_HEADER = "## Agent Instructions ({name})"
ADDITIONAL_CONTEXT_HEADER = "## Additional Context"
PREVIOUS_OUTPUT_HEADER = "## Previous Agent Output"

PromptProvider = Callable[[], Union[str, Awaitable[str]]]


class Strategy(str, Enum):
    AUTO = "auto"
    FAN_OUT = "fan-out"
    PIPELINE = "pipeline"

    @classmethod
    def parse(cls, value: Union[str, "Strategy", None]) -> "Strategy":
        if value is None or value == "":
            return cls.AUTO
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(f"Unknown strategy: {value} (expected one of: {allowed})") from None


@dataclass
class AgentResult:
    agent_id: str
    text: str
    finish_reason: str
    steps: int = 0
    tool_calls: int = 0
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StrategyContext:
    """Everything an executor needs besides the task itself."""

    catalog: AgentCatalog
    completion: CompletionService
    system_prompt: Union[str, PromptProvider]
    routing_max_tokens: int = ROUTING_MAX_TOKENS
    on_routed: Optional[Callable[[List[str]], None]] = None
    run_id: Optional[str] = None

    async def base_prompt(self) -> str:
        value = self.system_prompt() if callable(self.system_prompt) else self.system_prompt
        if inspect.isawaitable(value):
            value = await value
        return str(value or "")

    def enabled_agents(self) -> List[AgentSpec]:
        return [spec for spec in self.catalog.list() if spec.enabled]

    def report_routed(self, agent_ids: List[str]) -> None:
        if self.on_routed is not None:
            self.on_routed(list(agent_ids))


def _request_id() -> str:
    return uuid.uuid4().hex[:8]


def build_messages(
    base_prompt: str,
    task: str,
    agent: Optional[AgentSpec] = None,
    context: Optional[str] = None,
    previous_output: Optional[str] = None,
) -> List[BaseMessage]:
    """System message = base prompt (+ agent instructions); user message = task (+ sections)."""
    system = base_prompt
    if agent is not None and agent.system_prompt:
        header = AGENT_INSTRUCTIONS_HEADER.format(name=agent.name)
        system = f"{system}\n\n{header}\n{agent.system_prompt}"

    user_parts = [task]
    if context:
        user_parts.append(f"{ADDITIONAL_CONTEXT_HEADER}\n{context}")
    if previous_output is not None:
        user_parts.append(f"{PREVIOUS_OUTPUT_HEADER}\n{previous_output}")

    return [SystemMessage(content=system), HumanMessage(content="\n\n".join(user_parts))]


async def invoke_agent(
    ctx: StrategyContext,
    agent_id: str,
    task: str,
    context: Optional[str] = None,
    previous_output: Optional[str] = None,
) -> AgentResult:
    """Run one agent on the task with its pinned provider/model/tools."""
    agent = ctx.catalog.get(agent_id)
    if agent is None:
        raise OrchestrateError(f'Agent "{agent_id}" not found')
    if not agent.enabled:
        raise OrchestrateError(f'Agent "{agent_id}" is disabled')

    messages = build_messages(await ctx.base_prompt(), task, agent, context, previous_output)
    request = CompletionRequest(
        messages=messages,
        session_id=f"orchestrator-{agent_id}-{_request_id()}",
        agent_id=agent_id,
        provider=agent.provider,
        model=agent.model,
        tool_allowlist=list(agent.tool_allowlist) if agent.tool_allowlist is not None else None,
    )

    start = time.monotonic()
    result = await ctx.completion.complete(request)
    return AgentResult(
        agent_id=agent_id,
        text=result.text,
        finish_reason=result.finish_reason,
        steps=result.steps,
        tool_calls=result.tool_calls,
        duration_ms=int((time.monotonic() - start) * 1000),
    )


async def spawn(ctx: StrategyContext, task: str, context: Optional[str] = None) -> AgentResult:
    """Unscoped fallback: base prompt only, full tool access, no pinning."""
    messages = build_messages(await ctx.base_prompt(), task, None, context)
    request = CompletionRequest(
        messages=messages,
        session_id=f"orchestrator-spawn-{_request_id()}",
        agent_id="orchestrator-spawn",
    )

    start = time.monotonic()
    result = await ctx.completion.complete(request)
    return AgentResult(
        agent_id=SPAWN_ID,
        text=result.text,
        finish_reason=result.finish_reason,
        steps=result.steps,
        tool_calls=result.tool_calls,
        duration_ms=int((time.monotonic() - start) * 1000),
    )


def build_routing_prompt(agents: Sequence[AgentSpec], task: str) -> str:
    roster = "\n".join(agent.roster_line() for agent in agents)
    return "\n".join([
        'You are a task router. Given the agents below and a task, reply with ONLY the agent ID '
        'that best matches, or "none" if no agent fits.',
        "",
        "Agents:",
        roster,
        "",
        f"Task: {task}",
        "",
        "Agent ID:",
    ])


def parse_routing_answer(text: str, agents: Sequence[AgentSpec]) -> Optional[str]:
    """Match the router's reply against enabled agent ids (case-insensitive)."""
    lines = (text or "").strip().splitlines()
    if not lines:
        return None
    picked = lines[0].strip().strip("`'\"*").lstrip("@").rstrip(".").strip().lower()
    if not picked or picked == "none":
        return None
    for agent in agents:
        if agent.id.lower() == picked:
            return agent.id
    return None


async def route_task(ctx: StrategyContext, task: str) -> Optional[str]:
    """Ask the router model for one enabled agent id; None means spawn."""
    agents = ctx.enabled_agents()
    if not agents:
        log_routing_decision(LOGGER, ctx.run_id, SPAWN_ID, "no enabled agents")
        return None

    request = CompletionRequest(
        messages=[HumanMessage(content=build_routing_prompt(agents, task))],
        session_id=f"orchestrator-router-{_request_id()}",
        agent_id="orchestrator-router",
        no_tools=True,
        max_tokens=ctx.routing_max_tokens,
    )
    try:
        result = await ctx.completion.complete(request)
    except Exception as e:
        LOGGER.warning(f"Orchestrator routing failed, falling back to spawn: {e}")
        return None

    picked = parse_routing_answer(result.text, agents)
    if picked is None:
        log_routing_decision(LOGGER, ctx.run_id, SPAWN_ID, f"router answered {result.text!r}")
    else:
        log_routing_decision(LOGGER, ctx.run_id, picked, "router pick")
    return picked


def resolve_targets(strategy: Strategy, agent_ids: Sequence[str], catalog: AgentCatalog) -> List[str]:
    """Working agent set for a strategy.

    Fan-out and pipeline use the explicit list if one is given, else every
    enabled agent, and need at least two. Auto keeps the explicit list as-is.
    """
    agent_ids = [a for a in agent_ids if a]
    if strategy == Strategy.AUTO:
        return agent_ids

    targets = agent_ids or [spec.id for spec in catalog.list() if spec.enabled]
    if len(targets) < 2:
        raise ValidationError(
            f"{strategy.value} strategy requires at least 2 agents "
            f"(provide agent IDs or register more agents)"
        )
    return targets


# ========== Executors ==========


async def run_auto(
    ctx: StrategyContext,
    task: str,
    agent_ids: Sequence[str],
    context: Optional[str] = None,
) -> Dict[str, Any]:
    target: Optional[str] = None

    if agent_ids:
        last_reason = "No usable agent"
        for agent_id in agent_ids:
            spec = ctx.catalog.get(agent_id)
            if spec is None:
                last_reason = f'Agent "{agent_id}" not found'
                continue
            if not spec.enabled:
                last_reason = f'Agent "{agent_id}" is disabled'
                continue
            target = agent_id
            break
        if target is None:
            raise OrchestrateError(last_reason)
        log_routing_decision(LOGGER, ctx.run_id, target, "first usable explicit agent")
    else:
        target = await route_task(ctx, task)

    ctx.report_routed([target or SPAWN_ID])

    if target is not None:
        result = await invoke_agent(ctx, target, task, context)
    else:
        result = await spawn(ctx, task, context)

    return {
        "strategy": Strategy.AUTO.value,
        "routed": result.agent_id,
        "text": result.text,
        "finish_reason": result.finish_reason,
        "steps": result.steps,
        "tool_calls": result.tool_calls,
        "duration_ms": result.duration_ms,
    }


async def run_fan_out(
    ctx: StrategyContext,
    task: str,
    agent_ids: Sequence[str],
    context: Optional[str] = None,
) -> Dict[str, Any]:
    ctx.report_routed(list(agent_ids))

    async def _isolated(agent_id: str) -> AgentResult:
        try:
            return await invoke_agent(ctx, agent_id, task, context)
        except Exception as e:
            LOGGER.warning(f"Fan-out agent {agent_id} failed: {e}")
            return AgentResult(agent_id=agent_id, text=f"Error: {e}", finish_reason="error")

    # gather keeps argument order regardless of completion order
    results = await asyncio.gather(*(_isolated(agent_id) for agent_id in agent_ids))

    return {
        "strategy": Strategy.FAN_OUT.value,
        "results": [r.to_dict() for r in results],
    }


async def run_pipeline(
    ctx: StrategyContext,
    task: str,
    agent_ids: Sequence[str],
    context: Optional[str] = None,
) -> Dict[str, Any]:
    ctx.report_routed(list(agent_ids))

    chain: List[AgentResult] = []
    previous: Optional[str] = None
    for stage, agent_id in enumerate(agent_ids, start=1):
        try:
            result = await invoke_agent(ctx, agent_id, task, context, previous)
        except Exception as e:
            raise OrchestrateError(f"Pipeline stage {stage} ({agent_id}) failed: {e}") from e
        chain.append(result)
        previous = result.text

    final = chain[-1]
    return {
        "strategy": Strategy.PIPELINE.value,
        "final_agent": final.agent_id,
        "text": final.text,
        "finish_reason": final.finish_reason,
        "chain": [r.to_dict() for r in chain],
    }


Executor = Callable[[StrategyContext, str, Sequence[str], Optional[str]], Awaitable[Dict[str, Any]]]

EXECUTORS: Dict[Strategy, Executor] = {
    Strategy.AUTO: run_auto,
    Strategy.FAN_OUT: run_fan_out,
    Strategy.PIPELINE: run_pipeline,
}


def result_text(output: Dict[str, Any]) -> Optional[str]:
    """Text used for a run's result preview."""
    if "text" in output:
        return output["text"]
    results = output.get("results") or []
    if results:
        return "\n\n".join(f"[{r['agent_id']}] {r['text']}" for r in results)
    return None


__all__ = [
    "Strategy",
    "AgentResult",
    "StrategyContext",
    "SPAWN_ID",
    "build_messages",
    "build_routing_prompt",
    "parse_routing_answer",
    "invoke_agent",
    "spawn",
    "route_task",
    "resolve_targets",
    "run_auto",
    "run_fan_out",
    "run_pipeline",
    "EXECUTORS",
    "result_text",
]
