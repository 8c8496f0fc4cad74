"""orchestrate / orchestrate.list / orchestrate.kill - LLM-facing tool bindings.

Tools are closures over one Orchestrator instance (see
`create_orchestrator_tools`), so two orchestrators never share tools or runs.
Every tool returns the JSON envelope `{"ok": ..., "output" | "error": ...}`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel, Field

from agentOrchestrator.orchestration import Orchestrator
from agentOrchestrator.utils.error_handler import tool_error_boundary
from agentOrchestrator.utils.logging_utils import log_tool_call, log_tool_result

LOGGER = logging.getLogger(__name__)

ORCHESTRATE = "orchestrate"
ORCHESTRATE_LIST = "orchestrate.list"
ORCHESTRATE_KILL = "orchestrate.kill"


class OrchestrateInput(BaseModel):
    """orchestrate 工具的输入参数"""

    task: str = Field(..., description="The task to delegate (must be self-contained)")
    strategy: str = Field(
        default="auto",
        description='Dispatch strategy: "auto" (default), "fan-out" or "pipeline"',
    )
    agents: Optional[List[str]] = Field(
        default=None,
        description="Agent IDs to use. auto: tried in order; fan-out / pipeline: at least 2, pipeline runs them in order",
    )
    context: Optional[str] = Field(default=None, description="Additional context appended to the task")
    background: bool = Field(default=False, description="Return immediately with a run_id instead of waiting")
    label: Optional[str] = Field(default=None, description="Human-readable name for the run")


class ListRunsInput(BaseModel):
    active: bool = Field(default=False, description="Only show pending / running runs")


class KillRunInput(BaseModel):
    target: str = Field(
        ...,
        description='Run to kill: run id, id prefix, label, "last", 1-based index, or "all"',
    )


def _dump(envelope: Dict[str, Any]) -> str:
    return json.dumps(envelope, ensure_ascii=False, default=str)


def create_orchestrator_tools(orchestrator: Orchestrator) -> List[BaseTool]:
    """Build the three orchestrator tools bound to `orchestrator`."""

    @tool(ORCHESTRATE, args_schema=OrchestrateInput)
    @tool_error_boundary(ORCHESTRATE)
    async def orchestrate(
        task: str,
        strategy: str = "auto",
        agents: Optional[List[str]] = None,
        context: Optional[str] = None,
        background: bool = False,
        label: Optional[str] = None,
    ) -> str:
        """Delegate a task to specialist agents.

        Strategies:
        - auto (default): pick the best agent (or the first usable one from `agents`)
        - fan-out: run the task on several agents in parallel, results in the given order
        - pipeline: run agents sequentially, each receives the previous agent's output

        With `background: true` the call returns a run_id right away; check it
        with orchestrate.list and stop it with orchestrate.kill.
        """
        args = {"task": task, "strategy": strategy, "agents": agents, "background": background, "label": label}
        log_tool_call(LOGGER, ORCHESTRATE, args)
        envelope = await orchestrator.orchestrate(
            task,
            strategy=strategy,
            agents=agents,
            context=context,
            background=background,
            label=label,
        )
        log_tool_result(LOGGER, ORCHESTRATE, envelope, success=envelope["ok"])
        return _dump(envelope)

    @tool(ORCHESTRATE_LIST, args_schema=ListRunsInput)
    @tool_error_boundary(ORCHESTRATE_LIST)
    async def orchestrate_list(active: bool = False) -> str:
        """List orchestration runs with status, agents, runtime and a result preview."""
        return _dump(orchestrator.list_runs(active=active))

    @tool(ORCHESTRATE_KILL, args_schema=KillRunInput)
    @tool_error_boundary(ORCHESTRATE_KILL)
    async def orchestrate_kill(target: str) -> str:
        """Kill a pending or running orchestration run ("all" kills every active run)."""
        log_tool_call(LOGGER, ORCHESTRATE_KILL, {"target": target})
        envelope = orchestrator.kill(target)
        log_tool_result(LOGGER, ORCHESTRATE_KILL, envelope, success=envelope["ok"])
        return _dump(envelope)

    return [orchestrate, orchestrate_list, orchestrate_kill]


__all__ = [
    "ORCHESTRATE",
    "ORCHESTRATE_LIST",
    "ORCHESTRATE_KILL",
    "OrchestrateInput",
    "ListRunsInput",
    "KillRunInput",
    "create_orchestrator_tools",
]
