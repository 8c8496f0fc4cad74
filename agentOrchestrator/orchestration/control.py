"""Control surface - what callers and tools see of the orchestrator.

`Orchestrator` owns one RunRegistry and one ExecutionManager. Nothing here is
module-global, so several orchestrators (e.g. in tests) never share runs.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from agentOrchestrator.agents import AgentCatalog
from agentOrchestrator.models import CompletionService
from agentOrchestrator.utils.error_handler import (
    NotActiveError,
    NotFoundError,
    OrchestratorError,
    ValidationError,
    ok_result,
    result_from_exception,
)

from . import events as ev
from .manager import ExecutionManager, OrchestrateRequest
from .runs import RunRecord, RunRegistry, TASK_PREVIEW_CHARS, truncate
from .strategies import ROUTING_MAX_TOKENS, PromptProvider

LOGGER = logging.getLogger(__name__)

RESULT_PREVIEW_CHARS = 120
KILL_ALL = "all"


class Orchestrator:
    """Multi-agent task dispatcher.

    Example:
        >>> orch = Orchestrator(runs=RunRegistry(), catalog=registry, completion=service,
        ...                     system_prompt="You are a helpful assistant.")
        >>> await orch.orchestrate("Summarize AI", strategy="fan-out", agents=["researcher", "coder"])
        >>> orch.list_runs(active=True)
        >>> orch.kill("last")
    """

    def __init__(
        self,
        runs: RunRegistry,
        catalog: AgentCatalog,
        completion: Optional[CompletionService],
        system_prompt: Union[str, PromptProvider] = "",
        events: Optional[ev.EventBus] = None,
        routing_max_tokens: int = ROUTING_MAX_TOKENS,
        task_preview_chars: int = TASK_PREVIEW_CHARS,
        result_preview_chars: int = RESULT_PREVIEW_CHARS,
    ) -> None:
        self.runs = runs
        self.catalog = catalog
        self.events = events
        self.result_preview_chars = result_preview_chars
        # Filled in by runtime assembly (build_orchestrator)
        self.tools: List[Any] = []
        self.tool_registry: Optional[Any] = None
        self.manager = ExecutionManager(
            runs=runs,
            catalog=catalog,
            completion=completion,
            system_prompt=system_prompt,
            events=events,
            routing_max_tokens=routing_max_tokens,
            task_preview_chars=task_preview_chars,
        )

    @property
    def completion(self) -> Optional[CompletionService]:
        return self.manager.completion

    # ========== orchestrate ==========

    async def orchestrate(
        self,
        task: str,
        strategy: Any = "auto",
        agents: Optional[List[str]] = None,
        context: Optional[str] = None,
        background: bool = False,
        label: Optional[str] = None,
        depth: Optional[int] = None,
    ) -> Dict[str, Any]:
        request = OrchestrateRequest(
            task=task,
            strategy=strategy,
            agents=list(agents or []),
            context=context,
            background=background,
            label=label,
            depth=depth,
        )
        return await self.manager.orchestrate(request)

    async def wait(self, run_id: str) -> Optional[Dict[str, Any]]:
        return await self.manager.wait(run_id)

    async def shutdown(self) -> None:
        await self.manager.shutdown()

    # ========== orchestrate.list ==========

    def list_runs(self, active: bool = False) -> Dict[str, Any]:
        """Summaries of tracked runs (after sweeping archived ones)."""
        self.runs.sweep()
        runs = self.runs.all()
        indexed = [(i, run) for i, run in enumerate(runs, start=1) if run.is_active or not active]

        if not indexed:
            return ok_result("No active orchestration runs." if active else "No orchestration runs.")
        return ok_result([self._summarize(index, run) for index, run in indexed])

    def _summarize(self, index: int, run: RunRecord) -> Dict[str, Any]:
        preview_source = run.result_text if run.result_text is not None else run.error
        return {
            "index": index,
            "run_id": run.run_id,
            "label": run.label,
            "task": run.task,
            "status": run.status.value,
            "strategy": run.strategy,
            "agents": list(run.agents),
            "background": run.background,
            "runtime": _format_runtime(run),
            "result_preview": (
                truncate(preview_source, self.result_preview_chars) if preview_source is not None else None
            ),
        }

    # ========== orchestrate.kill ==========

    def kill(self, target: str) -> Dict[str, Any]:
        """Mark one run (or every active run for "all") as killed."""
        try:
            return ok_result(self._kill(target))
        except OrchestratorError as e:
            return result_from_exception(e)

    def _kill(self, target: str) -> str:
        target = (target or "").strip()
        if not target:
            raise ValidationError("target is required")

        self.runs.sweep()

        if target == KILL_ALL:
            killed = [run for run in self.runs.active() if self._kill_one(run)]
            if not killed:
                return "No active runs to kill."
            return f"Killed {len(killed)} run(s)."

        run = self.runs.resolve(target)
        if run is None:
            raise NotFoundError(f'No run matching "{target}"')
        if not self._kill_one(run):
            raise NotActiveError(f'Run "{run.run_id}" ({run.label}) is already {run.status.value}')
        return f'Killed run "{run.run_id}" ({run.label}).'

    def _kill_one(self, run: RunRecord) -> bool:
        if not self.runs.mark_killed(run):
            return False
        # In-flight completion calls keep running; their results are dropped
        ev.safe_publish(self.events, ev.KILLED, {"run_id": run.run_id, "label": run.label})
        return True

    # ========== Context / services ==========

    def usage(self) -> str:
        """`orchestrator.usage` context block, empty when no agent is enabled."""
        if not [spec for spec in self.catalog.list() if spec.enabled]:
            return ""

        lines = [
            "## Orchestrator",
            "Use the `orchestrate` tool to delegate tasks to specialist agents.",
            "- **auto** (default): picks the best agent automatically. Use when unsure which agent fits.",
            "- **fan-out**: runs the task across multiple agents in parallel. Requires ≥2 agents.",
            "- **pipeline**: runs agents sequentially, each receiving the previous output. Requires ≥2 agents, ordered.",
            "",
            "Options:",
            "- `background: true` returns immediately with a run_id. Check progress with `orchestrate.list`.",
            "- `label` gives the run a human-readable name.",
            "",
            "Management: `orchestrate.list` to see runs, `orchestrate.kill` to abort.",
        ]
        active = self.runs.active_count()
        if active:
            lines.append("")
            lines.append(f"Active runs: {active} / {self.runs.max_concurrent}")
        return "\n".join(lines)

    def services(self) -> Dict[str, Any]:
        return {"orchestrator.runs": self.runs}

    def context_providers(self) -> Dict[str, Callable[[], str]]:
        return {"orchestrator.usage": self.usage}


def _format_runtime(run: RunRecord) -> str:
    if run.duration_ms is not None:
        return f"{run.duration_ms / 1000:.1f}s"
    return run.status.value


__all__ = ["Orchestrator", "RESULT_PREVIEW_CHARS"]
