"""Execution manager - wraps a strategy call with run bookkeeping.

For every `orchestrate` call:

1. validate input, check the completion service and nesting depth
2. admission: reject with CONCURRENCY_LIMIT when the registry is saturated
3. create a pending RunRecord and publish `orchestrate:spawned`
4. blocking: run the executor and return its outcome
   background: start an asyncio.Task, keep its handle on the record and
   return `{status: "accepted"}` right away

The manager is the only writer of run lifecycle transitions besides kill.
"""

from __future__ import annotations

import asyncio
import logging
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from agentOrchestrator.agents import AgentCatalog
from agentOrchestrator.models import CompletionService
from agentOrchestrator.utils.error_handler import (
    ORCHESTRATE_ERROR,
    ConcurrencyLimitError,
    NoLLMError,
    OrchestratorError,
    ValidationError,
    error_result,
    ok_result,
    result_from_exception,
)
from agentOrchestrator.utils.logging_utils import log_error

from . import events as ev
from .runs import RunRecord, RunRegistry, TASK_PREVIEW_CHARS
from .strategies import (
    EXECUTORS,
    ROUTING_MAX_TOKENS,
    PromptProvider,
    Strategy,
    StrategyContext,
    resolve_targets,
    result_text,
)

LOGGER = logging.getLogger(__name__)

# Depth seen by orchestrate calls made from inside a run (agent tool calls)
_current_depth: ContextVar[Optional[int]] = ContextVar("orchestrator_depth", default=None)


def current_depth() -> int:
    return _current_depth.get() or 0


@dataclass
class OrchestrateRequest:
    task: str
    strategy: Any = Strategy.AUTO.value
    agents: List[str] = field(default_factory=list)
    context: Optional[str] = None
    background: bool = False
    label: Optional[str] = None
    depth: Optional[int] = None


class ExecutionManager:
    """Runs strategies under admission control and records their lifecycle."""

    def __init__(
        self,
        runs: RunRegistry,
        catalog: AgentCatalog,
        completion: Optional[CompletionService],
        system_prompt: str | PromptProvider,
        events: Optional[ev.EventBus] = None,
        routing_max_tokens: int = ROUTING_MAX_TOKENS,
        task_preview_chars: int = TASK_PREVIEW_CHARS,
    ) -> None:
        self.runs = runs
        self.catalog = catalog
        self.completion = completion
        self.system_prompt = system_prompt
        self.events = events
        self.routing_max_tokens = routing_max_tokens
        self.task_preview_chars = task_preview_chars
        self._background: Set[asyncio.Task] = set()

    async def orchestrate(self, request: OrchestrateRequest) -> Dict[str, Any]:
        try:
            task, strategy, depth, targets = self._admit(request)
        except OrchestratorError as e:
            return result_from_exception(e)

        record = RunRecord.new(
            task,
            strategy.value,
            label=request.label or None,
            agents=targets,
            background=request.background,
            depth=depth,
            created_at=self.runs.now(),
            preview_chars=self.task_preview_chars,
        )
        self.runs.create(record)
        ev.safe_publish(self.events, ev.SPAWNED, {
            "run_id": record.run_id,
            "strategy": strategy.value,
            "label": record.label,
            "background": record.background,
        })
        self.runs.sweep()

        if not request.background:
            return await self._execute(record, strategy, task, targets, request.context)

        handle = asyncio.create_task(
            self._execute(record, strategy, task, targets, request.context),
            name=f"orchestrate-{record.run_id}",
        )
        record.handle = handle
        self._background.add(handle)
        handle.add_done_callback(self._background.discard)

        return ok_result({
            "status": "accepted",
            "run_id": record.run_id,
            "label": record.label,
            "strategy": strategy.value,
            "message": "Running in background. Use orchestrate.list to check progress.",
        })

    def _admit(self, request: OrchestrateRequest) -> Tuple[str, Strategy, int, List[str]]:
        """Validate a request before any run exists; raises OrchestratorError subclasses."""
        task = request.task if isinstance(request.task, str) else ""
        if not task.strip():
            raise ValidationError("task is required")

        if self.completion is None:
            raise NoLLMError("LLM adapter not available")

        strategy = Strategy.parse(request.strategy)

        depth = request.depth if request.depth is not None else current_depth()
        if depth > self.runs.max_depth:
            raise ValidationError(
                f"Orchestration nesting depth {depth} exceeds the limit ({self.runs.max_depth})"
            )

        if not self.runs.has_capacity():
            raise ConcurrencyLimitError(
                f"Max concurrent runs reached ({self.runs.max_concurrent}). "
                f"Use orchestrate.list to check active runs or orchestrate.kill to stop one."
            )

        targets = resolve_targets(strategy, request.agents or [], self.catalog)
        return task, strategy, depth, targets

    async def _execute(
        self,
        record: RunRecord,
        strategy: Strategy,
        task: str,
        targets: List[str],
        context: Optional[str],
    ) -> Dict[str, Any]:
        if not self.runs.mark_running(record):
            return self._discarded(record, strategy)

        ctx = StrategyContext(
            catalog=self.catalog,
            completion=self.completion,
            system_prompt=self.system_prompt,
            routing_max_tokens=self.routing_max_tokens,
            on_routed=lambda agent_ids: self._on_routed(record, strategy, agent_ids),
            run_id=record.run_id,
        )

        token = _current_depth.set(record.depth + 1)
        try:
            output = await EXECUTORS[strategy](ctx, task, targets, context)
        except asyncio.CancelledError:
            if self.runs.mark_killed(record):
                ev.safe_publish(self.events, ev.KILLED, {"run_id": record.run_id, "label": record.label})
            self._publish_completed(record, strategy)
            raise
        except Exception as e:
            envelope = result_from_exception(e)
            log_error(LOGGER, e, f"run {record.run_id} ({strategy.value})")
            if not self.runs.mark_error(record, envelope["error"]["message"]):
                return self._discarded(record, strategy)
            self._publish_completed(record, strategy)
            return envelope
        finally:
            _current_depth.reset(token)

        output["run_id"] = record.run_id
        if not self.runs.mark_completed(record, output, result_text(output)):
            return self._discarded(record, strategy)
        output["duration_ms"] = record.duration_ms
        self._publish_completed(record, strategy)
        return ok_result(output)

    def _on_routed(self, record: RunRecord, strategy: Strategy, agent_ids: List[str]) -> None:
        self.runs.set_agents(record, agent_ids)
        ev.safe_publish(self.events, ev.ROUTED, {
            "run_id": record.run_id,
            "strategy": strategy.value,
            "routed": agent_ids[0] if strategy == Strategy.AUTO and agent_ids else list(agent_ids),
            "selected_agents": list(agent_ids),
        })

    def _publish_completed(self, record: RunRecord, strategy: Strategy) -> None:
        ev.safe_publish(self.events, ev.COMPLETED, {
            "run_id": record.run_id,
            "strategy": strategy.value,
            "status": record.status.value,
            "duration_ms": record.duration_ms,
            "agent_count": len(record.agents),
        })

    def _discarded(self, record: RunRecord, strategy: Strategy) -> Dict[str, Any]:
        LOGGER.info(f"Run {record.run_id} is {record.status.value}; result discarded")
        self._publish_completed(record, strategy)
        return error_result(
            ORCHESTRATE_ERROR,
            f'Run "{record.run_id}" ({record.label}) was {record.status.value}; result discarded',
        )

    # ========== Background handles ==========

    async def wait(self, run_id: str) -> Optional[Dict[str, Any]]:
        """Await a background run's task; None if the run has no handle."""
        record = self.runs.get(run_id)
        if record is None or record.handle is None:
            return None
        return await record.handle

    async def shutdown(self) -> None:
        """Wait for every outstanding background run to settle."""
        pending = list(self._background)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


__all__ = ["ExecutionManager", "OrchestrateRequest", "current_depth"]
