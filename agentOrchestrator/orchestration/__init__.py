"""Run tracking, dispatch strategies and the orchestrator control surface."""

from .control import Orchestrator
from .events import EventBus, InMemoryEventBus
from .manager import ExecutionManager, OrchestrateRequest
from .runs import RunRecord, RunRegistry, RunStatus
from .strategies import Strategy, StrategyContext

__all__ = [
    "Orchestrator",
    "EventBus",
    "InMemoryEventBus",
    "ExecutionManager",
    "OrchestrateRequest",
    "RunRecord",
    "RunRegistry",
    "RunStatus",
    "Strategy",
    "StrategyContext",
]
