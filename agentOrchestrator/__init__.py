"""Agent orchestrator: dispatch tasks to specialist agents (auto, fan-out, pipeline)."""

from agentOrchestrator.orchestration import Orchestrator
from agentOrchestrator.runtime import build_orchestrator

__all__ = ["Orchestrator", "build_orchestrator"]
