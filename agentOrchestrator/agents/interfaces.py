"""Interfaces for the orchestrator's external collaborators."""

from __future__ import annotations

from typing import List, Optional, Protocol

from .schema import AgentSpec


class AgentCatalog(Protocol):
    """Read-only view of the configured agents."""

    def get(self, agent_id: str) -> Optional[AgentSpec]:
        ...

    def list(self) -> List[AgentSpec]:
        ...


class ModelResolver(Protocol):
    """Callable that returns a LangChain-compatible chat model.

    `provider` selects a configured slot, `model` overrides its model id.
    """

    def __call__(self, model_id: Optional[str] = None, provider: Optional[str] = None):
        ...
