"""Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and ensures proper test environment setup.
"""

import asyncio
import inspect
import sys
from pathlib import Path
from typing import Callable, Dict, Union
from unittest.mock import AsyncMock

import pytest

# Ensure project root is in PYTHONPATH for imports to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from agentOrchestrator.agents import AgentRegistry, AgentSpec  # noqa: E402
from agentOrchestrator.models import CompletionResult  # noqa: E402
from agentOrchestrator.orchestration import InMemoryEventBus, Orchestrator, RunRegistry  # noqa: E402

Reply = Union[str, Exception, Callable[..., object]]


def make_completion(replies: Dict[str, Reply], router: str = "none", delays: Dict[str, float] = None) -> AsyncMock:
    """Fake completion service keyed by agent id.

    - replies[agent_id]: text, an exception to raise, or a callable(request) -> text (sync or async)
    - router: text the routing call answers with
    - delays[agent_id]: seconds to sleep before answering
    """
    delays = delays or {}

    async def complete(request):
        await asyncio.sleep(delays.get(request.agent_id, 0))
        if request.agent_id == "orchestrator-router":
            return CompletionResult(text=router, finish_reason="stop")
        reply = replies.get(request.agent_id, f"{request.agent_id} output")
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(request)
            if inspect.isawaitable(reply):
                reply = await reply
        return CompletionResult(text=str(reply), finish_reason="stop", steps=1, tool_calls=0)

    service = AsyncMock()
    service.complete = AsyncMock(side_effect=complete)
    return service


@pytest.fixture
def agent_registry():
    return AgentRegistry([
        AgentSpec(id="researcher", name="Researcher", role="Web research", system_prompt="Always cite sources."),
        AgentSpec(id="coder", name="Coder", role="Code specialist", system_prompt="Write tested code."),
    ])


@pytest.fixture
def event_bus():
    return InMemoryEventBus()


@pytest.fixture
def build(agent_registry, event_bus):
    """Factory: build an Orchestrator around a fake completion service."""

    def _build(completion=None, replies=None, router="none", max_concurrent=8, max_depth=2, **kwargs):
        if completion is None:
            completion = make_completion(replies or {}, router=router, delays=kwargs.pop("delays", None))
        runs = RunRegistry(max_concurrent=max_concurrent, max_depth=max_depth)
        return Orchestrator(
            runs=runs,
            catalog=kwargs.pop("catalog", agent_registry),
            completion=completion,
            system_prompt=kwargs.pop("system_prompt", "You are helpful."),
            events=event_bus,
            **kwargs,
        )

    return _build


@pytest.fixture
def completion_factory():
    return make_completion
