"""Completion service contract and the default chat-model implementation.

The orchestrator never talks to a model API directly. It builds a message
list and hands a CompletionRequest to whatever CompletionService the runtime
wired in; tests inject AsyncMock fakes with the same `complete` coroutine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Sequence

from langchain_core.messages import BaseMessage

from agentOrchestrator.agents.interfaces import ModelResolver

LOGGER = logging.getLogger(__name__)


@dataclass
class CompletionRequest:
    """One call to the completion service.

    Attributes:
        messages: System + user messages for the call
        session_id: Unique id for this call (used for tracing)
        agent_id: Agent on whose behalf the call is made
        provider: Pinned provider / model slot (None = default)
        model: Pinned model id (None = slot default)
        tool_allowlist: Restrict tools to these names (None = all tools)
        no_tools: Disable tool access entirely (routing calls)
        max_tokens: Output budget (None = model default)
    """

    messages: List[BaseMessage]
    session_id: str
    agent_id: str
    provider: Optional[str] = None
    model: Optional[str] = None
    tool_allowlist: Optional[List[str]] = None
    no_tools: bool = False
    max_tokens: Optional[int] = None


@dataclass
class CompletionResult:
    text: str
    finish_reason: str = "stop"
    steps: int = 1
    tool_calls: int = 0
    metadata: dict = field(default_factory=dict)


class CompletionService(Protocol):
    async def complete(self, request: CompletionRequest) -> CompletionResult:
        ...


def _stringify_content(content: Any) -> str:
    if isinstance(content, list):
        pieces: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                pieces.append(str(item["text"]))
            else:
                pieces.append(str(item))
        return "\n".join(pieces)
    return str(content or "")


class ChatModelCompletionService:
    """CompletionService backed by LangChain chat models.

    Makes exactly one model call per request. Tools are bound so the model can
    see them, but running a tool loop is the caller's business.

    Args:
        model_resolver: Returns a chat model for (model_id, provider)
        tool_registry: Optional ToolRegistry used for full / allowlisted tool access
        routing_provider: Slot used for no-tools calls without a pinned provider
    """

    def __init__(
        self,
        model_resolver: ModelResolver,
        tool_registry=None,
        routing_provider: Optional[str] = "base",
    ) -> None:
        self._resolver = model_resolver
        self._tool_registry = tool_registry
        self._routing_provider = routing_provider

    def _tools_for(self, request: CompletionRequest) -> Sequence[Any]:
        if request.no_tools or self._tool_registry is None:
            return []
        if request.tool_allowlist is not None:
            return self._tool_registry.allowed_tools(request.tool_allowlist)
        return self._tool_registry.list_tools()

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        provider = request.provider
        if provider is None and request.no_tools:
            provider = self._routing_provider

        model = self._resolver(request.model, provider)

        runnable = model
        tools = self._tools_for(request)
        if tools:
            runnable = runnable.bind_tools(list(tools))
        if request.max_tokens:
            runnable = runnable.bind(max_tokens=request.max_tokens)

        LOGGER.debug(
            f"Completion call {request.session_id}: agent={request.agent_id} "
            f"provider={provider} model={request.model} tools={len(tools)} max_tokens={request.max_tokens}"
        )
        response = await runnable.ainvoke(request.messages)

        metadata = dict(getattr(response, "response_metadata", None) or {})
        tool_calls = getattr(response, "tool_calls", None) or []
        return CompletionResult(
            text=_stringify_content(getattr(response, "content", response)),
            finish_reason=str(metadata.get("finish_reason") or "stop"),
            steps=1,
            tool_calls=len(tool_calls),
            metadata=metadata,
        )


__all__ = [
    "CompletionRequest",
    "CompletionResult",
    "CompletionService",
    "ChatModelCompletionService",
]
