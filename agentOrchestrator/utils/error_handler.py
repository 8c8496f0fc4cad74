"""Unified error handling for orchestrator operations and tools.

Every failure path in the orchestrator ends up as a typed result envelope:

    {"ok": False, "error": {"code": "<CODE>", "message": "<text>"}}

Exceptions below carry their code so the execution manager and the tool
boundary can translate them without string matching.
"""

from __future__ import annotations

import functools
import json
import logging
from typing import Any, Awaitable, Callable, Dict

LOGGER = logging.getLogger(__name__)


VALIDATION_ERROR = "VALIDATION_ERROR"
NOT_FOUND = "NOT_FOUND"
NOT_ACTIVE = "NOT_ACTIVE"
CONCURRENCY_LIMIT = "CONCURRENCY_LIMIT"
NO_LLM = "NO_LLM"
ORCHESTRATE_ERROR = "ORCHESTRATE_ERROR"


class OrchestratorError(Exception):
    """Base exception for orchestrator errors."""

    code = ORCHESTRATE_ERROR

    def __init__(self, message: str, code: str = None, user_message: str = None):
        super().__init__(message)
        if code:
            self.code = code
        self.user_message = user_message or message


class ValidationError(OrchestratorError):
    """Malformed or insufficient input (e.g. fewer than 2 agents for fan-out)."""

    code = VALIDATION_ERROR


class NotFoundError(OrchestratorError):
    """Kill target did not resolve to any run."""

    code = NOT_FOUND


class NotActiveError(OrchestratorError):
    """Kill target resolved to a run that already reached a terminal status."""

    code = NOT_ACTIVE


class ConcurrencyLimitError(OrchestratorError):
    """Admission rejected: max concurrent runs reached."""

    code = CONCURRENCY_LIMIT


class NoLLMError(OrchestratorError):
    """The completion service is not available."""

    code = NO_LLM


class OrchestrateError(OrchestratorError):
    """Agent missing/disabled, pipeline stage failure, or any other runtime fault."""

    code = ORCHESTRATE_ERROR


def ok_result(output: Any) -> Dict[str, Any]:
    return {"ok": True, "output": output}


def error_result(code: str, message: str) -> Dict[str, Any]:
    return {"ok": False, "error": {"code": code, "message": message}}


def result_from_exception(error: Exception) -> Dict[str, Any]:
    """Convert an exception into the error envelope.

    Orchestrator errors keep their own code, anything else is ORCHESTRATE_ERROR.
    """
    if isinstance(error, OrchestratorError):
        return error_result(error.code, error.user_message)
    return error_result(ORCHESTRATE_ERROR, str(error) or type(error).__name__)


def tool_error_boundary(tool_name: str):
    """Decorator for safe async tool execution.

    Nothing raised inside the tool escapes the tool boundary: the wrapped
    coroutine returns the JSON error envelope instead.

    Args:
        tool_name: Name of the tool for logging

    Example:
        @tool_error_boundary("orchestrate.kill")
        async def kill(target: str) -> str:
            ...
    """
    def decorator(func: Callable[..., Awaitable[str]]) -> Callable[..., Awaitable[str]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> str:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                LOGGER.exception(f"Tool {tool_name} failed", exc_info=e)
                return json.dumps(result_from_exception(e), ensure_ascii=False)
        return wrapper
    return decorator


__all__ = [
    "VALIDATION_ERROR",
    "NOT_FOUND",
    "NOT_ACTIVE",
    "CONCURRENCY_LIMIT",
    "NO_LLM",
    "ORCHESTRATE_ERROR",
    "OrchestratorError",
    "ValidationError",
    "NotFoundError",
    "NotActiveError",
    "ConcurrencyLimitError",
    "NoLLMError",
    "OrchestrateError",
    "ok_result",
    "error_result",
    "result_from_exception",
    "tool_error_boundary",
]
