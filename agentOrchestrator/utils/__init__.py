"""Utility helpers."""

from .error_handler import (
    ConcurrencyLimitError,
    NoLLMError,
    NotActiveError,
    NotFoundError,
    OrchestrateError,
    OrchestratorError,
    ValidationError,
    error_result,
    ok_result,
    result_from_exception,
    tool_error_boundary,
)
from .logging_utils import (
    log_error,
    log_routing_decision,
    log_run_transition,
    log_tool_call,
    log_tool_result,
    setup_logging,
)

__all__ = [
    "ConcurrencyLimitError",
    "NoLLMError",
    "NotActiveError",
    "NotFoundError",
    "OrchestrateError",
    "OrchestratorError",
    "ValidationError",
    "error_result",
    "ok_result",
    "result_from_exception",
    "tool_error_boundary",
    "log_error",
    "log_routing_decision",
    "log_run_transition",
    "log_tool_call",
    "log_tool_result",
    "setup_logging",
]
