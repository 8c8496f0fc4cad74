"""Logging utilities for the orchestrator."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Union[str, Path] = "logs",
) -> logging.Logger:
    """Setup logging configuration for the orchestrator.

    Args:
        level: Console + file logging level (default: INFO)
        log_dir: Directory for the timestamped log file

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logs_dir = Path(log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"orchestrator_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    logger = logging.getLogger("agentOrchestrator")
    logger.setLevel(logging.DEBUG)  # Capture all child logs, handlers filter
    logger.propagate = False

    logger.handlers = []

    # File handler (detailed logs)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(min(level, logging.DEBUG))
    file_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    file_handler.setFormatter(file_formatter)

    # Console handler (user-friendly)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(max(level, logging.WARNING))
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    logger.info("=" * 80)
    logger.info("Orchestrator session started")
    logger.info(f"Log file: {log_file}")
    logger.info("=" * 80)

    return logger


def log_run_transition(
    logger: logging.Logger,
    run_id: str,
    from_status: str,
    to_status: str,
    label: str = "",
) -> None:
    """Log a run lifecycle transition (pending → running → terminal)."""
    suffix = f" ({label})" if label else ""
    logger.info(f"Run {run_id}{suffix}: {from_status} → {to_status}")


def log_routing_decision(logger: logging.Logger, run_id: Optional[str], decision: str, reason: str = "") -> None:
    """Log the agent picked by the auto-route strategy.

    Args:
        logger: Logger instance
        run_id: Run being routed (None outside a tracked run)
        decision: Selected agent id or "_spawn"
        reason: Why this destination was chosen
    """
    logger.info(f"Routing decision for {run_id or 'untracked call'}: → {decision}")
    if reason:
        logger.debug(f"  Reason: {reason}")


def log_tool_call(logger: logging.Logger, tool_name: str, args: Dict[str, Any]) -> None:
    """Log tool invocation."""
    logger.info(f"Tool call: {tool_name}")
    logger.debug(f"  Arguments: {json.dumps(args, ensure_ascii=False, default=str)}")


def log_tool_result(logger: logging.Logger, tool_name: str, result: Any, success: bool = True) -> None:
    """Log tool execution result (preview truncated to 500 chars)."""
    status = "✓ Success" if success else "✗ Failed"
    logger.info(f"Tool result: {tool_name} - {status}")

    result_str = str(result)
    if len(result_str) > 500:
        result_str = result_str[:500] + "... (truncated)"
    logger.debug(f"  Result: {result_str}")


def log_error(logger: logging.Logger, error: Exception, context: str = "") -> None:
    """Log error with context.

    Args:
        logger: Logger instance
        error: Exception instance
        context: Additional context about where the error occurred
    """
    logger.error(f"Error occurred: {type(error).__name__}: {str(error)}")
    if context:
        logger.error(f"  Context: {context}")
    logger.debug("Full traceback:", exc_info=error)

