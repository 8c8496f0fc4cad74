"""Builtin tools."""

from .orchestrate import (
    ORCHESTRATE,
    ORCHESTRATE_KILL,
    ORCHESTRATE_LIST,
    create_orchestrator_tools,
)

__all__ = ["ORCHESTRATE", "ORCHESTRATE_KILL", "ORCHESTRATE_LIST", "create_orchestrator_tools"]
