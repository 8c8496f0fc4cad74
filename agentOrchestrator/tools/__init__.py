"""Tool registry and builtin orchestrator tools."""

from .registry import ToolMeta, ToolRegistry

__all__ = ["ToolMeta", "ToolRegistry"]
