"""Tool metadata management and registration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from langchain_core.tools import BaseTool


@dataclass(frozen=True, slots=True)
class ToolMeta:
    """Describes governance attributes for a tool."""

    name: str
    risk: str = "low"
    tags: List[str] = field(default_factory=list)
    available_to_agents: bool = True  # Whether dispatched agents may be granted this tool


class ToolRegistry:
    """Tracks tool instances and governance metadata.

    Spawned (unscoped) calls get `list_tools()`, agents with a pinned
    allowlist get `allowed_tools(allowlist)`.
    """

    def __init__(self, tools: Optional[Iterable[BaseTool]] = None, meta: Optional[Iterable[ToolMeta]] = None) -> None:
        self._tools: Dict[str, BaseTool] = {}
        self._meta: Dict[str, ToolMeta] = {}
        if tools:
            for tool in tools:
                self.register_tool(tool)
        if meta:
            for item in meta:
                self.register_meta(item)

    def register_tool(self, tool: BaseTool, meta: Optional[ToolMeta] = None) -> None:
        self._tools[tool.name] = tool
        if meta is not None:
            self.register_meta(meta)

    def register_meta(self, metadata: ToolMeta) -> None:
        self._meta[metadata.name] = metadata

    def _grantable(self, name: str) -> bool:
        meta = self._meta.get(name)
        return meta is None or meta.available_to_agents

    def list_tools(self) -> List[BaseTool]:
        """Every tool an agent may be granted (the spawn path's "full tools")."""
        return [tool for name, tool in self._tools.items() if self._grantable(name)]

    def allowed_tools(self, allowlist: Optional[Iterable[str]]) -> List[BaseTool]:
        if not allowlist:
            return []
        return [self._tools[name] for name in allowlist if name in self._tools and self._grantable(name)]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


__all__ = ["ToolMeta", "ToolRegistry"]
