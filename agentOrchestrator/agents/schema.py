"""Agent spec schema - 编排器可调度的 agent 描述

AgentSpec 是 agent 的只读元数据：身份、角色、系统提示词，以及可选的
模型 / 工具固定（pinning）。编排器从不修改 AgentSpec。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class AgentSpec:
    """A named role that can be dispatched a task.

    Attributes:
        id: Agent 唯一标识符（如 "researcher", "coder"）
        name: 显示名称（出现在 "## Agent Instructions (<name>)" 标题中）
        role: 一句话角色描述（用于 LLM 路由）
        system_prompt: 追加在基础系统提示词之后的 agent 指令
        provider: 固定的模型槽位 / 提供者（可选）
        model: 固定的模型 ID（可选）
        tool_allowlist: 允许使用的工具名（None 表示不限制）
        enabled: 是否可被调度
        tags: 标签列表（用于分类）

    Examples:
        >>> researcher = AgentSpec(
        ...     id="researcher",
        ...     name="Researcher",
        ...     role="Web research",
        ...     system_prompt="Always cite sources.",
        ...     tool_allowlist=["web_search", "http_fetch"],
        ... )
    """

    id: str
    name: str
    role: str = ""
    system_prompt: str = ""
    provider: Optional[str] = None
    model: Optional[str] = None
    tool_allowlist: Optional[List[str]] = None
    enabled: bool = True
    tags: List[str] = field(default_factory=list)

    def roster_line(self) -> str:
        """One line of the routing roster shown to the router model."""
        return f"- {self.id}: {self.name} — {self.role or 'No role defined'}"

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags
