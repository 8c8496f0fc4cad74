"""Agent Registry - 编排器使用的默认 agent 目录

实现 AgentCatalog 协议（get / list），并提供启用 / 禁用、路由名册生成等
辅助方法。AgentSpec 是不可变的：启用或禁用会替换整个 spec。
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Dict, Iterable, List, Optional

from .schema import AgentSpec

LOGGER = logging.getLogger(__name__)


class AgentRegistry:
    """Agent 注册表

    - _agents: 所有注册的 agents（按注册顺序，不论是否启用）

    查询模式：
    - get(agent_id): 按 ID 查询（包含已禁用的 agent，由调用方检查 enabled）
    - list(): 所有 agents
    - list_enabled(): 已启用的 agents
    - query_by_tags(tags): 按标签查询
    """

    def __init__(self, specs: Optional[Iterable[AgentSpec]] = None):
        self._agents: Dict[str, AgentSpec] = {}
        if specs:
            for spec in specs:
                self.register(spec)

    # ========== Registration Methods ==========

    def register(self, spec: AgentSpec) -> None:
        """注册（或替换）一个 agent

        Args:
            spec: Agent spec
        """
        self._agents[spec.id] = spec
        LOGGER.debug(f"Registered agent: {spec.id} ({spec.name}, enabled={spec.enabled})")

    def enable(self, agent_id: str) -> AgentSpec:
        """启用一个 agent

        Raises:
            KeyError: Agent 未注册
        """
        return self._set_enabled(agent_id, True)

    def disable(self, agent_id: str) -> AgentSpec:
        """禁用一个 agent

        Raises:
            KeyError: Agent 未注册
        """
        return self._set_enabled(agent_id, False)

    def _set_enabled(self, agent_id: str, enabled: bool) -> AgentSpec:
        if agent_id not in self._agents:
            raise KeyError(f"Agent not registered: {agent_id}")
        spec = dataclasses.replace(self._agents[agent_id], enabled=enabled)
        self._agents[agent_id] = spec
        LOGGER.info(f"{'Enabled' if enabled else 'Disabled'} agent: {agent_id} ({spec.name})")
        return spec

    # ========== Query Methods ==========

    def get(self, agent_id: str) -> Optional[AgentSpec]:
        """获取 agent spec（包括已禁用的）"""
        return self._agents.get(agent_id)

    def is_enabled(self, agent_id: str) -> bool:
        spec = self._agents.get(agent_id)
        return bool(spec and spec.enabled)

    def list(self) -> List[AgentSpec]:
        return list(self._agents.values())

    def list_enabled(self) -> List[AgentSpec]:
        return [spec for spec in self._agents.values() if spec.enabled]

    def query_by_tags(self, tags: List[str], match_all: bool = False) -> List[AgentSpec]:
        """按标签查询已启用的 agents

        Args:
            tags: 标签列表
            match_all: 是否要求匹配所有标签（默认 False，匹配任一即可）
        """
        if match_all:
            return [spec for spec in self.list_enabled() if all(spec.has_tag(tag) for tag in tags)]
        return [spec for spec in self.list_enabled() if any(spec.has_tag(tag) for tag in tags)]

    # ========== Catalog Generation ==========

    def get_roster_text(self) -> str:
        """生成路由名册（每个已启用 agent 一行）"""
        return "\n".join(spec.roster_line() for spec in self.list_enabled())

    # ========== Statistics ==========

    def get_stats(self) -> Dict[str, int]:
        return {
            "registered": len(self._agents),
            "enabled": len(self.list_enabled()),
        }

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents
