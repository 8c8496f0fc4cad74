"""Agent scanner - 从 agents.yaml 扫描并注册 agents

负责：
1. 从 agents.yaml 读取 agent 配置
2. 创建 AgentSpec 实例并注册到 AgentRegistry

配置格式：

    global:
      enabled: true
    agents:
      researcher:
        name: Researcher
        role: Web research
        system_prompt: Always cite sources.
        provider: chat
        model: gpt-4o
        tool_allowlist: [web_search]
        enabled: true
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .registry import AgentRegistry
from .schema import AgentSpec
from agentOrchestrator.config.project_root import resolve_project_path

LOGGER = logging.getLogger(__name__)

DEFAULT_AGENTS_FILE = "agentOrchestrator/config/agents.yaml"


def parse_agent_spec_from_config(agent_id: str, config: Dict[str, Any]) -> AgentSpec:
    """从 YAML 配置解析 AgentSpec

    Args:
        agent_id: Agent ID
        config: Agent 配置字典

    Returns:
        AgentSpec 实例

    Raises:
        KeyError: 缺少必需字段 (name)
        TypeError: tool_allowlist / tags 不是列表
    """
    name = config["name"]

    tool_allowlist = config.get("tool_allowlist")
    if tool_allowlist is not None and not isinstance(tool_allowlist, list):
        raise TypeError(f"tool_allowlist of agent '{agent_id}' must be a list")

    tags = config.get("tags", [])
    if not isinstance(tags, list):
        raise TypeError(f"tags of agent '{agent_id}' must be a list")

    return AgentSpec(
        id=agent_id,
        name=str(name),
        role=str(config.get("role", "") or ""),
        system_prompt=str(config.get("system_prompt", "") or "").strip(),
        provider=config.get("provider"),
        model=config.get("model"),
        tool_allowlist=[str(t) for t in tool_allowlist] if tool_allowlist is not None else None,
        enabled=bool(config.get("enabled", True)),
        tags=[str(t) for t in tags],
    )


def load_agents_config(config_path: Path | str) -> Dict[str, Any]:
    """加载 agents.yaml 配置文件

    Raises:
        FileNotFoundError: 配置文件不存在
        yaml.YAMLError: YAML 解析错误
    """
    if isinstance(config_path, str):
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Agent config not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    LOGGER.debug(f"Loaded agent config from {config_path}")
    return config


def scan_agents_from_config(config_path: Optional[Path | str] = None) -> AgentRegistry:
    """从 agents.yaml 扫描并注册 agents

    Args:
        config_path: agents.yaml 路径（可选，默认使用项目内置配置）

    Returns:
        填充好的 AgentRegistry
    """
    registry = AgentRegistry()

    if config_path is None:
        config_path = resolve_project_path(DEFAULT_AGENTS_FILE)
    else:
        config_path = resolve_project_path(config_path)

    config = load_agents_config(config_path)

    # 检查全局开关
    if not config.get("global", {}).get("enabled", True):
        LOGGER.info("Agents are disabled in config")
        return registry

    for agent_id, agent_config in (config.get("agents") or {}).items():
        # YAML 1.1 turns bare keys like off / yes / 1 into bool / int
        if not isinstance(agent_id, str):
            LOGGER.error(f"Skipping agent id {agent_id!r}: ids must be strings, quote it in {config_path}")
            continue
        try:
            spec = parse_agent_spec_from_config(agent_id, agent_config or {})
        except (KeyError, TypeError) as e:
            LOGGER.error(f"Failed to register agent '{agent_id}': {e}")
            continue
        registry.register(spec)
        LOGGER.info(f"Registered agent: {spec.id} ({spec.name}){'' if spec.enabled else ' [disabled]'}")

    stats = registry.get_stats()
    LOGGER.info(f"Agent scan complete: {stats['registered']} registered, {stats['enabled']} enabled")

    return registry
