"""Interactive CLI for the orchestrator.

Plain text is dispatched with `orchestrate` (auto strategy); slash commands
manage runs and pick other strategies.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from agentOrchestrator.config import get_settings
from agentOrchestrator.orchestration import Orchestrator
from agentOrchestrator.runtime import build_orchestrator
from agentOrchestrator.utils import log_error, setup_logging

LOGGER = logging.getLogger(__name__)


class OrchestratorCLI:
    """Command routing + input loop around one Orchestrator."""

    COMMANDS: Dict[str, str] = {
        "/list [active]": "列出 orchestration runs（active 只显示进行中的）",
        "/kill <target>": "终止 run（run id / 前缀 / label / last / 序号 / all）",
        "/agents": "列出已注册的 agents",
        "/bg <task>": "后台运行任务（auto 策略）",
        "/fanout <task>": "所有启用的 agents 并行执行任务",
        "/pipeline <a,b,...> <task>": "按顺序串联执行 agents",
        "/help": "显示帮助信息",
        "/quit, /exit": "退出程序",
    }

    def __init__(self, orchestrator: Orchestrator):
        self.orchestrator = orchestrator
        self._command_handlers = self._build_command_handlers()
        self._running = False

    def _build_command_handlers(self) -> Dict[str, Callable]:
        return {
            "/quit": self._handle_quit,
            "/exit": self._handle_quit,
            "/help": self._handle_help,
            "/list": self._handle_list,
            "/kill": self._handle_kill,
            "/agents": self._handle_agents,
            "/bg": self._handle_background,
            "/fanout": self._handle_fan_out,
            "/pipeline": self._handle_pipeline,
        }

    # ========== Main Loop ==========

    async def run(self):
        self._running = True
        self.print_welcome()

        while self._running:
            try:
                user_input = await self.get_input()
                if not user_input:
                    continue

                if user_input.startswith("/"):
                    if not await self.handle_command(user_input):
                        break
                else:
                    await self._dispatch(user_input)

            except (KeyboardInterrupt, EOFError):
                print("\n再见！")
                LOGGER.info("Session interrupted by user")
                break
            except Exception as e:
                LOGGER.error(f"Unexpected error in main loop: {e}", exc_info=True)
                print(f"❌ 发生错误: {e}")

        await self.orchestrator.shutdown()
        LOGGER.info("CLI shutting down")

    def print_welcome(self):
        stats = self.orchestrator.catalog.get_stats()
        print("Agent Orchestrator CLI 已就绪。")
        print(f"Agents: {stats['enabled']} 启用 / {stats['registered']} 已注册")
        if self.orchestrator.completion is None:
            print("⚠️  未配置模型 API key，orchestrate 调用将返回 NO_LLM")
        print("\n输入 /help 查看命令列表\n")

    async def get_input(self) -> str:
        loop = asyncio.get_running_loop()
        return (await loop.run_in_executor(None, lambda: input("You> "))).strip()

    async def handle_command(self, cmd: str) -> bool:
        """Route a slash command. Returns False to leave the loop."""
        parts = cmd.split(maxsplit=1)
        cmd_name = parts[0].lower()
        cmd_arg = parts[1].strip() if len(parts) > 1 else None

        handler = self._command_handlers.get(cmd_name)
        if handler is None:
            print(f"❌ 未知命令: {cmd_name}")
            print("   输入 /help 查看可用命令")
            return True
        return await handler(cmd_arg)

    # ========== Command Handlers ==========

    async def _handle_quit(self, arg: Optional[str]) -> bool:
        print("会话结束。")
        return False

    async def _handle_help(self, arg: Optional[str]) -> bool:
        print("\n可用命令:")
        for cmd, desc in self.COMMANDS.items():
            print(f"  {cmd:<28} {desc}")
        print()
        return True

    async def _handle_list(self, arg: Optional[str]) -> bool:
        envelope = self.orchestrator.list_runs(active=(arg or "").lower() == "active")
        output = envelope["output"]
        if isinstance(output, str):
            print(f"{output}\n")
            return True
        for summary in output:
            print(
                f"{summary['index']}. {summary['run_id']} [{summary['status']}] {summary['label']} "
                f"({summary['strategy']}, {summary['runtime']}) {summary['task']}"
            )
            if summary["result_preview"]:
                print(f"     → {summary['result_preview']}")
        print()
        return True

    async def _handle_kill(self, arg: Optional[str]) -> bool:
        if not arg:
            print("❌ 请提供目标，例如: /kill last 或 /kill all")
            return True
        self._print_envelope(self.orchestrator.kill(arg))
        return True

    async def _handle_agents(self, arg: Optional[str]) -> bool:
        agents = self.orchestrator.catalog.list()
        if not agents:
            print("没有注册的 agents。\n")
            return True
        for spec in agents:
            state = "" if spec.enabled else " [disabled]"
            print(f"{spec.roster_line()}{state}")
        print()
        return True

    async def _handle_background(self, arg: Optional[str]) -> bool:
        if not arg:
            print("❌ 请提供任务，例如: /bg 总结这篇文章")
            return True
        await self._dispatch(arg, background=True)
        return True

    async def _handle_fan_out(self, arg: Optional[str]) -> bool:
        if not arg:
            print("❌ 请提供任务，例如: /fanout 调研 AI 现状")
            return True
        await self._dispatch(arg, strategy="fan-out")
        return True

    async def _handle_pipeline(self, arg: Optional[str]) -> bool:
        parts = (arg or "").split(maxsplit=1)
        if len(parts) < 2:
            print("❌ 用法: /pipeline researcher,writer <task>")
            return True
        agents = [a.strip() for a in parts[0].split(",") if a.strip()]
        await self._dispatch(parts[1], strategy="pipeline", agents=agents)
        return True

    # ========== Dispatch ==========

    async def _dispatch(
        self,
        task: str,
        strategy: str = "auto",
        agents: Optional[List[str]] = None,
        background: bool = False,
    ) -> None:
        envelope = await self.orchestrator.orchestrate(
            task, strategy=strategy, agents=agents, background=background
        )
        self._print_envelope(envelope)

    @staticmethod
    def _print_envelope(envelope: Dict[str, Any]) -> None:
        if not envelope["ok"]:
            error = envelope["error"]
            print(f"❌ [{error['code']}] {error['message']}\n")
            return

        output = envelope["output"]
        if isinstance(output, str):
            print(f"{output}\n")
        elif output.get("status") == "accepted":
            print(f"⏳ {output['run_id']} ({output['label']}): {output['message']}\n")
        elif "results" in output:
            for result in output["results"]:
                print(f"[{result['agent_id']}] {result['text']}")
            print()
        elif "chain" in output:
            for stage in output["chain"]:
                print(f"[{stage['agent_id']}] ✓ {stage['duration_ms']}ms")
            print(f"Agent> {output['text']}\n")
        else:
            print(f"[{output.get('routed')}] {output.get('text', '')}\n")


async def async_main():
    settings = get_settings()
    logger = setup_logging(settings.observability.log_level, settings.observability.log_dir)

    try:
        orchestrator = build_orchestrator(settings)
    except Exception as e:
        print(f"\n❌ 启动失败: {e}")
        log_error(logger, e, context="async_main() initialization")
        return

    await OrchestratorCLI(orchestrator).run()


def main():
    """Entry point that runs the async main function."""
    asyncio.run(async_main())


__all__ = ["OrchestratorCLI", "async_main", "main"]
