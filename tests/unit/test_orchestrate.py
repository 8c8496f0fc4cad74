"""Unit tests for orchestrate: admission, run bookkeeping, events, background runs."""

import asyncio

import pytest

from agentOrchestrator.orchestration import Orchestrator, RunRegistry, RunStatus
from agentOrchestrator.orchestration import events as ev
from agentOrchestrator.orchestration.manager import current_depth


class TestValidation:
    @pytest.mark.asyncio
    async def test_empty_task(self, build):
        result = await build().orchestrate("   ")
        assert result["ok"] is False
        assert result["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_no_llm(self, agent_registry):
        orch = Orchestrator(runs=RunRegistry(), catalog=agent_registry, completion=None)
        result = await orch.orchestrate("Summarize AI")
        assert result["error"]["code"] == "NO_LLM"
        assert len(orch.runs) == 0

    @pytest.mark.asyncio
    async def test_unknown_strategy(self, build):
        result = await build().orchestrate("Task", strategy="broadcast")
        assert result["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_fan_out_with_one_explicit_agent_creates_no_run(self, build):
        orch = build()
        result = await orch.orchestrate("Task", strategy="fan-out", agents=["researcher"])
        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert "at least 2 agents" in result["error"]["message"]
        assert len(orch.runs) == 0

    @pytest.mark.asyncio
    async def test_depth_limit(self, build):
        orch = build(max_depth=1)
        result = await orch.orchestrate("Task", depth=2)
        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert "depth" in result["error"]["message"]


class TestBlocking:
    @pytest.mark.asyncio
    async def test_fan_out_concrete_scenario(self, build, event_bus):
        orch = build(replies={"researcher": "Research output", "coder": "Code output"})

        result = await orch.orchestrate("Summarize AI", strategy="fan-out", agents=["researcher", "coder"])

        assert result["ok"] is True
        output = result["output"]
        assert [(r["agent_id"], r["text"]) for r in output["results"]] == [
            ("researcher", "Research output"),
            ("coder", "Code output"),
        ]
        assert output["run_id"].startswith("run-")
        assert isinstance(output["duration_ms"], int)

        run = orch.runs.get(output["run_id"])
        assert run.status == RunStatus.COMPLETED
        assert run.agents == ["researcher", "coder"]

        names = [name for name, _ in event_bus.history]
        assert names == [ev.SPAWNED, ev.ROUTED, ev.COMPLETED]
        completed = event_bus.events(ev.COMPLETED)[0]
        assert completed["status"] == "completed"
        assert completed["agent_count"] == 2

    @pytest.mark.asyncio
    async def test_auto_records_routed_agent(self, build, event_bus):
        orch = build(replies={"coder": "fixed"}, router="coder")

        result = await orch.orchestrate("Fix the bug", label="bugfix")

        assert result["output"]["routed"] == "coder"
        run = orch.runs.resolve("bugfix")
        assert run.agents == ["coder"]
        assert run.result_text == "fixed"
        assert event_bus.events(ev.ROUTED)[0]["routed"] == "coder"

    @pytest.mark.asyncio
    async def test_pipeline_failure_marks_error(self, build, event_bus):
        orch = build(replies={"coder": RuntimeError("boom")})

        result = await orch.orchestrate("Build", strategy="pipeline", agents=["researcher", "coder"])

        assert result["error"]["code"] == "ORCHESTRATE_ERROR"
        assert "Pipeline stage 2 (coder) failed" in result["error"]["message"]
        run = orch.runs.resolve("last")
        assert run.status == RunStatus.ERROR
        assert run.error == result["error"]["message"]
        assert event_bus.events(ev.COMPLETED)[0]["status"] == "error"

    @pytest.mark.asyncio
    async def test_auto_with_missing_explicit_agent_is_error(self, build):
        orch = build()
        result = await orch.orchestrate("Task", agents=["ghost"])
        assert result["error"]["code"] == "ORCHESTRATE_ERROR"
        assert 'Agent "ghost" not found' in result["error"]["message"]

    @pytest.mark.asyncio
    async def test_killed_blocking_run_discards_result(self, build, completion_factory, event_bus):
        gate = asyncio.Event()

        async def slow(request):
            await gate.wait()
            return "late"

        orch = build(completion=completion_factory({"coder": slow}))
        call = asyncio.create_task(orch.orchestrate("Task", agents=["coder"]))
        await asyncio.sleep(0.01)

        assert orch.kill("last")["ok"] is True
        gate.set()
        result = await call

        assert result["error"]["code"] == "ORCHESTRATE_ERROR"
        assert "killed" in result["error"]["message"]
        assert orch.runs.resolve("last").status == RunStatus.KILLED

        names = [name for name, _ in event_bus.history]
        assert names == [ev.SPAWNED, ev.ROUTED, ev.KILLED, ev.COMPLETED]
        assert event_bus.events(ev.COMPLETED)[0]["status"] == "killed"

    @pytest.mark.asyncio
    async def test_nested_calls_inherit_depth(self, build, completion_factory):
        seen = {}

        def record_depth(request):
            seen["depth"] = current_depth()
            return "ok"

        orch = build(completion=completion_factory({"coder": record_depth}))
        await orch.orchestrate("Task", agents=["coder"])

        assert seen["depth"] == 1
        assert current_depth() == 0


class TestAdmission:
    @pytest.mark.asyncio
    async def test_third_background_run_hits_concurrency_limit(self, build, completion_factory):
        gate = asyncio.Event()

        async def blocked(request):
            await gate.wait()
            return "done"

        orch = build(completion=completion_factory({"coder": blocked}), max_concurrent=2)

        first = await orch.orchestrate("one", agents=["coder"], background=True)
        second = await orch.orchestrate("two", agents=["coder"], background=True)
        third = await orch.orchestrate("three", agents=["coder"], background=True)

        assert first["ok"] and second["ok"]
        assert third == {
            "ok": False,
            "error": {"code": "CONCURRENCY_LIMIT", "message": third["error"]["message"]},
        }
        assert len(orch.runs) == 2

        gate.set()
        await orch.shutdown()


class TestBackground:
    @pytest.mark.asyncio
    async def test_background_run_reaches_terminal_status(self, build):
        orch = build(replies={"coder": "bg done"})

        accepted = await orch.orchestrate("Task", agents=["coder"], background=True, label="bg-job")

        assert accepted["ok"] is True
        assert accepted["output"]["status"] == "accepted"
        assert accepted["output"]["label"] == "bg-job"
        run_id = accepted["output"]["run_id"]
        assert orch.runs.get(run_id).handle is not None

        settled = await orch.wait(run_id)
        assert settled["ok"] is True

        summaries = orch.list_runs()["output"]
        assert summaries[0]["status"] == "completed"
        assert summaries[0]["result_preview"] == "bg done"

    @pytest.mark.asyncio
    async def test_background_failure_reaches_error(self, build):
        orch = build(replies={"researcher": RuntimeError("down")})

        accepted = await orch.orchestrate(
            "Task", strategy="pipeline", agents=["researcher", "coder"], background=True
        )
        await orch.shutdown()

        run = orch.runs.get(accepted["output"]["run_id"])
        assert run.status == RunStatus.ERROR

    @pytest.mark.asyncio
    async def test_wait_without_handle(self, build):
        orch = build()
        assert await orch.wait("run-missing") is None
