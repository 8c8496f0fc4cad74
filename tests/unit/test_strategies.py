"""Unit tests for the dispatch strategies (auto, fan-out, pipeline)."""

import asyncio

import pytest
from langchain_core.messages import HumanMessage, SystemMessage

from agentOrchestrator.agents import AgentRegistry, AgentSpec
from agentOrchestrator.orchestration.strategies import (
    SPAWN_ID,
    Strategy,
    StrategyContext,
    build_messages,
    parse_routing_answer,
    resolve_targets,
    run_auto,
    run_fan_out,
    run_pipeline,
)
from agentOrchestrator.utils.error_handler import OrchestrateError, ValidationError


def _ctx(registry, completion, prompt="BASE", routed=None):
    return StrategyContext(
        catalog=registry,
        completion=completion,
        system_prompt=prompt,
        on_routed=routed.extend if routed is not None else None,
    )


def _calls_for(completion, agent_id):
    return [c.args[0] for c in completion.complete.await_args_list if c.args[0].agent_id == agent_id]


class TestStrategyParse:
    def test_default_is_auto(self):
        assert Strategy.parse(None) == Strategy.AUTO
        assert Strategy.parse("") == Strategy.AUTO

    def test_known_values(self):
        assert Strategy.parse("fan-out") == Strategy.FAN_OUT
        assert Strategy.parse("PIPELINE") == Strategy.PIPELINE

    def test_unknown_value_is_validation_error(self):
        with pytest.raises(ValidationError):
            Strategy.parse("round-robin")


class TestBuildMessages:
    def test_agent_instructions_appended_to_base_prompt(self):
        spec = AgentSpec(id="researcher", name="Researcher", system_prompt="Cite sources.")
        system, user = build_messages("BASE", "Find X", spec)
        assert isinstance(system, SystemMessage)
        assert isinstance(user, HumanMessage)
        assert system.content == "BASE\n\n## Agent Instructions (Researcher)\nCite sources."
        assert user.content == "Find X"

    def test_context_and_previous_output_sections(self):
        _, user = build_messages("BASE", "Task", None, context="ctx", previous_output="prev")
        assert user.content == "Task\n\n## Additional Context\nctx\n\n## Previous Agent Output\nprev"

    def test_agent_without_prompt_uses_base_only(self):
        system, _ = build_messages("BASE", "Task", AgentSpec(id="a", name="A"))
        assert system.content == "BASE"


class TestRoutingAnswer:
    def test_matches_enabled_ids_case_insensitive(self, agent_registry):
        agents = agent_registry.list()
        assert parse_routing_answer("Coder", agents) == "coder"
        assert parse_routing_answer("  `researcher`\nbecause...", agents) == "researcher"

    def test_none_or_unknown_means_spawn(self, agent_registry):
        agents = agent_registry.list()
        assert parse_routing_answer("none", agents) is None
        assert parse_routing_answer("designer", agents) is None
        assert parse_routing_answer("", agents) is None


class TestResolveTargets:
    def test_fan_out_needs_two_explicit_agents_even_if_more_enabled(self, agent_registry):
        with pytest.raises(ValidationError):
            resolve_targets(Strategy.FAN_OUT, ["researcher"], agent_registry)

    def test_defaults_to_all_enabled_agents(self, agent_registry):
        agent_registry.register(AgentSpec(id="off", name="Off", enabled=False))
        assert resolve_targets(Strategy.PIPELINE, [], agent_registry) == ["researcher", "coder"]

    def test_single_enabled_agent_is_not_enough(self):
        registry = AgentRegistry([AgentSpec(id="solo", name="Solo")])
        with pytest.raises(ValidationError):
            resolve_targets(Strategy.FAN_OUT, [], registry)

    def test_auto_keeps_explicit_list(self, agent_registry):
        assert resolve_targets(Strategy.AUTO, ["coder"], agent_registry) == ["coder"]
        assert resolve_targets(Strategy.AUTO, [], agent_registry) == []


class TestAuto:
    @pytest.mark.asyncio
    async def test_explicit_agents_pick_first_usable(self, agent_registry, completion_factory):
        agent_registry.register(AgentSpec(id="off", name="Off", enabled=False))
        completion = completion_factory({"coder": "Code output"})
        routed = []

        output = await run_auto(_ctx(agent_registry, completion, routed=routed), "Fix bug", ["missing", "off", "coder"])

        assert output["routed"] == "coder"
        assert output["text"] == "Code output"
        assert routed == ["coder"]
        # No routing call when agents are explicit
        assert _calls_for(completion, "orchestrator-router") == []

    @pytest.mark.asyncio
    async def test_explicit_agents_none_usable(self, agent_registry, completion_factory):
        completion = completion_factory({})
        with pytest.raises(OrchestrateError, match="not found"):
            await run_auto(_ctx(agent_registry, completion), "Task", ["ghost"])

    @pytest.mark.asyncio
    async def test_router_pick(self, agent_registry, completion_factory):
        completion = completion_factory({"researcher": "Research output"}, router="researcher")

        output = await run_auto(_ctx(agent_registry, completion), "Find papers", [])

        assert output["routed"] == "researcher"
        router_call = _calls_for(completion, "orchestrator-router")[0]
        assert router_call.no_tools is True
        assert router_call.max_tokens == 50
        assert "- researcher: Researcher — Web research" in router_call.messages[0].content

    @pytest.mark.asyncio
    async def test_router_none_falls_back_to_spawn(self, agent_registry, completion_factory):
        completion = completion_factory({"orchestrator-spawn": "spawned"}, router="none")

        output = await run_auto(_ctx(agent_registry, completion), "Anything", [])

        assert output["routed"] == SPAWN_ID
        assert output["text"] == "spawned"
        spawn_call = _calls_for(completion, "orchestrator-spawn")[0]
        assert spawn_call.messages[0].content == "BASE"
        assert spawn_call.tool_allowlist is None

    @pytest.mark.asyncio
    async def test_router_failure_falls_back_to_spawn(self, agent_registry, completion_factory):
        completion = completion_factory({"orchestrator-spawn": "spawned"})
        original = completion.complete.side_effect

        async def flaky(request):
            if request.agent_id == "orchestrator-router":
                raise RuntimeError("router down")
            return await original(request)

        completion.complete.side_effect = flaky
        output = await run_auto(_ctx(agent_registry, completion), "Anything", [])
        assert output["routed"] == SPAWN_ID

    @pytest.mark.asyncio
    async def test_no_enabled_agents_spawns_without_router_call(self, completion_factory):
        completion = completion_factory({})
        output = await run_auto(_ctx(AgentRegistry(), completion), "Anything", [])
        assert output["routed"] == SPAWN_ID
        assert _calls_for(completion, "orchestrator-router") == []

    @pytest.mark.asyncio
    async def test_pinned_provider_model_and_tools(self, completion_factory):
        registry = AgentRegistry([
            AgentSpec(id="pinned", name="Pinned", provider="base", model="m-1", tool_allowlist=["web_search"]),
        ])
        completion = completion_factory({})
        await run_auto(_ctx(registry, completion), "Task", ["pinned"])

        request = _calls_for(completion, "pinned")[0]
        assert request.provider == "base"
        assert request.model == "m-1"
        assert request.tool_allowlist == ["web_search"]
        assert request.session_id.startswith("orchestrator-pinned-")

    @pytest.mark.asyncio
    async def test_callable_system_prompt(self, agent_registry, completion_factory):
        completion = completion_factory({})

        async def prompt():
            return "DYNAMIC"

        await run_auto(_ctx(agent_registry, completion, prompt=prompt), "Task", ["coder"])
        assert _calls_for(completion, "coder")[0].messages[0].content.startswith("DYNAMIC")


class TestFanOut:
    @pytest.mark.asyncio
    async def test_results_follow_input_order(self, agent_registry, completion_factory):
        # researcher finishes last, result order is still input order
        completion = completion_factory(
            {"researcher": "Research output", "coder": "Code output"},
            delays={"researcher": 0.05},
        )
        output = await run_fan_out(_ctx(agent_registry, completion), "Summarize AI", ["researcher", "coder"])

        assert [(r["agent_id"], r["text"]) for r in output["results"]] == [
            ("researcher", "Research output"),
            ("coder", "Code output"),
        ]

    @pytest.mark.asyncio
    async def test_agents_run_concurrently(self, agent_registry, completion_factory):
        completion = completion_factory({}, delays={"researcher": 0.2, "coder": 0.2})
        loop = asyncio.get_running_loop()
        start = loop.time()
        await run_fan_out(_ctx(agent_registry, completion), "Task", ["researcher", "coder"])
        assert loop.time() - start < 0.35

    @pytest.mark.asyncio
    async def test_agent_error_is_isolated(self, agent_registry, completion_factory):
        completion = completion_factory({"researcher": RuntimeError("rate limited"), "coder": "ok"})
        output = await run_fan_out(_ctx(agent_registry, completion), "Task", ["researcher", "ghost", "coder"])

        first, second, third = output["results"]
        assert first["text"] == "Error: rate limited"
        assert first["finish_reason"] == "error"
        assert second["finish_reason"] == "error"
        assert 'Agent "ghost" not found' in second["text"]
        assert third["text"] == "ok"


class TestPipeline:
    @pytest.mark.asyncio
    async def test_previous_output_is_threaded(self, agent_registry, completion_factory):
        agent_registry.register(AgentSpec(id="writer", name="Writer"))
        completion = completion_factory({"researcher": "facts", "coder": "code", "writer": "prose"})

        output = await run_pipeline(_ctx(agent_registry, completion), "Build", ["researcher", "coder", "writer"])

        assert output["final_agent"] == "writer"
        assert output["text"] == "prose"
        assert [s["agent_id"] for s in output["chain"]] == ["researcher", "coder", "writer"]

        first = _calls_for(completion, "researcher")[0].messages[1].content
        second = _calls_for(completion, "coder")[0].messages[1].content
        third = _calls_for(completion, "writer")[0].messages[1].content
        assert "Previous Agent Output" not in first
        assert "## Previous Agent Output\nfacts" in second
        assert "## Previous Agent Output\ncode" in third

    @pytest.mark.asyncio
    async def test_stage_failure_aborts(self, agent_registry, completion_factory):
        agent_registry.register(AgentSpec(id="writer", name="Writer"))
        completion = completion_factory({"coder": RuntimeError("boom")})

        with pytest.raises(OrchestrateError, match=r"Pipeline stage 2 \(coder\) failed: boom"):
            await run_pipeline(_ctx(agent_registry, completion), "Build", ["researcher", "coder", "writer"])
        assert _calls_for(completion, "writer") == []
