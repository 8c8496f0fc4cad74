"""Unit tests for RunRegistry lifecycle, resolve and sweep."""

import pytest

from agentOrchestrator.orchestration.runs import (
    RunRecord,
    RunRegistry,
    RunStatus,
    truncate,
)


class FakeClock:
    def __init__(self, now: float = 10_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _record(registry, task="task", label=None, created_at=None):
    record = RunRecord.new(
        task,
        "auto",
        label=label,
        created_at=created_at if created_at is not None else registry.now(),
    )
    return registry.create(record)


class TestRunRecord:
    def test_new_record_is_pending_with_generated_label(self):
        record = RunRecord.new("Summarize AI", "auto")
        assert record.status == RunStatus.PENDING
        assert record.run_id.startswith("run-")
        assert record.label.startswith("auto-")
        assert record.is_active

    def test_task_preview_is_truncated_with_ellipsis(self):
        record = RunRecord.new("x" * 200, "auto")
        assert record.task == "x" * 80 + "…"

    def test_truncate_keeps_short_text(self):
        assert truncate("short", 10) == "short"


class TestLifecycle:
    def test_pending_running_completed(self):
        clock = FakeClock()
        registry = RunRegistry(clock=clock)
        run = _record(registry)

        assert registry.mark_running(run)
        assert run.started_at == clock.now

        clock.now += 1.5
        assert registry.mark_completed(run, {"text": "done"}, "done")
        assert run.status == RunStatus.COMPLETED
        assert run.duration_ms == 1500
        assert run.result_text == "done"

    def test_terminal_status_is_final(self):
        registry = RunRegistry()
        run = _record(registry)
        registry.mark_running(run)
        assert registry.mark_killed(run)

        # Late result of a killed run is dropped
        assert not registry.mark_completed(run, {"text": "late"}, "late")
        assert not registry.mark_error(run, "late error")
        assert run.status == RunStatus.KILLED
        assert run.result_text is None

    def test_pending_can_end_without_running(self):
        registry = RunRegistry()
        run = _record(registry)
        assert registry.mark_error(run, "boom")
        assert run.status == RunStatus.ERROR
        assert run.error == "boom"

    def test_running_cannot_restart(self):
        registry = RunRegistry()
        run = _record(registry)
        assert registry.mark_running(run)
        assert not registry.mark_running(run)

    def test_admission_counts_only_active_runs(self):
        registry = RunRegistry(max_concurrent=2)
        first = _record(registry)
        _record(registry)
        assert not registry.has_capacity()

        registry.mark_completed(first, {}, None)
        assert registry.active_count() == 1
        assert registry.has_capacity()

    def test_duplicate_run_id_rejected(self):
        registry = RunRegistry()
        run = _record(registry)
        with pytest.raises(ValueError):
            registry.create(RunRecord(run_id=run.run_id, label="dup", task="t", strategy="auto"))


class TestResolve:
    def test_exact_id_then_prefix_then_label(self):
        registry = RunRegistry()
        run = _record(registry, label="research-job")

        assert registry.resolve(run.run_id) is run
        assert registry.resolve(run.run_id[:7]) is run
        assert registry.resolve("research-job") is run

    def test_last_returns_most_recently_created(self):
        clock = FakeClock()
        registry = RunRegistry(clock=clock)
        older = _record(registry, created_at=100.0)
        newer = _record(registry, created_at=200.0)
        assert registry.resolve("last") is newer
        assert registry.resolve("last") is not older

    def test_last_prefers_later_insert_on_equal_timestamps(self):
        registry = RunRegistry()
        _record(registry, created_at=100.0)
        second = _record(registry, created_at=100.0)
        assert registry.resolve("last") is second

    def test_numeric_index_is_one_based(self):
        registry = RunRegistry()
        first = _record(registry)
        second = _record(registry)
        assert registry.resolve("1") is first
        assert registry.resolve("2") is second
        assert registry.resolve("3") is None
        assert registry.resolve("0") is None

    def test_non_ascii_digits_do_not_match(self):
        registry = RunRegistry()
        _record(registry)
        assert registry.resolve("²") is None
        assert registry.resolve("１") is None

    def test_label_beats_last_keyword(self):
        registry = RunRegistry()
        labelled = _record(registry, label="last", created_at=1.0)
        _record(registry, created_at=2.0)
        assert registry.resolve("last") is labelled

    def test_unknown_or_empty_target(self):
        registry = RunRegistry()
        _record(registry)
        assert registry.resolve("nope") is None
        assert registry.resolve("") is None
        assert registry.resolve("last") is not None


class TestSweep:
    def test_sweep_removes_old_terminal_runs_only(self):
        clock = FakeClock(now=10_000.0)
        registry = RunRegistry(clock=clock)

        stale_done = _record(registry, created_at=clock.now - 3601)
        registry.mark_completed(stale_done, {}, None)
        stale_running = _record(registry, created_at=clock.now - 7200)
        registry.mark_running(stale_running)
        fresh_done = _record(registry, created_at=clock.now - 10)
        registry.mark_error(fresh_done, "x")

        assert registry.sweep() == 1
        assert registry.get(stale_done.run_id) is None
        assert registry.get(stale_running.run_id) is stale_running
        assert registry.get(fresh_done.run_id) is fresh_done
