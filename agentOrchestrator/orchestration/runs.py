"""Run registry - in-memory store of orchestration runs.

Every `orchestrate` call that passes admission becomes a RunRecord. The
registry owns record mutation: the execution manager and the kill surface go
through the `mark_*` methods, which enforce the lifecycle

    pending → running → completed | error | killed
    pending → completed | error | killed

Once a record is terminal it never changes status again, so a run that was
killed while its completion call was still in flight keeps `killed` and the
late result is dropped.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from agentOrchestrator.utils.logging_utils import log_run_transition

LOGGER = logging.getLogger(__name__)

MAX_CONCURRENT_DEFAULT = 8
MAX_DEPTH_DEFAULT = 2
ARCHIVE_AFTER_SECONDS = 60 * 60
TASK_PREVIEW_CHARS = 80
ELLIPSIS = "…"


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"
    KILLED = "killed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return not self.is_terminal


TERMINAL_STATUSES = frozenset({RunStatus.COMPLETED, RunStatus.ERROR, RunStatus.KILLED})


def truncate(text: str, limit: int) -> str:
    """Cut `text` to `limit` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def new_run_id() -> str:
    return f"run-{uuid.uuid4().hex[:8]}"


def new_label() -> str:
    return f"auto-{uuid.uuid4().hex[:6]}"


@dataclass
class RunRecord:
    """One tracked invocation of `orchestrate`.

    `task` holds the display copy (truncated); executors get the full text.
    `handle` is the asyncio.Task driving a background run.
    """

    run_id: str
    label: str
    task: str
    strategy: str
    agents: List[str] = field(default_factory=list)
    status: RunStatus = RunStatus.PENDING
    background: bool = False
    depth: int = 0
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    duration_ms: Optional[int] = None
    result_text: Optional[str] = None
    error: Optional[str] = None
    outcome: Optional[Dict[str, Any]] = None
    handle: Optional[asyncio.Task] = field(default=None, repr=False, compare=False)

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @classmethod
    def new(
        cls,
        task: str,
        strategy: str,
        *,
        label: Optional[str] = None,
        agents: Optional[List[str]] = None,
        background: bool = False,
        depth: int = 0,
        created_at: Optional[float] = None,
        preview_chars: int = TASK_PREVIEW_CHARS,
    ) -> "RunRecord":
        return cls(
            run_id=new_run_id(),
            label=label or new_label(),
            task=truncate(task, preview_chars),
            strategy=strategy,
            agents=list(agents or []),
            background=background,
            depth=depth,
            created_at=created_at if created_at is not None else time.time(),
        )


class RunRegistry:
    """Tracks active and finished orchestration runs.

    Attributes:
        max_concurrent: Admission limit on pending + running runs (mutable)
        max_depth: Deepest allowed nesting of orchestrate calls (mutable)
        archive_after: Seconds a terminal run is kept before `sweep` removes it
    """

    def __init__(
        self,
        max_concurrent: int = MAX_CONCURRENT_DEFAULT,
        max_depth: int = MAX_DEPTH_DEFAULT,
        archive_after: float = ARCHIVE_AFTER_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._runs: Dict[str, RunRecord] = {}
        self._lock = threading.RLock()
        self._clock = clock
        self.max_concurrent = max_concurrent
        self.max_depth = max_depth
        self.archive_after = archive_after

    def now(self) -> float:
        return self._clock()

    # ========== Lookup ==========

    def create(self, record: RunRecord) -> RunRecord:
        with self._lock:
            if record.run_id in self._runs:
                raise ValueError(f"Run id collision: {record.run_id}")
            self._runs[record.run_id] = record
        LOGGER.info(f"Run created: {record.run_id} ({record.label}) strategy={record.strategy} depth={record.depth}")
        return record

    def get(self, run_id: str) -> Optional[RunRecord]:
        with self._lock:
            return self._runs.get(run_id)

    def all(self) -> List[RunRecord]:
        """All runs in insertion order."""
        with self._lock:
            return list(self._runs.values())

    def active(self) -> List[RunRecord]:
        return [r for r in self.all() if r.is_active]

    def active_count(self) -> int:
        return len(self.active())

    def has_capacity(self) -> bool:
        return self.active_count() < self.max_concurrent

    def resolve(self, query: str) -> Optional[RunRecord]:
        """Map a free-form target to a run.

        Tried in order, first match wins:
        1. exact run id
        2. run id prefix
        3. exact label
        4. "last" → most recently created run
        5. 1-based index into insertion order
        """
        query = (query or "").strip()
        if not query:
            return None

        with self._lock:
            runs = list(self._runs.values())
            exact = self._runs.get(query)
        if exact:
            return exact

        for run in runs:
            if run.run_id.startswith(query):
                return run

        for run in runs:
            if run.label == query:
                return run

        if query == "last":
            if not runs:
                return None
            # max() keeps the first of equal timestamps; prefer the later insert
            return max(reversed(runs), key=lambda r: r.created_at)

        # ASCII only: int() rejects digits such as "²" that isdigit() accepts
        if query.isascii() and query.isdecimal():
            index = int(query)
            if 1 <= index <= len(runs):
                return runs[index - 1]

        return None

    # ========== Lifecycle ==========

    def _transition(self, run: RunRecord, status: RunStatus, **updates: Any) -> bool:
        with self._lock:
            previous = run.status
            if previous.is_terminal:
                LOGGER.debug(f"Run {run.run_id} already {previous.value}; ignoring → {status.value}")
                return False
            if status == RunStatus.PENDING or (status == RunStatus.RUNNING and previous != RunStatus.PENDING):
                return False

            now = self.now()
            run.status = status
            if status == RunStatus.RUNNING:
                run.started_at = now
            else:
                run.ended_at = now
                run.duration_ms = int((now - (run.started_at or run.created_at)) * 1000)
            for key, value in updates.items():
                setattr(run, key, value)

        log_run_transition(LOGGER, run.run_id, previous.value, status.value, run.label)
        return True

    def mark_running(self, run: RunRecord) -> bool:
        return self._transition(run, RunStatus.RUNNING)

    def mark_completed(self, run: RunRecord, outcome: Dict[str, Any], text: Optional[str] = None) -> bool:
        return self._transition(run, RunStatus.COMPLETED, outcome=outcome, result_text=text)

    def mark_error(self, run: RunRecord, error: str) -> bool:
        return self._transition(run, RunStatus.ERROR, error=error)

    def mark_killed(self, run: RunRecord) -> bool:
        return self._transition(run, RunStatus.KILLED)

    def set_agents(self, run: RunRecord, agents: List[str]) -> None:
        with self._lock:
            if not run.status.is_terminal:
                run.agents = list(agents)

    # ========== Housekeeping ==========

    def sweep(self) -> int:
        """Remove terminal runs older than the archive window. Active runs are never swept."""
        cutoff = self.now() - self.archive_after
        swept = 0
        with self._lock:
            for run_id, run in list(self._runs.items()):
                if run.status.is_terminal and run.created_at < cutoff:
                    del self._runs[run_id]
                    swept += 1
        if swept:
            LOGGER.info(f"Swept {swept} archived run(s)")
        return swept

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)


__all__ = [
    "RunStatus",
    "RunRecord",
    "RunRegistry",
    "TERMINAL_STATUSES",
    "truncate",
]
