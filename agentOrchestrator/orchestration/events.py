"""Lifecycle events published by the orchestrator.

The orchestrator only ever publishes; it never waits for a response. Events:

    orchestrate:spawned    {run_id, strategy, label, background}
    orchestrate:routed     {run_id, strategy, routed, selected_agents}
    orchestrate:completed  {run_id, strategy, status, duration_ms, agent_count}
    orchestrate:killed     {run_id, label}
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

LOGGER = logging.getLogger(__name__)

SPAWNED = "orchestrate:spawned"
ROUTED = "orchestrate:routed"
COMPLETED = "orchestrate:completed"
KILLED = "orchestrate:killed"

Handler = Callable[[str, Dict[str, Any]], None]


class EventBus(Protocol):
    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        ...


class InMemoryEventBus:
    """Synchronous in-process event bus.

    Handlers run inline in `publish`; a failing handler is logged and does not
    stop the others. `history` keeps every published event (useful in tests
    and for the CLI).
    """

    def __init__(self, keep_history: bool = True) -> None:
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._wildcard: List[Handler] = []
        self._keep_history = keep_history
        self.history: List[Tuple[str, Dict[str, Any]]] = []

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        self._handlers[event].append(handler)
        return lambda: self._handlers[event].remove(handler)

    def subscribe_all(self, handler: Handler) -> Callable[[], None]:
        self._wildcard.append(handler)
        return lambda: self._wildcard.remove(handler)

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        if self._keep_history:
            self.history.append((event, dict(payload)))
        for handler in [*self._handlers.get(event, []), *self._wildcard]:
            try:
                handler(event, payload)
            except Exception as e:
                LOGGER.warning(f"Event handler for {event} failed: {e}")

    def events(self, name: Optional[str] = None) -> List[Dict[str, Any]]:
        """Payloads of recorded events, optionally filtered by name."""
        return [payload for event, payload in self.history if name is None or event == name]


def safe_publish(bus: Optional[EventBus], event: str, payload: Dict[str, Any]) -> None:
    """Fire-and-forget publish: a missing or raising bus never breaks a run."""
    if bus is None:
        return
    try:
        bus.publish(event, payload)
    except Exception as e:
        LOGGER.warning(f"Failed to publish {event}: {e}")


__all__ = [
    "SPAWNED",
    "ROUTED",
    "COMPLETED",
    "KILLED",
    "EventBus",
    "InMemoryEventBus",
    "safe_publish",
]
