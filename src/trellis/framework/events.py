"""Walk event system for observability.

Provides typed events emitted while a graph is traversed so that UIs,
loggers and metrics collectors can follow a walk without touching the
engine.
"""

from __future__ import annotations

import enum
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine

logger = logging.getLogger(__name__)


class WalkEventType(str, enum.Enum):
    """Typed event categories emitted during a walk."""

    NODE_ENTER = "node_enter"
    NODE_EXIT = "node_exit"
    EDGE_EVALUATE = "edge_evaluate"
    TRANSITION = "transition"
    WALK_COMPLETE = "walk_complete"
    WALK_ERROR = "walk_error"


@dataclass
class WalkEvent:
    """A single observation from a graph walk.

    Attributes:
        type: The event category.
        graph_name: Name of the graph being walked.
        node: Relevant node name (empty for walk-level events).
        walker: Persona name of the walker.
        edge: Edge id for edge and transition events.
        elapsed: Seconds spent in the node, for ``node_exit``.
        error: The failure, for ``walk_error`` and failed ``node_exit``.
        timestamp: UNIX epoch when the event occurred.
        data: Arbitrary event-specific payload.
    """

    type: WalkEventType
    graph_name: str = ""
    node: str = ""
    walker: str = ""
    edge: str = ""
    elapsed: float = 0.0
    error: BaseException | None = None
    timestamp: float = field(default_factory=time.time)
    data: dict[str, Any] = field(default_factory=dict)


# Callback type: async function that receives a WalkEvent
EventCallback = Callable[[WalkEvent], Coroutine[Any, Any, None]]


class WalkEventEmitter:
    """Observer-pattern event emitter for walk lifecycle events.

    Register callbacks with :meth:`on` (one event type) or
    :meth:`on_any` (every event) and fire events with :meth:`emit`.
    """

    def __init__(self) -> None:
        self._listeners: dict[WalkEventType, list[EventCallback]] = defaultdict(list)
        self._any: list[EventCallback] = []

    @property
    def listeners(self) -> dict[WalkEventType, list[EventCallback]]:
        """Return the mapping of event types to registered callbacks."""
        return dict(self._listeners)

    def on(self, event_type: WalkEventType, callback: EventCallback) -> None:
        """Register a callback for a specific event type."""
        self._listeners[event_type].append(callback)

    def on_any(self, callback: EventCallback) -> None:
        """Register a callback that receives every event."""
        self._any.append(callback)

    async def emit(self, event: WalkEvent) -> None:
        """Fire an event, invoking all registered callbacks.

        Exceptions in callbacks are logged but do not prevent
        other callbacks from running.
        """
        for callback in [*self._listeners.get(event.type, []), *self._any]:
            try:
                await callback(event)
            except Exception as exc:
                logger.error(
                    "Walk event callback error for %s: %s",
                    event.type.value,
                    exc,
                )


class EventRecorder:
    """Callback that keeps every event it receives, for tests and audits."""

    def __init__(self) -> None:
        self.events: list[WalkEvent] = []

    async def __call__(self, event: WalkEvent) -> None:
        self.events.append(event)

    def types(self) -> list[WalkEventType]:
        return [e.type for e in self.events]


async def log_event(event: WalkEvent) -> None:
    """Callback that writes walk events to this module's logger."""
    if event.type == WalkEventType.WALK_ERROR:
        logger.warning(
            "walk %s: %s at node '%s': %s",
            event.graph_name,
            event.type.value,
            event.node,
            event.error,
        )
        return
    logger.debug(
        "walk %s: %s node=%s edge=%s walker=%s",
        event.graph_name,
        event.type.value,
        event.node,
        event.edge,
        event.walker,
    )
