"""Walker state management.

:class:`WalkerState` is the per-walk mutable record.  It is created once
when a walk starts, mutated only by the traversal loop (and by loop edges
maintaining their counters), and outlives the walk so that a failed or
finished run can be inspected afterwards.  File-system helpers persist it
as JSON for audit.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

__all__ = [
    "StepRecord",
    "WalkerState",
    "WalkStatus",
    "list_states",
    "load_state",
    "save_state",
]


class WalkStatus:
    """Status values a :class:`WalkerState` moves through."""

    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


@dataclass
class StepRecord:
    """One completed node visit.

    Attributes:
        node: Name of the node that was handled.
        outcome: Id of the edge that fired out of the node.
        edge_id: Id of the edge that fired, kept separately for audit.
        timestamp: ISO-8601 UTC time the step was recorded.
    """

    node: str
    outcome: str
    edge_id: str
    timestamp: str

    def to_dict(self) -> dict[str, str]:
        return {
            "node": self.node,
            "outcome": self.outcome,
            "edge_id": self.edge_id,
            "timestamp": self.timestamp,
        }


@dataclass
class WalkerState:
    """Progress of one walker through a graph.

    Attributes:
        id: Stable identifier for the walk.
        current_node: Node the walker is at (or last recorded).
        status: One of ``running``, ``done``, ``error``.
        history: Append-only list of completed steps.
        loop_counts: Counter id -> occurrences, maintained by loop edges.
        context: Shared key-value store accumulated from transitions.
    """

    id: str
    current_node: str = ""
    status: str = WalkStatus.RUNNING
    history: list[StepRecord] = field(default_factory=list)
    loop_counts: dict[str, int] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)

    def record_step(
        self, node: str, outcome: str, edge_id: str, timestamp: str
    ) -> None:
        """Append a step to the history and update the current node."""
        self.history.append(
            StepRecord(node=node, outcome=outcome, edge_id=edge_id, timestamp=timestamp)
        )
        self.current_node = node

    def increment_loop(self, counter: str) -> int:
        """Increment *counter* and return its new value."""
        self.loop_counts[counter] = self.loop_counts.get(counter, 0) + 1
        return self.loop_counts[counter]

    def loop_count(self, counter: str) -> int:
        return self.loop_counts.get(counter, 0)

    def merge_context(self, additions: dict[str, Any] | None) -> None:
        """Merge *additions* into the shared context; ``None`` is a no-op."""
        if not additions:
            return
        self.context.update(additions)

    @property
    def visited(self) -> list[str]:
        """Node names in the order they completed."""
        return [step.node for step in self.history]

    def to_dict(self) -> dict[str, Any]:
        """Serialize the state to a JSON-compatible dictionary."""
        return {
            "id": self.id,
            "current_node": self.current_node,
            "status": self.status,
            "history": [step.to_dict() for step in self.history],
            "loop_counts": dict(self.loop_counts),
            "context": dict(self.context),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WalkerState:
        """Reconstruct a state from :meth:`to_dict` output."""
        return cls(
            id=data["id"],
            current_node=data.get("current_node", ""),
            status=data.get("status", WalkStatus.RUNNING),
            history=[StepRecord(**step) for step in data.get("history", [])],
            loop_counts=dict(data.get("loop_counts", {})),
            context=dict(data.get("context", {})),
        )


def save_state(state: WalkerState, directory: str | Path) -> Path:
    """Persist *state* to *directory* with a timestamp-based filename.

    Returns:
        Path to the written state file.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"walk_{state.id}_{int(time.time() * 1000)}.json"
    path.write_text(json.dumps(state.to_dict(), indent=2, default=str))
    return path


def load_state(path: str | Path) -> WalkerState:
    """Load a walker state from a JSON file written by :func:`save_state`."""
    return WalkerState.from_dict(json.loads(Path(path).read_text()))


def list_states(directory: str | Path) -> list[Path]:
    """Return all walker state files in *directory*, newest first."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(
        directory.glob("walk_*.json"), key=lambda p: p.stat().st_mtime, reverse=True
    )
