"""Human-readable narration of a walk.

:class:`NarrationObserver` subscribes to a
:class:`~trellis.framework.events.WalkEventEmitter` and turns walk
events into short lines such as ``[prosecutor] Entering Indictment``,
with a periodic progress summary.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from trellis.framework.events import WalkEvent, WalkEventType

logger = logging.getLogger(__name__)

NarrationSink = Callable[[str], None]

DEFAULT_MILESTONE_EVERY = 5


@dataclass(frozen=True)
class Progress:
    """Snapshot of walk progress."""

    nodes_visited: int
    elapsed: float
    current_node: str
    last_walker: str


def format_duration(seconds: float) -> str:
    """Format *seconds* as ``412ms``, ``3.2s`` or ``2m5s``."""
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    whole = int(seconds)
    return f"{whole // 60}m{whole % 60}s"


class NarrationObserver:
    """Walk event callback that narrates progress to a sink.

    Register with ``emitter.on_any(observer)``.  Transition and edge
    evaluation events are not narrated.

    Args:
        vocabulary: Maps node names to display names, either a callable
            or a mapping.  Names it does not know are shown as-is.
        sink: Receives each narration line; defaults to ``logger.info``.
        milestone_every: Emit a progress summary every N completed nodes;
            ``0`` disables summaries.
        show_eta: Include the average time per node in summaries.
        clock: Monotonic time source, in seconds.
    """

    def __init__(
        self,
        vocabulary: Callable[[str], str] | Mapping[str, str] | None = None,
        sink: NarrationSink | None = None,
        milestone_every: int = DEFAULT_MILESTONE_EVERY,
        show_eta: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._vocabulary = vocabulary
        self._sink = sink or logger.info
        self._milestone_every = milestone_every
        self._show_eta = show_eta
        self._clock = clock
        self._walk_start: float | None = None
        self._nodes_visited = 0
        self._current_node = ""
        self._last_walker = ""
        self._errors = 0

    def progress(self) -> Progress:
        return Progress(
            nodes_visited=self._nodes_visited,
            elapsed=self._elapsed(),
            current_node=self._current_node,
            last_walker=self._last_walker,
        )

    async def __call__(self, event: WalkEvent) -> None:
        if event.type == WalkEventType.NODE_ENTER:
            if self._walk_start is None:
                self._walk_start = self._clock()
            self._current_node = event.node
            if event.walker:
                self._last_walker = event.walker
                self._sink(f"[{event.walker}] Entering {self._name(event.node)}")
            else:
                self._sink(f"Entering {self._name(event.node)}")
        elif event.type == WalkEventType.NODE_EXIT:
            self._nodes_visited += 1
            name = self._name(event.node)
            if event.error is not None:
                self._errors += 1
                self._sink(f"Failed at {name}: {event.error}")
            elif event.elapsed > 0:
                self._sink(f"Completed {name} ({format_duration(event.elapsed)})")
            else:
                self._sink(f"Completed {name}")
            if self._milestone_every > 0 and self._nodes_visited % self._milestone_every == 0:
                self._milestone()
        elif event.type == WalkEventType.WALK_COMPLETE:
            self._sink(
                f"Walk complete: {self._nodes_visited} nodes visited "
                f"in {format_duration(self._elapsed())}"
            )
        elif event.type == WalkEventType.WALK_ERROR:
            self._errors += 1
            if event.node:
                self._sink(f"Walk failed at {self._name(event.node)}: {event.error}")
            else:
                self._sink(f"Walk failed: {event.error}")

    def _name(self, node: str) -> str:
        if self._vocabulary is None:
            return node
        if isinstance(self._vocabulary, Mapping):
            return self._vocabulary.get(node, node)
        return self._vocabulary(node)

    def _elapsed(self) -> float:
        if self._walk_start is None:
            return 0.0
        return self._clock() - self._walk_start

    def _milestone(self) -> None:
        elapsed = self._elapsed()
        line = (
            f"--- Progress: {self._nodes_visited} nodes visited "
            f"| Elapsed: {format_duration(elapsed)}"
        )
        if self._show_eta and self._nodes_visited > 0:
            line += f" | Avg: {format_duration(elapsed / self._nodes_visited)}/node"
        if self._errors > 0:
            line += f" | Errors: {self._errors}"
        self._sink(line + " ---")
