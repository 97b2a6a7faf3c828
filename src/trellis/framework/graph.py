"""Graph construction and traversal.

A :class:`Graph` indexes nodes by name and outgoing edges by source node,
preserving declaration order, and walks itself with a pluggable
:class:`~trellis.framework.walker.Walker`:

1. The walker turns the current node into an artifact.
2. Outgoing edges are evaluated in declaration order; the first edge that
   returns a :class:`~trellis.framework.models.Transition` wins.
3. The step is recorded and the transition's context additions merged.
4. The walk ends when a transition targets the done pseudo-node or the
   current node has no outgoing edges.

Shortcut and loop edges get no special priority: authors declare
shortcuts before the edges they bypass.  The graph is read-only once
built and may be shared by concurrent walks.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import NoReturn

from trellis.framework.errors import (
    EdgeEvaluationError,
    MaxStepsExceededError,
    NodeExecutionError,
    NodeNotFoundError,
    NoMatchingEdgeError,
    WalkCancelledError,
    WalkError,
)
from trellis.framework.events import WalkEvent, WalkEventEmitter, WalkEventType
from trellis.framework.models import Artifact, Edge, Node, NodeContext, Transition, Zone
from trellis.framework.state import WalkerState, WalkStatus
from trellis.framework.walker import Walker

DEFAULT_DONE_NODE = "_done"
DEFAULT_MAX_STEPS = 1000

logger = logging.getLogger(__name__)


class Graph:
    """Directed graph of nodes connected by edges, partitioned into zones.

    Args:
        name: Graph identifier.
        nodes: Nodes of the graph; names must be unique.
        edges: Edges in declaration order.
        zones: Scheduling metadata; not interpreted by the walk.
        done_node: Terminal pseudo-node name.  A transition targeting it
            ends the walk successfully.
        max_steps: Ceiling on handled nodes per walk, ``None`` for no
            ceiling.
        event_emitter: Receives walk events when provided.

    Raises:
        NodeNotFoundError: If an edge source, or a target other than the
            done node, is not among *nodes*.
    """

    def __init__(
        self,
        name: str,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        zones: Iterable[Zone] = (),
        done_node: str = DEFAULT_DONE_NODE,
        max_steps: int | None = DEFAULT_MAX_STEPS,
        event_emitter: WalkEventEmitter | None = None,
    ) -> None:
        self._name = name
        self._nodes = tuple(nodes)
        self._edges = tuple(edges)
        self._zones = tuple(zones)
        self._done_node = done_node
        self._max_steps = max_steps
        self._event_emitter = event_emitter

        self._node_index: dict[str, Node] = {n.name: n for n in self._nodes}
        self._edge_index: dict[str, list[Edge]] = {}
        for edge in self._edges:
            if edge.source not in self._node_index:
                raise NodeNotFoundError(
                    edge.source, f"edge {edge.id} references source"
                )
            if edge.target != done_node and edge.target not in self._node_index:
                raise NodeNotFoundError(
                    edge.target, f"edge {edge.id} references target"
                )
            self._edge_index.setdefault(edge.source, []).append(edge)

    @property
    def name(self) -> str:
        return self._name

    @property
    def nodes(self) -> tuple[Node, ...]:
        return self._nodes

    @property
    def edges(self) -> tuple[Edge, ...]:
        return self._edges

    @property
    def zones(self) -> tuple[Zone, ...]:
        return self._zones

    @property
    def done_node(self) -> str:
        return self._done_node

    def node_by_name(self, name: str) -> Node | None:
        return self._node_index.get(name)

    def edges_from(self, node_name: str) -> list[Edge]:
        """Return edges leaving *node_name* in declaration order."""
        return list(self._edge_index.get(node_name, ()))

    def zone_for_node(self, node_name: str) -> Zone | None:
        """Return the first zone containing *node_name*, if any."""
        for zone in self._zones:
            if node_name in zone:
                return zone
        return None

    async def walk(
        self,
        walker: Walker,
        start_node: str,
        cancel_event: asyncio.Event | None = None,
    ) -> WalkerState:
        """Traverse the graph from *start_node* using *walker*.

        Args:
            walker: Driver that turns each node into an artifact.
            start_node: Name of the first node to handle.
            cancel_event: When set, the walk aborts before the next node.
                Context merged by earlier steps is kept.

        Returns:
            The walker's state, with status ``done``.

        Raises:
            NodeNotFoundError: Unknown start node or transition target.
            NoMatchingEdgeError: No outgoing edge fired.
            NodeExecutionError: The walker raised while handling a node.
            EdgeEvaluationError: An edge raised while being evaluated.
            WalkCancelledError: *cancel_event* was set.
            MaxStepsExceededError: The step ceiling was hit.
        """
        state = walker.state()
        walker_name = walker.identity().persona_name

        node = self._node_index.get(start_node)
        if node is None:
            await self._fail(
                state, NodeNotFoundError(start_node, "start node"), start_node
            )

        state.current_node = start_node
        state.status = WalkStatus.RUNNING
        prior_artifact: Artifact | None = None
        steps = 0

        logger.info(
            "Walking graph '%s' from '%s' (walker '%s')",
            self._name,
            start_node,
            walker_name,
        )

        while True:
            if cancel_event is not None and cancel_event.is_set():
                await self._fail(
                    state,
                    WalkCancelledError(f"walk cancelled before node '{node.name}'"),
                    node.name,
                )

            if self._max_steps is not None and steps >= self._max_steps:
                await self._fail(
                    state, MaxStepsExceededError(self._max_steps, node.name), node.name
                )
            steps += 1

            await self._emit(WalkEventType.NODE_ENTER, node=node.name, walker=walker_name)
            nc = NodeContext(walker_state=state, prior_artifact=prior_artifact, meta={})
            node_start = time.monotonic()
            try:
                artifact = await walker.handle(node, nc)
            except asyncio.CancelledError:
                state.status = WalkStatus.ERROR
                raise
            except Exception as exc:
                elapsed = time.monotonic() - node_start
                logger.error("Walker failed at node '%s': %s", node.name, exc)
                await self._emit(
                    WalkEventType.NODE_EXIT,
                    node=node.name,
                    walker=walker_name,
                    elapsed=elapsed,
                    error=exc,
                )
                await self._fail(
                    state, NodeExecutionError(node.name, str(exc)), node.name, cause=exc
                )

            await self._emit(
                WalkEventType.NODE_EXIT,
                node=node.name,
                walker=walker_name,
                elapsed=time.monotonic() - node_start,
                data={"artifact_type": artifact.type},
            )

            edges = self.edges_from(node.name)
            if not edges:
                state.status = WalkStatus.DONE
                logger.info(
                    "Walk of '%s' completed at terminal node '%s'",
                    self._name,
                    node.name,
                )
                await self._emit(
                    WalkEventType.WALK_COMPLETE, node=node.name, walker=walker_name
                )
                return state

            matched_edge, transition = await self._first_match(
                edges, artifact, state, node.name
            )
            if matched_edge is None or transition is None:
                await self._fail(
                    state, NoMatchingEdgeError(node.name, artifact.type), node.name
                )

            logger.debug(
                "Edge %s fired: %s -> %s (%s)",
                matched_edge.id,
                node.name,
                transition.next_node,
                transition.explanation,
            )
            await self._emit(
                WalkEventType.TRANSITION,
                node=node.name,
                edge=matched_edge.id,
                data={"next_node": transition.next_node},
            )

            state.record_step(node.name, matched_edge.id, matched_edge.id, _utc_now())
            state.merge_context(transition.context_additions)

            if transition.next_node == self._done_node:
                state.status = WalkStatus.DONE
                logger.info("Walk of '%s' reached '%s'", self._name, self._done_node)
                await self._emit(WalkEventType.WALK_COMPLETE, walker=walker_name)
                return state

            next_node = self._node_index.get(transition.next_node)
            if next_node is None:
                await self._fail(
                    state,
                    NodeNotFoundError(
                        transition.next_node,
                        f"transition target from edge {matched_edge.id}",
                    ),
                    node.name,
                )

            prior_artifact = artifact
            node = next_node
            state.current_node = next_node.name

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _first_match(
        self,
        edges: list[Edge],
        artifact: Artifact,
        state: WalkerState,
        node_name: str,
    ) -> tuple[Edge | None, Transition | None]:
        for edge in edges:
            await self._emit(WalkEventType.EDGE_EVALUATE, node=node_name, edge=edge.id)
            try:
                transition = edge.evaluate(artifact, state)
            except Exception as exc:
                await self._fail(
                    state,
                    EdgeEvaluationError(node_name, edge.id, str(exc)),
                    node_name,
                    cause=exc,
                )
            if transition is not None:
                return edge, transition
        return None, None

    async def _fail(
        self,
        state: WalkerState,
        error: WalkError,
        node_name: str,
        cause: BaseException | None = None,
    ) -> NoReturn:
        state.status = WalkStatus.ERROR
        logger.error("Walk of '%s' failed: %s", self._name, error)
        await self._emit(WalkEventType.WALK_ERROR, node=node_name, error=error)
        raise error from cause

    async def _emit(self, event_type: WalkEventType, **kwargs) -> None:
        if self._event_emitter is not None:
            await self._event_emitter.emit(
                WalkEvent(type=event_type, graph_name=self._name, **kwargs)
            )


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
