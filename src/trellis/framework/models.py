"""Core graph contracts.

Defines the minimal capability interfaces every pipeline stage
implements (:class:`Artifact`, :class:`Node`, :class:`Edge`) and the
plain data passed between them (:class:`Transition`,
:class:`NodeContext`, :class:`Zone`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from trellis.framework.identity import Element
from trellis.framework.state import WalkerState


@runtime_checkable
class Artifact(Protocol):
    """Output of a node's processing.

    The framework treats artifacts as opaque: only the type tag is used,
    and only in error messages.  Typed payloads are domain-specific.
    """

    @property
    def type(self) -> str: ...

    @property
    def confidence(self) -> float: ...

    @property
    def raw(self) -> Any: ...


@dataclass
class NodeContext:
    """Input to a node: the walker's accumulated context at this step.

    Attributes:
        walker_state: The state of the walk in progress.
        prior_artifact: Artifact produced by the previous node, ``None``
            on the first step.
        meta: Per-step scratch space, fresh for every node.
    """

    walker_state: WalkerState
    prior_artifact: Artifact | None = None
    meta: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class Node(Protocol):
    """A processing stage in a pipeline graph."""

    @property
    def name(self) -> str: ...

    @property
    def element(self) -> Element | None: ...

    async def process(self, nc: NodeContext) -> Artifact: ...


@dataclass(frozen=True)
class Transition:
    """Routing decision produced by a matching edge.

    Attributes:
        next_node: Name of the node to visit next (or the done node).
        explanation: Human-readable reason the edge fired.
        context_additions: Keys merged into the walker's shared context.
    """

    next_node: str
    explanation: str = ""
    context_additions: dict[str, Any] | None = None


@runtime_checkable
class Edge(Protocol):
    """A conditional connection between two nodes.

    ``evaluate`` returns a :class:`Transition` when the edge fires and
    ``None`` otherwise.  Loop edges keep their own counters in
    ``state.loop_counts``; the engine never special-cases them.
    """

    @property
    def id(self) -> str: ...

    @property
    def source(self) -> str: ...

    @property
    def target(self) -> str: ...

    @property
    def shortcut(self) -> bool: ...

    @property
    def loop(self) -> bool: ...

    def evaluate(
        self, artifact: Artifact | None, state: WalkerState
    ) -> Transition | None: ...


@dataclass(frozen=True)
class Zone:
    """Named grouping of nodes used as scheduling metadata.

    Attributes:
        name: Zone identifier.
        node_names: Nodes belonging to the zone.
        element: Element affinity of the zone.
        stickiness: 0-3, how strongly walkers stay in the zone.
    """

    name: str
    node_names: tuple[str, ...] = ()
    element: Element | None = None
    stickiness: int = 0

    def __contains__(self, node_name: object) -> bool:
        return node_name in self.node_names


@dataclass(frozen=True)
class BasicArtifact:
    """General-purpose :class:`Artifact` for nodes with untyped output."""

    type: str
    confidence: float = 0.0
    raw: Any = None
