"""Walker protocol and the reference walker.

A walker is the pluggable driver that turns a node into an artifact.  It
is the single seam through which external I/O enters a traversal.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from trellis.framework.identity import AgentIdentity
from trellis.framework.models import Artifact, Node, NodeContext
from trellis.framework.state import WalkerState

logger = logging.getLogger(__name__)


@runtime_checkable
class Walker(Protocol):
    """An agent traversing a graph: identity plus processing capability."""

    def identity(self) -> AgentIdentity: ...

    def state(self) -> WalkerState: ...

    async def handle(self, node: Node, nc: NodeContext) -> Artifact: ...


class ProcessWalker:
    """Walker that delegates every node to ``node.process``.

    Suitable whenever the nodes themselves carry the domain logic, which
    is how the court pipeline is assembled.
    """

    def __init__(
        self,
        identity: AgentIdentity,
        state: WalkerState | None = None,
    ) -> None:
        self._identity = identity
        self._state = state or WalkerState(id=identity.persona_name)

    def identity(self) -> AgentIdentity:
        return self._identity

    def state(self) -> WalkerState:
        return self._state

    async def handle(self, node: Node, nc: NodeContext) -> Artifact:
        logger.debug(
            "Walker '%s' processing node '%s'",
            self._identity.persona_name,
            node.name,
        )
        return await node.process(nc)
