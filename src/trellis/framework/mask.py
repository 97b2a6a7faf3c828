"""Masks: detachable capability modifiers for nodes.

A mask wraps a node's ``process`` coroutine the way middleware wraps a
request, granting extra capability at specific nodes without changing
the node itself.  Masks stack: the first mask equipped is the outermost
wrapper, so equipping A then B runs A.pre -> B.pre -> node -> B.post ->
A.post.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from trellis.framework.errors import MaskNotApplicableError
from trellis.framework.identity import Element
from trellis.framework.models import Artifact, Node, NodeContext

logger = logging.getLogger(__name__)

NodeProcessor = Callable[[NodeContext], Awaitable[Artifact]]


@runtime_checkable
class Mask(Protocol):
    """Protocol for node masks."""

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def valid_nodes(self) -> tuple[str, ...]: ...

    def wrap(self, next_processor: NodeProcessor) -> NodeProcessor:
        """Return a processor that runs around *next_processor*."""
        ...


MaskRegistry = Mapping[str, Mask]


class MaskedNode:
    """A node with one or more masks applied as a middleware chain."""

    def __init__(self, inner: Node, masks: Iterable[Mask] = ()) -> None:
        self.inner = inner
        self.masks: list[Mask] = list(masks)

    @property
    def name(self) -> str:
        return self.inner.name

    @property
    def element(self) -> Element | None:
        return self.inner.element

    async def process(self, nc: NodeContext) -> Artifact:
        processor: NodeProcessor = self.inner.process
        for mask in reversed(self.masks):
            processor = mask.wrap(processor)
        return await processor(nc)

    def __repr__(self) -> str:
        names = ", ".join(m.name for m in self.masks)
        return f"MaskedNode({self.inner.name}, masks=[{names}])"


def equip_mask(node: Node, mask: Mask) -> MaskedNode:
    """Equip *mask* on *node*.

    A node that is already a :class:`MaskedNode` gets the mask appended
    to its chain, innermost.

    Raises:
        MaskNotApplicableError: If *node* is not among the mask's valid nodes.
    """
    if node.name not in mask.valid_nodes:
        raise MaskNotApplicableError(mask.name, node.name, mask.valid_nodes)
    if isinstance(node, MaskedNode):
        node.masks.append(mask)
        return node
    logger.debug("Equipped mask '%s' at node '%s'", mask.name, node.name)
    return MaskedNode(node, [mask])


def equip_masks(node: Node, *masks: Mask) -> Node:
    """Equip several masks on *node*; the first is the outermost wrapper."""
    for mask in masks:
        node = equip_mask(node, mask)
    return node


class MetaMask:
    """Mask that adds fixed entries to ``NodeContext.meta`` before the node runs.

    Args:
        name: Registry name of the mask.
        valid_nodes: Node names the mask may be equipped at.
        meta: Entries merged into the node's meta scratch space.
        description: Human-readable summary.
    """

    def __init__(
        self,
        name: str,
        valid_nodes: Iterable[str],
        meta: Mapping[str, Any],
        description: str = "",
    ) -> None:
        self._name = name
        self._valid_nodes = tuple(valid_nodes)
        self._meta = dict(meta)
        self._description = description

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def valid_nodes(self) -> tuple[str, ...]:
        return self._valid_nodes

    def wrap(self, next_processor: NodeProcessor) -> NodeProcessor:
        async def processor(nc: NodeContext) -> Artifact:
            nc.meta.update(self._meta)
            return await next_processor(nc)

        return processor
