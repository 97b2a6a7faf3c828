"""Error hierarchy for the graph framework.

Definition errors surface while a pipeline document is parsed, validated,
or built into a :class:`~trellis.framework.graph.Graph`.  Traversal errors
surface from :meth:`~trellis.framework.graph.Graph.walk` and always leave
the walker state marked ``error``.  Adversarial content errors are raised
by the court package and absorbed there into a mistrial.  Callers can
catch the specific classes instead of matching on message text.
"""

from __future__ import annotations


class FrameworkError(Exception):
    """Base exception for all framework errors."""


class PipelineParseError(FrameworkError):
    """Raised when a pipeline document cannot be parsed."""


class MissingNodeFactoryError(FrameworkError):
    """Raised by ``build_graph`` when no factory is registered for a node."""

    def __init__(self, node_name: str, family: str) -> None:
        self.node_name = node_name
        self.family = family
        super().__init__(
            f"No node factory for family '{family}' (node '{node_name}')"
        )


class MissingMaskError(FrameworkError):
    """Raised by ``build_graph`` when a node names a mask nobody registered."""

    def __init__(self, node_name: str, mask_name: str) -> None:
        self.node_name = node_name
        self.mask_name = mask_name
        super().__init__(f"No mask '{mask_name}' registered (node '{node_name}')")


class MaskNotApplicableError(FrameworkError):
    """A mask was equipped at a node it is not valid for."""

    def __init__(self, mask_name: str, node_name: str, valid_nodes: tuple[str, ...]) -> None:
        self.mask_name = mask_name
        self.node_name = node_name
        self.valid_nodes = tuple(valid_nodes)
        super().__init__(
            f"mask '{mask_name}' cannot be equipped at node '{node_name}' "
            f"(valid: {', '.join(self.valid_nodes) or 'none'})"
        )


class WalkError(FrameworkError):
    """Base class for failures raised while traversing a graph."""


class NodeNotFoundError(WalkError):
    """A referenced node does not exist in the graph.

    Raised at construction time for dangling edge references and at walk
    time for an unknown start node or transition target.
    """

    def __init__(self, node_name: str, detail: str = "") -> None:
        self.node_name = node_name
        message = f"node not found: '{node_name}'"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class NoMatchingEdgeError(WalkError):
    """Every outgoing edge of a node declined to produce a transition."""

    def __init__(self, node_name: str, artifact_type: str) -> None:
        self.node_name = node_name
        self.artifact_type = artifact_type
        super().__init__(
            f"no matching edge from node '{node_name}' "
            f"(artifact type '{artifact_type}')"
        )


class NodeExecutionError(WalkError):
    """The walker failed to produce an artifact for a node.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, node_name: str, message: str) -> None:
        self.node_name = node_name
        super().__init__(f"node '{node_name}': {message}")


class EdgeEvaluationError(WalkError):
    """An edge raised while deciding whether to fire.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, node_name: str, edge_id: str, message: str) -> None:
        self.node_name = node_name
        self.edge_id = edge_id
        super().__init__(f"edge {edge_id} from node '{node_name}': {message}")


class WalkCancelledError(WalkError):
    """The walk's cancel event was set before the next node ran."""


class MaxStepsExceededError(WalkError):
    """The walk handled more nodes than the graph's step ceiling allows."""

    def __init__(self, max_steps: int, node_name: str) -> None:
        self.max_steps = max_steps
        self.node_name = node_name
        super().__init__(
            f"max steps ({max_steps}) exceeded at node '{node_name}'"
        )


class AdversarialContentError(FrameworkError):
    """Base class for problems with content produced by an adversarial role.

    Court and dialectic runners absorb these into a ``mistrial``
    disposition instead of propagating them.
    """


class MalformedResponseError(AdversarialContentError):
    """A responder returned a payload that does not parse as the expected artifact."""

    def __init__(self, artifact_type: str, detail: str) -> None:
        self.artifact_type = artifact_type
        self.detail = detail
        super().__init__(f"malformed {artifact_type} response: {detail}")
