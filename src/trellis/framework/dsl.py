"""Declarative pipeline documents.

A pipeline document is YAML with the layout::

    pipeline: defect-court
    description: Adversarial review
    zones:
      prosecution: {nodes: [indict, discover], element: fire, stickiness: 1}
    nodes:
      - {name: indict, element: fire, family: indict}
    edges:
      - {id: HD1, name: fast-track, from: indict, to: defend, shortcut: true,
         condition: "indictment confidence >= 0.95"}
    start: indict
    done: _done

:func:`load_pipeline` parses it into a :class:`PipelineDef`,
:func:`validate_pipeline_def` checks referential integrity, and
:meth:`PipelineDef.build_graph` turns it into a
:class:`~trellis.framework.graph.Graph` through caller-supplied node and
edge registries.  All three are pure functions of their inputs.
"""

from __future__ import annotations

import enum
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from trellis.framework.errors import (
    FrameworkError,
    MissingMaskError,
    MissingNodeFactoryError,
    PipelineParseError,
)
from trellis.framework.graph import Graph
from trellis.framework.identity import Element
from trellis.framework.mask import MaskRegistry, equip_mask
from trellis.framework.models import Artifact, Edge, Node, Transition, Zone
from trellis.framework.state import WalkerState

MAX_STICKINESS = 3


@dataclass
class ZoneDef:
    """Declared zone: member nodes, element affinity and stickiness (0-3)."""

    nodes: list[str] = field(default_factory=list)
    element: str = ""
    stickiness: int = 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"nodes": list(self.nodes)}
        if self.element:
            data["element"] = self.element
        if self.stickiness:
            data["stickiness"] = self.stickiness
        return data


@dataclass
class NodeDef:
    """Declared node.  ``family`` selects the factory in the node registry."""

    name: str
    element: str = ""
    family: str = ""
    masks: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.element:
            data["element"] = self.element
        if self.family:
            data["family"] = self.family
        if self.masks:
            data["masks"] = list(self.masks)
        return data


@dataclass
class EdgeDef:
    """Declared edge.

    Attributes:
        id: Machine identifier; selects the factory in the edge registry.
        name: Human-readable name.
        source: Source node name (``from`` in the document).
        target: Target node name or the done pseudo-node (``to``).
        shortcut: The edge may bypass the normal chain.
        loop: The edge may re-enter an earlier node.
        condition: Human-readable description of when the edge fires.
    """

    id: str
    name: str = ""
    source: str = ""
    target: str = ""
    shortcut: bool = False
    loop: bool = False
    condition: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "from": self.source,
            "to": self.target,
        }
        if self.shortcut:
            data["shortcut"] = True
        if self.loop:
            data["loop"] = True
        if self.condition:
            data["condition"] = self.condition
        return data


NodeFactory = Callable[[NodeDef], Node]
EdgeFactoryFn = Callable[[EdgeDef], Edge]
NodeRegistry = Mapping[str, NodeFactory]
EdgeFactory = Mapping[str, EdgeFactoryFn]


class ValidationLevel(str, enum.Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class DefinitionError:
    """A single finding from :func:`validate_pipeline_def`."""

    message: str
    level: ValidationLevel = ValidationLevel.ERROR
    rule: str = ""
    node_name: str | None = None
    edge_id: str | None = None

    def __str__(self) -> str:
        location = ""
        if self.node_name:
            location = f" (node '{self.node_name}')"
        elif self.edge_id:
            location = f" (edge {self.edge_id})"
        rule_tag = f" [{self.rule}]" if self.rule else ""
        return f"[{self.level.value.upper()}]{location}{rule_tag} {self.message}"


class PipelineValidationError(FrameworkError):
    """Raised by :meth:`PipelineDef.validate` when findings exist."""

    def __init__(self, errors: list[DefinitionError]) -> None:
        self.errors = errors
        super().__init__("\n".join(str(e) for e in errors))


@dataclass
class PipelineDef:
    """Top-level declarative form of a pipeline graph."""

    pipeline: str
    description: str = ""
    zones: dict[str, ZoneDef] = field(default_factory=dict)
    nodes: list[NodeDef] = field(default_factory=list)
    edges: list[EdgeDef] = field(default_factory=list)
    start: str = ""
    done: str = ""

    def node_names(self) -> list[str]:
        return [n.name for n in self.nodes]

    def validate(self) -> None:
        """Raise :class:`PipelineValidationError` if any error-level finding exists."""
        errors = [
            e for e in validate_pipeline_def(self) if e.level == ValidationLevel.ERROR
        ]
        if errors:
            raise PipelineValidationError(errors)

    def build_graph(
        self,
        node_registry: NodeRegistry,
        edge_factory: EdgeFactory | None = None,
        masks: MaskRegistry | None = None,
        **graph_options: Any,
    ) -> Graph:
        """Validate, then construct a :class:`Graph`.

        Node factories are looked up by family, falling back to the node
        name.  Edge factories are looked up by edge id; edges without one
        become :class:`PassthroughEdge` instances that always fire.  Masks
        a node lists are looked up in *masks* and equipped in order.

        Args:
            node_registry: Family (or node name) -> node factory.
            edge_factory: Edge id -> edge factory.
            masks: Mask name -> mask.
            **graph_options: Forwarded to :class:`Graph` (``max_steps``,
                ``event_emitter``).

        Raises:
            PipelineValidationError: If the definition is invalid.
            MissingNodeFactoryError: If a node has no registered factory.
            MissingMaskError: If a node lists an unregistered mask.
            MaskNotApplicableError: If a mask is not valid at its node.
        """
        self.validate()
        edge_factory = edge_factory or {}
        masks = masks or {}

        nodes: list[Node] = []
        for nd in self.nodes:
            factory = node_registry.get(nd.family) if nd.family else None
            if factory is None:
                factory = node_registry.get(nd.name)
            if factory is None:
                raise MissingNodeFactoryError(nd.name, nd.family)
            node = factory(nd)
            for mask_name in nd.masks:
                mask = masks.get(mask_name)
                if mask is None:
                    raise MissingMaskError(nd.name, mask_name)
                node = equip_mask(node, mask)
            nodes.append(node)

        edges: list[Edge] = []
        for ed in self.edges:
            edge_fn = edge_factory.get(ed.id)
            edges.append(edge_fn(ed) if edge_fn is not None else PassthroughEdge(ed))

        zones = [
            Zone(
                name=name,
                node_names=tuple(zd.nodes),
                element=Element.coerce(zd.element),
                stickiness=zd.stickiness,
            )
            for name, zd in self.zones.items()
        ]

        return Graph(
            self.pipeline, nodes, edges, zones, done_node=self.done, **graph_options
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the document form, omitting empty optional sections."""
        data: dict[str, Any] = {"pipeline": self.pipeline}
        if self.description:
            data["description"] = self.description
        if self.zones:
            data["zones"] = {name: z.to_dict() for name, z in self.zones.items()}
        data["nodes"] = [n.to_dict() for n in self.nodes]
        data["edges"] = [e.to_dict() for e in self.edges]
        data["start"] = self.start
        data["done"] = self.done
        return data

    def to_yaml(self) -> str:
        """Serialize back to a YAML document that :func:`load_pipeline` accepts."""
        return yaml.safe_dump(
            self.to_dict(), sort_keys=False, default_flow_style=False, allow_unicode=True
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PipelineDef:
        """Build a definition from an already-parsed document mapping.

        Raises:
            PipelineParseError: If a section has the wrong shape.
        """
        try:
            zones = {
                str(name): ZoneDef(
                    nodes=[str(n) for n in (z or {}).get("nodes") or []],
                    element=str((z or {}).get("element") or ""),
                    stickiness=int((z or {}).get("stickiness") or 0),
                )
                for name, z in (data.get("zones") or {}).items()
            }
            nodes = [
                NodeDef(
                    name=str(n.get("name") or ""),
                    element=str(n.get("element") or ""),
                    family=str(n.get("family") or ""),
                    masks=_names(n, "masks"),
                )
                for n in data.get("nodes") or []
            ]
            edges = [
                EdgeDef(
                    id=str(e.get("id") or ""),
                    name=str(e.get("name") or ""),
                    source=str(e.get("from") or ""),
                    target=str(e.get("to") or ""),
                    shortcut=_flag(e, "shortcut"),
                    loop=_flag(e, "loop"),
                    condition=str(e.get("condition") or ""),
                )
                for e in data.get("edges") or []
            ]
        except (AttributeError, TypeError, ValueError) as exc:
            raise PipelineParseError(f"Malformed pipeline document: {exc}") from exc

        return cls(
            pipeline=str(data.get("pipeline") or ""),
            description=str(data.get("description") or ""),
            zones=zones,
            nodes=nodes,
            edges=edges,
            start=str(data.get("start") or ""),
            done=str(data.get("done") or ""),
        )


class PassthroughEdge:
    """Default edge for ids without a registered factory.

    Always transitions to the declared target, using the declared
    condition text as the explanation.
    """

    def __init__(self, definition: EdgeDef) -> None:
        self._def = definition

    @property
    def id(self) -> str:
        return self._def.id

    @property
    def source(self) -> str:
        return self._def.source

    @property
    def target(self) -> str:
        return self._def.target

    @property
    def shortcut(self) -> bool:
        return self._def.shortcut

    @property
    def loop(self) -> bool:
        return self._def.loop

    def evaluate(self, artifact: Artifact | None, state: WalkerState) -> Transition:
        return Transition(next_node=self._def.target, explanation=self._def.condition)

    def __repr__(self) -> str:
        return f"PassthroughEdge({self.id}: {self.source} -> {self.target})"


def _names(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"node field '{key}' must be a list, got {value!r}")
    return [str(v) for v in value]


def _flag(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"edge field '{key}' must be a boolean, got {value!r}")
    return value


def load_pipeline(data: bytes | str) -> PipelineDef:
    """Parse a YAML pipeline document.

    Raises:
        PipelineParseError: If the YAML is malformed or not a mapping.
    """
    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise PipelineParseError(f"parse pipeline YAML: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise PipelineParseError("pipeline document must be a mapping")
    return PipelineDef.from_dict(raw)


def load_pipeline_file(path: str | Path) -> PipelineDef:
    """Read and parse the pipeline document at *path*."""
    return load_pipeline(Path(path).read_bytes())


def validate_pipeline_def(definition: PipelineDef) -> list[DefinitionError]:
    """Check referential integrity of *definition*.

    Returns:
        Every finding, empty when the definition is valid.
    """
    errors: list[DefinitionError] = []

    if not definition.pipeline:
        errors.append(DefinitionError("pipeline name is required", rule="pipeline_name"))
    if not definition.nodes:
        errors.append(DefinitionError("at least one node is required", rule="nodes"))
    if not definition.edges:
        errors.append(DefinitionError("at least one edge is required", rule="edges"))
    if not definition.done:
        errors.append(DefinitionError("done node is required", rule="done_node"))

    node_set: set[str] = set()
    for nd in definition.nodes:
        if not nd.name:
            errors.append(DefinitionError("node name is required", rule="node_name"))
            continue
        if nd.name in node_set:
            errors.append(
                DefinitionError(
                    f"duplicate node name '{nd.name}'",
                    rule="unique_nodes",
                    node_name=nd.name,
                )
            )
        node_set.add(nd.name)
        _check_element(nd.element, errors, node_name=nd.name)

    if not definition.start:
        errors.append(DefinitionError("start node is required", rule="start_node"))
    elif definition.start not in node_set:
        errors.append(
            DefinitionError(
                f"start node '{definition.start}' not found in node list",
                rule="start_node",
            )
        )

    edge_ids: set[str] = set()
    for ed in definition.edges:
        if not ed.id:
            errors.append(DefinitionError("edge id is required", rule="edge_id"))
        elif ed.id in edge_ids:
            errors.append(
                DefinitionError(
                    f"duplicate edge id '{ed.id}'", rule="unique_edges", edge_id=ed.id
                )
            )
        edge_ids.add(ed.id)

        if ed.source not in node_set:
            errors.append(
                DefinitionError(
                    f"edge references unknown source node '{ed.source}'",
                    rule="edge_source_exists",
                    edge_id=ed.id or None,
                )
            )
        if ed.target != definition.done and ed.target not in node_set:
            errors.append(
                DefinitionError(
                    f"edge references unknown target node '{ed.target}'",
                    rule="edge_target_exists",
                    edge_id=ed.id or None,
                )
            )

    for zone_name, zd in definition.zones.items():
        for node_name in zd.nodes:
            if node_name not in node_set:
                errors.append(
                    DefinitionError(
                        f"zone '{zone_name}' references unknown node '{node_name}'",
                        rule="zone_nodes_exist",
                    )
                )
        if not 0 <= zd.stickiness <= MAX_STICKINESS:
            errors.append(
                DefinitionError(
                    f"zone '{zone_name}' stickiness {zd.stickiness} "
                    f"outside 0..{MAX_STICKINESS}",
                    rule="zone_stickiness",
                )
            )
        _check_element(zd.element, errors)

    if definition.start in node_set:
        _check_reachability(definition, errors)

    return errors


def has_errors(findings: list[DefinitionError]) -> bool:
    """Return True if any finding is at error level."""
    return any(f.level == ValidationLevel.ERROR for f in findings)


def _check_reachability(definition: PipelineDef, errors: list[DefinitionError]) -> None:
    """Warn about nodes unreachable from the start node."""
    adj: dict[str, list[str]] = {}
    for ed in definition.edges:
        adj.setdefault(ed.source, []).append(ed.target)

    reachable: set[str] = set()
    queue: deque[str] = deque([definition.start])
    while queue:
        current = queue.popleft()
        if current in reachable:
            continue
        reachable.add(current)
        queue.extend(n for n in adj.get(current, []) if n not in reachable)

    for nd in definition.nodes:
        if nd.name and nd.name not in reachable:
            errors.append(
                DefinitionError(
                    "node is unreachable from start",
                    level=ValidationLevel.WARNING,
                    rule="reachability",
                    node_name=nd.name,
                )
            )


def _check_element(
    value: str, errors: list[DefinitionError], node_name: str | None = None
) -> None:
    try:
        Element.parse(value)
    except ValueError as exc:
        errors.append(
            DefinitionError(
                str(exc),
                level=ValidationLevel.WARNING,
                rule="element",
                node_name=node_name,
            )
        )
