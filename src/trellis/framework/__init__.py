"""Trellis framework - graph-based agent pipeline orchestration.

Pipelines are directed graphs of named nodes connected by conditional
edges.  A pluggable walker turns each node into an artifact; the first
outgoing edge that accepts the artifact decides where the walk goes
next.  Pipelines can be declared in YAML and built against registries of
node and edge factories.
"""

from trellis.framework.dsl import (
    DefinitionError,
    EdgeDef,
    NodeDef,
    PassthroughEdge,
    PipelineDef,
    PipelineValidationError,
    ValidationLevel,
    ZoneDef,
    has_errors,
    load_pipeline,
    load_pipeline_file,
    validate_pipeline_def,
)
from trellis.framework.errors import (
    AdversarialContentError,
    EdgeEvaluationError,
    FrameworkError,
    MalformedResponseError,
    MaskNotApplicableError,
    MaxStepsExceededError,
    MissingMaskError,
    MissingNodeFactoryError,
    NodeExecutionError,
    NodeNotFoundError,
    NoMatchingEdgeError,
    PipelineParseError,
    WalkCancelledError,
    WalkError,
)
from trellis.framework.events import WalkEvent, WalkEventEmitter, WalkEventType
from trellis.framework.evidence_gap import (
    EvidenceGap,
    EvidenceGapBrief,
    GapBriefThreshold,
    GapSeverity,
)
from trellis.framework.graph import DEFAULT_DONE_NODE, Graph
from trellis.framework.identity import (
    AgentIdentity,
    Alignment,
    CycleRule,
    CycleType,
    Element,
    ElementTraits,
    challenged_by,
    challenges,
    destructive_cycle,
    generative_cycle,
    next_generative,
)
from trellis.framework.mask import Mask, MaskedNode, MetaMask, equip_mask, equip_masks
from trellis.framework.models import (
    Artifact,
    BasicArtifact,
    Edge,
    Node,
    NodeContext,
    Transition,
    Zone,
)
from trellis.framework.narrate import NarrationObserver, Progress
from trellis.framework.render import render_dot, render_mermaid
from trellis.framework.state import StepRecord, WalkerState, WalkStatus
from trellis.framework.walker import ProcessWalker, Walker

__all__ = [
    "DEFAULT_DONE_NODE",
    "AdversarialContentError",
    "AgentIdentity",
    "Alignment",
    "Artifact",
    "BasicArtifact",
    "CycleRule",
    "CycleType",
    "DefinitionError",
    "Edge",
    "EdgeDef",
    "EdgeEvaluationError",
    "Element",
    "ElementTraits",
    "EvidenceGap",
    "EvidenceGapBrief",
    "FrameworkError",
    "GapBriefThreshold",
    "GapSeverity",
    "Graph",
    "MalformedResponseError",
    "Mask",
    "MaskNotApplicableError",
    "MaskedNode",
    "MaxStepsExceededError",
    "MetaMask",
    "MissingMaskError",
    "MissingNodeFactoryError",
    "NarrationObserver",
    "Node",
    "NodeContext",
    "NodeDef",
    "NodeExecutionError",
    "NodeNotFoundError",
    "NoMatchingEdgeError",
    "PassthroughEdge",
    "PipelineDef",
    "PipelineParseError",
    "PipelineValidationError",
    "ProcessWalker",
    "Progress",
    "StepRecord",
    "Transition",
    "ValidationLevel",
    "WalkCancelledError",
    "WalkError",
    "WalkEvent",
    "WalkEventEmitter",
    "WalkEventType",
    "WalkStatus",
    "Walker",
    "WalkerState",
    "Zone",
    "ZoneDef",
    "challenged_by",
    "challenges",
    "destructive_cycle",
    "equip_mask",
    "equip_masks",
    "generative_cycle",
    "has_errors",
    "load_pipeline",
    "load_pipeline_file",
    "next_generative",
    "render_dot",
    "render_mermaid",
    "validate_pipeline_def",
]
