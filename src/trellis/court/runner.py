"""Court runner: activation gating, graph walk and disposition.

:func:`run_court` decides whether a case needs adversarial review, walks
the bundled ``defect-court`` pipeline with a
:class:`~trellis.framework.walker.ProcessWalker` and reduces the result
to a :class:`CourtResult`.  The adversarial process always reaches a
disposition: malformed responder output, responder failures and an
expired TTL end the run in a mistrial.  Structural defects in the
pipeline (missing nodes, no matching edge) still propagate.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from importlib import resources
from typing import Any

from trellis.court.artifacts import CourtEvidenceGap, VerdictDecision
from trellis.court.config import CourtConfig
from trellis.court.edges import DISPOSITION_KEY, HANDOFFS_COUNTER, build_court_edge_factory
from trellis.court.nodes import CourtSession, build_court_node_registry
from trellis.court.remand import (
    RemandFeedbackInjection,
    build_remand_injection,
    inject_remand_context,
)
from trellis.court.responder import Responder, ResponderError
from trellis.court.vocabulary import COURT_VOCABULARY, VERDICT, StageVocabulary
from trellis.framework.dsl import PipelineDef, load_pipeline
from trellis.framework.errors import AdversarialContentError, NodeExecutionError
from trellis.framework.evidence_gap import EvidenceGapBrief, GapBriefThreshold
from trellis.framework.events import WalkEventEmitter
from trellis.framework.identity import AgentIdentity, Alignment
from trellis.framework.state import WalkerState
from trellis.framework.walker import ProcessWalker

__all__ = [
    "CourtResult",
    "RemandFeedbackInjection",
    "build_remand_injection",
    "inject_remand_context",
    "load_bundled_pipeline",
    "load_court_pipeline",
    "run_court",
]

logger = logging.getLogger(__name__)

COURT_PIPELINE = "defect-court.yaml"


@dataclass
class CourtResult:
    """Outcome of one court run.

    Attributes:
        activated: False when the case fell outside the activation band.
        original_classification: Upstream classification under review.
        decision: Final disposition; ``None`` when not activated.
        final_classification: Classification after review.
        flipped: The review changed the classification.
        remand_count: Remand cycles taken.
        rounds: Hearing rounds held.
        handoffs: Stage visits made.
        reasoning: Reasoning of the last verdict, if any.
        gaps: Evidence gaps the court named.
        gap_brief: Brief of the gaps when the run ended inconclusive.
        state: Walker state of the run, for audit.
    """

    activated: bool
    original_classification: str = ""
    decision: VerdictDecision | None = None
    final_classification: str = ""
    flipped: bool = False
    remand_count: int = 0
    rounds: int = 0
    handoffs: int = 0
    reasoning: str = ""
    gaps: list[CourtEvidenceGap] = field(default_factory=list)
    gap_brief: EvidenceGapBrief | None = None
    state: WalkerState | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "activated": self.activated,
            "flipped": self.flipped,
            "remand_count": self.remand_count,
            "rounds": self.rounds,
            "handoffs": self.handoffs,
        }
        if self.original_classification:
            data["original_classification"] = self.original_classification
        if self.decision is not None:
            data["decision"] = self.decision.value
        if self.final_classification:
            data["final_classification"] = self.final_classification
        if self.reasoning:
            data["reasoning"] = self.reasoning
        if self.gaps:
            data["gaps"] = [g.to_dict() for g in self.gaps]
        if self.gap_brief is not None:
            data["gap_brief"] = self.gap_brief.to_dict()
        return data


def load_bundled_pipeline(filename: str) -> PipelineDef:
    """Load a pipeline document shipped in ``trellis/court/pipelines``."""
    source = resources.files("trellis.court").joinpath("pipelines", filename)
    return load_pipeline(source.read_bytes())


def load_court_pipeline() -> PipelineDef:
    return load_bundled_pipeline(COURT_PIPELINE)


async def run_court(
    config: CourtConfig,
    case_id: str,
    confidence: float,
    classification: str,
    responder: Responder,
    *,
    definition: PipelineDef | None = None,
    vocabulary: StageVocabulary = COURT_VOCABULARY,
    event_emitter: WalkEventEmitter | None = None,
    gap_threshold: GapBriefThreshold | None = None,
) -> CourtResult:
    """Run the adversarial review for one case.

    Args:
        config: Activation band and bounds.
        case_id: Case under review.
        confidence: Upstream confidence in *classification*.
        classification: Upstream classification to challenge.
        responder: Produces every stage payload.
        definition: Pipeline to walk; the bundled court pipeline by default.
        vocabulary: Prompt wording and payload aliases.
        event_emitter: Receives walk events.
        gap_threshold: When the court's gaps become a brief; the
            default threshold when omitted.

    Returns:
        The run's :class:`CourtResult`.

    Raises:
        WalkError: The pipeline is structurally broken.
    """
    if not config.should_activate(confidence):
        logger.debug(
            "%s skipped for case %s (confidence %.2f)", vocabulary.label, case_id, confidence
        )
        return CourtResult(activated=False)

    logger.info(
        "%s activated for case %s (classification %s, confidence %.2f)",
        vocabulary.label,
        case_id,
        classification,
        confidence,
    )

    definition = definition or load_court_pipeline()
    session = CourtSession(
        case_id=case_id,
        classification=classification,
        confidence=confidence,
        responder=responder,
        config=config,
        vocabulary=vocabulary,
    )
    graph = definition.build_graph(
        build_court_node_registry(session),
        build_court_edge_factory(config),
        event_emitter=event_emitter,
    )
    state = WalkerState(id=f"{case_id}-{vocabulary.label}")
    walker = ProcessWalker(
        AgentIdentity(persona_name=state.id, alignment=Alignment.SHADOW), state
    )

    disposition: str | None = None
    try:
        walk = graph.walk(walker, definition.start)
        if config.ttl:
            await asyncio.wait_for(walk, timeout=config.ttl)
        else:
            await walk
        disposition = state.context.get(DISPOSITION_KEY)
    except NodeExecutionError as exc:
        if not isinstance(exc.__cause__, (AdversarialContentError, ResponderError)):
            raise
        logger.warning(
            "%s for case %s declared a mistrial at '%s': %s",
            vocabulary.label,
            case_id,
            exc.node_name,
            exc.__cause__,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "%s for case %s exceeded its TTL of %ss", vocabulary.label, case_id, config.ttl
        )

    decision = VerdictDecision(disposition) if disposition else VerdictDecision.MISTRIAL
    verdict = session.verdict

    final_classification = classification
    final_confidence = 0.0
    reasoning = ""
    if verdict is not None:
        reasoning = verdict.reasoning
        if decision is not VerdictDecision.MISTRIAL:
            final_confidence = verdict.confidence
            if verdict.final_classification:
                final_classification = verdict.final_classification

    gap_brief = None
    if session.gaps:
        gap_brief = (gap_threshold or GapBriefThreshold()).build_brief(
            case_id, final_confidence, session.gaps, summary=reasoning
        )

    result = CourtResult(
        activated=True,
        original_classification=classification,
        decision=decision,
        final_classification=final_classification,
        flipped=final_classification != classification,
        remand_count=state.loop_count(_stage_node(definition, VERDICT)),
        rounds=session.hearing_rounds,
        handoffs=state.loop_count(HANDOFFS_COUNTER),
        reasoning=reasoning,
        gaps=list(session.gaps),
        gap_brief=gap_brief,
        state=state,
    )

    logger.info(
        "%s complete for case %s: %s (flipped=%s, remands=%d)",
        vocabulary.label,
        case_id,
        decision.value,
        result.flipped,
        result.remand_count,
    )
    return result


def _stage_node(definition: PipelineDef, family: str) -> str:
    for nd in definition.nodes:
        if nd.family == family:
            return nd.name
    return family
