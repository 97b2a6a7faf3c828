"""Dialectic: the court machinery under thesis/antithesis/synthesis wording.

A thesis-holder states the upstream classification as a thesis, an
antithesis-holder contradicts it and an arbiter synthesizes.  Stages,
edges and bounds are the court's; only the wording, the node names of
the bundled ``defect-dialectic`` document and the responder payload keys
differ.  Payloads use dialectic keys (``thesis_narrative``,
``concession``, ``thesis_argument``, ``antithesis_rebuttal``,
``arbiter_notes``, ``negation_feedback``, ``dialectic_gaps``) and
synthesis decisions (``unresolved`` in place of ``mistrial``).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields
from typing import Any

from trellis.court.artifacts import (
    CourtEvidenceGap,
    DefenseBrief,
    HearingRecord,
    Indictment,
    VerdictDecision,
)
from trellis.court.config import CourtConfig
from trellis.court.hearing import hearing_loop
from trellis.court.responder import Responder
from trellis.court.runner import load_bundled_pipeline, run_court
from trellis.court.vocabulary import (
    DEFEND,
    DISCOVER,
    HEARING,
    INDICT,
    VERDICT,
    StageVocabulary,
)
from trellis.framework.dsl import PipelineDef
from trellis.framework.evidence_gap import EvidenceGapBrief
from trellis.framework.events import WalkEventEmitter
from trellis.framework.state import WalkerState

DIALECTIC_PIPELINE = "defect-dialectic.yaml"


class SynthesisDecision(str, enum.Enum):
    """Outcome of a dialectic run."""

    AFFIRM = "affirm"
    AMEND = "amend"
    ACQUIT = "acquit"
    REMAND = "remand"
    UNRESOLVED = "unresolved"

    @classmethod
    def from_verdict(cls, decision: VerdictDecision) -> SynthesisDecision:
        if decision is VerdictDecision.MISTRIAL:
            return cls.UNRESOLVED
        return cls(decision.value)


@dataclass
class DialecticConfig:
    """Activation band and bounds of the dialectic.

    Attributes:
        enabled: Master switch.
        ttl: Wall-clock budget for one run, in seconds.
        max_turns: Stage visits before the dialectic is declared unresolved.
        max_negations: Negation cycles allowed before a negation is final.
        contradiction_floor: Lowest upstream confidence that triggers review.
        contradiction_threshold: Upstream confidence at or above which no
            antithesis is needed.
        max_rounds: Round cap for each dialectic exchange.
    """

    enabled: bool = False
    ttl: float = 600.0
    max_turns: int = 6
    max_negations: int = 2
    contradiction_floor: float = 0.50
    contradiction_threshold: float = 0.85
    max_rounds: int = 3

    def needs_antithesis(self, confidence: float) -> bool:
        return self.to_court_config().should_activate(confidence)

    def to_court_config(self) -> CourtConfig:
        return CourtConfig(
            enabled=self.enabled,
            ttl=self.ttl,
            max_handoffs=self.max_turns,
            max_remands=self.max_negations,
            activation_floor=self.contradiction_floor,
            activation_threshold=self.contradiction_threshold,
            max_hearing_rounds=self.max_rounds,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DialecticConfig:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class DialecticResult:
    """Outcome of one dialectic run; mirrors :class:`~trellis.court.runner.CourtResult`."""

    activated: bool
    original_classification: str = ""
    decision: SynthesisDecision | None = None
    final_classification: str = ""
    flipped: bool = False
    negation_count: int = 0
    rounds: int = 0
    turns: int = 0
    reasoning: str = ""
    gaps: list[CourtEvidenceGap] = field(default_factory=list)
    gap_brief: EvidenceGapBrief | None = None
    state: WalkerState | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "activated": self.activated,
            "flipped": self.flipped,
            "negation_count": self.negation_count,
            "rounds": self.rounds,
            "turns": self.turns,
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


DIALECTIC_VOCABULARY = StageVocabulary(
    label="dialectic",
    roles={
        INDICT: (
            "Role: Thesis-holder (Challenger). Examine the upstream evidence and "
            "produce a ThesisChallenge with charged defect type, thesis "
            "narrative, and itemized evidence with weights."
        ),
        DISCOVER: (
            "Role: Discovery. Identify additional evidence sources not "
            "examined by thesis-holder."
        ),
        DEFEND: (
            "Role: Antithesis-holder (Abyss). Challenge the thesis-holder's "
            "evidence, propose alternative hypotheses, or concede if the "
            "evidence is overwhelming."
        ),
        HEARING: (
            "Role: Arbiter (Bulwark). Evaluate thesis and antithesis arguments. "
            "Produce dialectic notes and determine if the dialectic has converged."
        ),
        VERDICT: (
            "Role: Arbiter (Specter). Render final synthesis: affirm, amend, "
            "acquit, remand, or unresolved. Include reasoning and confidence."
        ),
    },
    round_title="Dialectic",
    charge_label="Thesis charge",
    defense_label="Antithesis position",
    round_instruction=(
        "Produce a dialectic round: thesis argument, antithesis rebuttal, "
        "arbiter notes, and whether the dialectic has converged. Output JSON "
        "with fields: thesis_argument, antithesis_rebuttal, arbiter_notes, "
        "converged (bool)."
    ),
    field_aliases={
        "thesis_narrative": "prosecution_narrative",
        "concession": "plea_deal",
        "thesis_argument": "prosecution_argument",
        "antithesis_rebuttal": "defense_rebuttal",
        "arbiter_notes": "judge_notes",
        "negation_feedback": "remand_feedback",
        "dialectic_gaps": "evidence_gaps",
    },
    decision_aliases={"unresolved": VerdictDecision.MISTRIAL.value},
)


def load_dialectic_pipeline() -> PipelineDef:
    return load_bundled_pipeline(DIALECTIC_PIPELINE)


async def run_dialectic(
    config: DialecticConfig,
    case_id: str,
    confidence: float,
    classification: str,
    responder: Responder,
    *,
    event_emitter: WalkEventEmitter | None = None,
) -> DialecticResult:
    """Run the dialectic for one case.

    Responder steps are the node names of the dialectic document:
    ``thesis``, ``evidence``, ``antithesis``, ``dialectic`` and
    ``synthesis``.
    """
    result = await run_court(
        config.to_court_config(),
        case_id,
        confidence,
        classification,
        responder,
        definition=load_dialectic_pipeline(),
        vocabulary=DIALECTIC_VOCABULARY,
        event_emitter=event_emitter,
    )
    if not result.activated:
        return DialecticResult(activated=False)

    return DialecticResult(
        activated=True,
        original_classification=result.original_classification,
        decision=SynthesisDecision.from_verdict(result.decision),
        final_classification=result.final_classification,
        flipped=result.flipped,
        negation_count=result.remand_count,
        rounds=result.rounds,
        turns=result.handoffs,
        reasoning=result.reasoning,
        gaps=result.gaps,
        gap_brief=result.gap_brief,
        state=result.state,
    )


async def dialectic_loop(
    responder: Responder,
    case_id: str,
    thesis: Indictment | None,
    antithesis: DefenseBrief | None,
    max_rounds: int,
) -> HearingRecord:
    """Freestanding dialectic rounds; see :func:`~trellis.court.hearing.hearing_loop`."""
    return await hearing_loop(
        responder,
        case_id,
        thesis,
        antithesis,
        max_rounds,
        step="dialectic",
        vocabulary=DIALECTIC_VOCABULARY,
    )
