"""Typed artifacts produced by the court stages.

Each stage of the adversarial review emits one artifact:

- ``indict``   -> :class:`Indictment`
- ``discover`` -> :class:`DiscoveryReport`
- ``defend``   -> :class:`DefenseBrief`
- ``hearing``  -> :class:`HearingRecord`
- ``verdict``  -> :class:`Verdict`

Responders return JSON; every artifact has a ``from_dict`` constructor
that raises :class:`~trellis.framework.errors.MalformedResponseError`
when the payload does not have the expected shape.
"""

from __future__ import annotations

import enum
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from trellis.framework.errors import MalformedResponseError
from trellis.framework.evidence_gap import EvidenceGap

INDICTMENT = "indictment"
DISCOVERY_REPORT = "discovery_report"
DEFENSE_BRIEF = "defense_brief"
HEARING_RECORD = "hearing_record"
HEARING_ROUND = "hearing_round"
VERDICT = "verdict"


class VerdictDecision(str, enum.Enum):
    """Outcome of a court run."""

    AFFIRM = "affirm"
    AMEND = "amend"
    ACQUIT = "acquit"
    REMAND = "remand"
    MISTRIAL = "mistrial"


def parse_json(raw: str | bytes | Mapping[str, Any], artifact_type: str) -> Mapping[str, Any]:
    """Decode a responder payload into a mapping.

    Already-decoded mappings are returned unchanged.

    Raises:
        MalformedResponseError: If the payload is not a JSON object.
    """
    if isinstance(raw, Mapping):
        return raw
    if not isinstance(raw, (str, bytes)):
        raise MalformedResponseError(
            artifact_type, f"expected JSON text, got {type(raw).__name__}"
        )
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(artifact_type, f"invalid JSON: {exc}") from exc
    if not isinstance(data, Mapping):
        raise MalformedResponseError(artifact_type, "expected a JSON object")
    return data


# ---------------------------------------------------------------------------
# Field readers
# ---------------------------------------------------------------------------


def _mapping(data: Any, artifact_type: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise MalformedResponseError(artifact_type, "expected a mapping")
    return data


def _str(data: Mapping[str, Any], key: str, artifact_type: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedResponseError(artifact_type, f"'{key}' must be a string")
    return value


def _bool(data: Mapping[str, Any], key: str, artifact_type: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise MalformedResponseError(artifact_type, f"'{key}' must be a boolean")
    return value


def _number(data: Mapping[str, Any], key: str, artifact_type: str) -> float:
    value = data.get(key, 0.0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedResponseError(artifact_type, f"'{key}' must be a number")
    return float(value)


def _confidence(data: Mapping[str, Any], artifact_type: str) -> float:
    value = _number(data, "confidence", artifact_type)
    if not 0.0 <= value <= 1.0:
        raise MalformedResponseError(
            artifact_type, f"confidence {value} outside 0.0-1.0"
        )
    return value


def _list(data: Mapping[str, Any], key: str, artifact_type: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedResponseError(artifact_type, f"'{key}' must be a list")
    return value


def _gaps(data: Mapping[str, Any], key: str, artifact_type: str) -> list[CourtEvidenceGap]:
    gaps = []
    for item in _list(data, key, artifact_type):
        item = _mapping(item, artifact_type)
        try:
            gap = EvidenceGap.from_dict(item)
        except ValueError as exc:
            raise MalformedResponseError(artifact_type, f"'{key}': {exc}") from exc
        phase = item.get("court_phase") or artifact_type
        gaps.append(CourtEvidenceGap(**vars(gap), court_phase=str(phase)))
    return gaps


# ---------------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------------


@dataclass
class EvidenceItem:
    """A single piece of evidence with an assigned weight."""

    description: str
    source: str = ""
    weight: float = 0.0

    @classmethod
    def from_dict(cls, data: Any) -> EvidenceItem:
        data = _mapping(data, "evidence item")
        return cls(
            description=_str(data, "description", "evidence item"),
            source=_str(data, "source", "evidence item"),
            weight=_number(data, "weight", "evidence item"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"description": self.description, "source": self.source, "weight": self.weight}


@dataclass
class Indictment:
    """Prosecution artifact: the charged classification and its evidence.

    Attributes:
        charged_classification: The classification the prosecution argues for.
        narrative: Prosecution narrative tying the evidence together.
        evidence: Itemized, weighted evidence.
        confidence: Prosecution confidence, 0.0-1.0.
    """

    charged_classification: str
    narrative: str = ""
    evidence: list[EvidenceItem] = field(default_factory=list)
    confidence: float = 0.0

    @property
    def type(self) -> str:
        return INDICTMENT

    @property
    def raw(self) -> dict[str, Any]:
        return self.to_dict()

    @classmethod
    def from_dict(cls, data: Any) -> Indictment:
        data = _mapping(data, INDICTMENT)
        charged = _str(data, "charged_defect_type", INDICTMENT)
        if not charged:
            raise MalformedResponseError(INDICTMENT, "'charged_defect_type' is required")
        return cls(
            charged_classification=charged,
            narrative=_str(data, "prosecution_narrative", INDICTMENT),
            evidence=[EvidenceItem.from_dict(e) for e in _list(data, "evidence", INDICTMENT)],
            confidence=_confidence(data, INDICTMENT),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "charged_defect_type": self.charged_classification,
            "prosecution_narrative": self.narrative,
            "evidence": [e.to_dict() for e in self.evidence],
            "confidence": self.confidence,
        }


@dataclass
class DiscoveryReport:
    """Discovery artifact: evidence sources the prosecution did not examine."""

    sources: list[str] = field(default_factory=list)
    evidence: list[EvidenceItem] = field(default_factory=list)
    summary: str = ""
    confidence: float = 0.0

    @property
    def type(self) -> str:
        return DISCOVERY_REPORT

    @property
    def raw(self) -> dict[str, Any]:
        return self.to_dict()

    @classmethod
    def from_dict(cls, data: Any) -> DiscoveryReport:
        data = _mapping(data, DISCOVERY_REPORT)
        sources = _list(data, "sources", DISCOVERY_REPORT)
        if not all(isinstance(s, str) for s in sources):
            raise MalformedResponseError(DISCOVERY_REPORT, "'sources' must be strings")
        return cls(
            sources=list(sources),
            evidence=[
                EvidenceItem.from_dict(e) for e in _list(data, "evidence", DISCOVERY_REPORT)
            ],
            summary=_str(data, "summary", DISCOVERY_REPORT),
            confidence=_confidence(data, DISCOVERY_REPORT),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sources": list(self.sources),
            "evidence": [e.to_dict() for e in self.evidence],
            "summary": self.summary,
            "confidence": self.confidence,
        }


@dataclass
class EvidenceChallenge:
    """A challenge to one indictment evidence item."""

    evidence_index: int
    challenge: str = ""
    severity: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> EvidenceChallenge:
        data = _mapping(data, "evidence challenge")
        index = data.get("evidence_index", 0)
        if isinstance(index, bool) or not isinstance(index, int):
            raise MalformedResponseError(
                "evidence challenge", "'evidence_index' must be an integer"
            )
        return cls(
            evidence_index=index,
            challenge=_str(data, "challenge", "evidence challenge"),
            severity=_str(data, "severity", "evidence challenge"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "evidence_index": self.evidence_index,
            "challenge": self.challenge,
            "severity": self.severity,
        }


@dataclass
class DefenseBrief:
    """Defense artifact: evidence challenges, an alternative, or a plea deal."""

    challenges: list[EvidenceChallenge] = field(default_factory=list)
    alternative_hypothesis: str = ""
    plea_deal: bool = False
    confidence: float = 0.0

    @property
    def type(self) -> str:
        return DEFENSE_BRIEF

    @property
    def raw(self) -> dict[str, Any]:
        return self.to_dict()

    @classmethod
    def from_dict(cls, data: Any) -> DefenseBrief:
        data = _mapping(data, DEFENSE_BRIEF)
        return cls(
            challenges=[
                EvidenceChallenge.from_dict(c)
                for c in _list(data, "challenges", DEFENSE_BRIEF)
            ],
            alternative_hypothesis=_str(data, "alternative_hypothesis", DEFENSE_BRIEF),
            plea_deal=_bool(data, "plea_deal", DEFENSE_BRIEF),
            confidence=_confidence(data, DEFENSE_BRIEF),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "challenges": [c.to_dict() for c in self.challenges],
            "plea_deal": self.plea_deal,
            "confidence": self.confidence,
        }
        if self.alternative_hypothesis:
            data["alternative_hypothesis"] = self.alternative_hypothesis
        return data


@dataclass
class HearingRound:
    """One round of prosecution argument, defense rebuttal and judge notes."""

    round: int
    prosecution_argument: str = ""
    defense_rebuttal: str = ""
    judge_notes: str = ""

    @classmethod
    def from_dict(cls, data: Any, round_number: int | None = None) -> HearingRound:
        data = _mapping(data, HEARING_ROUND)
        number = round_number if round_number is not None else data.get("round", 0)
        if isinstance(number, bool) or not isinstance(number, int):
            raise MalformedResponseError(HEARING_ROUND, "'round' must be an integer")
        return cls(
            round=number,
            prosecution_argument=_str(data, "prosecution_argument", HEARING_ROUND),
            defense_rebuttal=_str(data, "defense_rebuttal", HEARING_ROUND),
            judge_notes=_str(data, "judge_notes", HEARING_ROUND),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round,
            "prosecution_argument": self.prosecution_argument,
            "defense_rebuttal": self.defense_rebuttal,
            "judge_notes": self.judge_notes,
        }


@dataclass
class HearingRecord:
    """Hearing artifact: ordered debate rounds, the round cap and convergence."""

    rounds: list[HearingRound] = field(default_factory=list)
    max_rounds: int = 0
    converged: bool = False

    @property
    def type(self) -> str:
        return HEARING_RECORD

    @property
    def confidence(self) -> float:
        return 0.0

    @property
    def raw(self) -> dict[str, Any]:
        return self.to_dict()

    @classmethod
    def from_dict(cls, data: Any) -> HearingRecord:
        data = _mapping(data, HEARING_RECORD)
        max_rounds = data.get("max_rounds", 0)
        if isinstance(max_rounds, bool) or not isinstance(max_rounds, int):
            raise MalformedResponseError(HEARING_RECORD, "'max_rounds' must be an integer")
        return cls(
            rounds=[HearingRound.from_dict(r) for r in _list(data, "rounds", HEARING_RECORD)],
            max_rounds=max_rounds,
            converged=_bool(data, "converged", HEARING_RECORD),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rounds": [r.to_dict() for r in self.rounds],
            "max_rounds": self.max_rounds,
            "converged": self.converged,
        }


@dataclass
class CourtEvidenceGap(EvidenceGap):
    """An evidence gap the court identified, tagged with the stage that found it."""

    court_phase: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.court_phase:
            data["court_phase"] = self.court_phase
        return data


@dataclass
class RemandFeedback:
    """Structured feedback sent back upstream with a remand verdict."""

    challenged_evidence: list[int] = field(default_factory=list)
    alternative_hypothesis: str = ""
    specific_questions: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> RemandFeedback:
        data = _mapping(data, "remand feedback")
        challenged = _list(data, "challenged_evidence", "remand feedback")
        if not all(isinstance(i, int) and not isinstance(i, bool) for i in challenged):
            raise MalformedResponseError(
                "remand feedback", "'challenged_evidence' must be integers"
            )
        questions = _list(data, "specific_questions", "remand feedback")
        if not all(isinstance(q, str) for q in questions):
            raise MalformedResponseError(
                "remand feedback", "'specific_questions' must be strings"
            )
        return cls(
            challenged_evidence=list(challenged),
            alternative_hypothesis=_str(data, "alternative_hypothesis", "remand feedback"),
            specific_questions=list(questions),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "challenged_evidence": list(self.challenged_evidence),
            "alternative_hypothesis": self.alternative_hypothesis,
            "specific_questions": list(self.specific_questions),
        }


@dataclass
class Verdict:
    """Final decision artifact of a court run."""

    decision: VerdictDecision
    final_classification: str = ""
    confidence: float = 0.0
    reasoning: str = ""
    remand_feedback: RemandFeedback | None = None
    gaps: list[CourtEvidenceGap] = field(default_factory=list)

    @property
    def type(self) -> str:
        return VERDICT

    @property
    def raw(self) -> dict[str, Any]:
        return self.to_dict()

    @classmethod
    def from_dict(cls, data: Any) -> Verdict:
        data = _mapping(data, VERDICT)
        decision = _str(data, "decision", VERDICT)
        try:
            parsed = VerdictDecision(decision.lower())
        except ValueError as exc:
            raise MalformedResponseError(
                VERDICT, f"unknown decision '{decision}'"
            ) from exc
        feedback = data.get("remand_feedback")
        return cls(
            decision=parsed,
            final_classification=_str(data, "final_classification", VERDICT),
            confidence=_confidence(data, VERDICT),
            reasoning=_str(data, "reasoning", VERDICT),
            remand_feedback=RemandFeedback.from_dict(feedback) if feedback is not None else None,
            gaps=_gaps(data, "evidence_gaps", VERDICT),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "decision": self.decision.value,
            "final_classification": self.final_classification,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }
        if self.remand_feedback is not None:
            data["remand_feedback"] = self.remand_feedback.to_dict()
        if self.gaps:
            data["evidence_gaps"] = [g.to_dict() for g in self.gaps]
        return data
