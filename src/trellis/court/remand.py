"""Remand feedback injection.

When a verdict remands a case, its structured feedback is carried back
to the start of the review (and to any upstream investigation) as extra
prompt context directing the next attempt at the challenged evidence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from trellis.court.artifacts import CourtEvidenceGap, DefenseBrief, Verdict, VerdictDecision
from trellis.framework.evidence_gap import EvidenceGap


@dataclass
class RemandFeedbackInjection:
    """Feedback extracted from a remand verdict for re-investigation."""

    case_id: str
    original_classification: str
    challenged_evidence: list[int] = field(default_factory=list)
    alternative_hypothesis: str = ""
    specific_questions: list[str] = field(default_factory=list)
    court_gaps: list[CourtEvidenceGap] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "case_id": self.case_id,
            "original_classification": self.original_classification,
            "challenged_evidence": list(self.challenged_evidence),
            "specific_questions": list(self.specific_questions),
        }
        if self.alternative_hypothesis:
            data["alternative_hypothesis"] = self.alternative_hypothesis
        if self.court_gaps:
            data["court_gaps"] = [g.to_dict() for g in self.court_gaps]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemandFeedbackInjection:
        return cls(
            case_id=data["case_id"],
            original_classification=data["original_classification"],
            challenged_evidence=list(data.get("challenged_evidence", [])),
            alternative_hypothesis=data.get("alternative_hypothesis", ""),
            specific_questions=list(data.get("specific_questions", [])),
            court_gaps=[
                CourtEvidenceGap(
                    **vars(EvidenceGap.from_dict(gap)), court_phase=gap.get("court_phase", "")
                )
                for gap in data.get("court_gaps", [])
            ],
        )


def build_remand_injection(
    case_id: str,
    verdict: Verdict | None,
    brief: DefenseBrief | None,
    original_classification: str,
) -> RemandFeedbackInjection | None:
    """Extract remand feedback from *verdict*.

    Returns ``None`` unless the verdict is a remand carrying feedback.
    The alternative hypothesis comes from the defense brief when one
    was filed, otherwise from the feedback itself.
    """
    if (
        verdict is None
        or verdict.decision != VerdictDecision.REMAND
        or verdict.remand_feedback is None
    ):
        return None

    feedback = verdict.remand_feedback
    alternative = feedback.alternative_hypothesis
    if brief is not None and brief.alternative_hypothesis:
        alternative = brief.alternative_hypothesis

    return RemandFeedbackInjection(
        case_id=case_id,
        original_classification=original_classification,
        challenged_evidence=list(feedback.challenged_evidence),
        alternative_hypothesis=alternative,
        specific_questions=list(feedback.specific_questions),
        court_gaps=list(verdict.gaps),
    )


def inject_remand_context(base_prompt: str, injection: RemandFeedbackInjection | None) -> str:
    """Append remand feedback to *base_prompt*; unchanged when *injection* is None."""
    if injection is None:
        return base_prompt

    lines = [
        "",
        "",
        "--- COURT REMAND FEEDBACK ---",
        f"The court has remanded case {injection.case_id} for reinvestigation.",
        f"Original classification: {injection.original_classification}",
    ]
    if injection.alternative_hypothesis:
        lines.append(f"Alternative hypothesis from defense: {injection.alternative_hypothesis}")
    if injection.challenged_evidence:
        lines.append("Challenged evidence indices (address these gaps):")
        lines.extend(f"  - Evidence item #{idx}" for idx in injection.challenged_evidence)
    if injection.specific_questions:
        lines.append("Specific questions from the court:")
        lines.extend(
            f"  {i}. {question}" for i, question in enumerate(injection.specific_questions, 1)
        )
    if injection.court_gaps:
        lines.append("Evidence gaps identified by the court:")
        lines.extend(_gap_line(gap) for gap in injection.court_gaps)
    lines.append("--- END COURT FEEDBACK ---")

    return base_prompt + "\n".join(lines) + "\n"


def _gap_line(gap: CourtEvidenceGap) -> str:
    line = f"  - [{gap.severity.value}] {gap.description}"
    if gap.source:
        line += f" (source: {gap.source})"
    if gap.suggested_action:
        line += f"; suggested action: {gap.suggested_action}"
    return line
