"""Evidence gaps: what a pipeline could not find.

When a walk ends without a confident conclusion, an
:class:`EvidenceGapBrief` records the missing evidence instead, so the
result reads "I don't know because X" rather than a low-confidence
guess.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

DEFAULT_GAP_MIN_CONFIDENCE = 0.50
DEFAULT_MAX_GAPS = 10


class GapSeverity(str, enum.Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class EvidenceGap:
    """A single missing piece of evidence.

    Attributes:
        description: What is missing.
        source: Where it would have come from.
        severity: Impact of the gap on the conclusion.
        suggested_action: How the gap could be closed.
    """

    description: str
    source: str = ""
    severity: GapSeverity = GapSeverity.MEDIUM
    suggested_action: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "description": self.description,
            "source": self.source,
            "severity": self.severity.value,
        }
        if self.suggested_action:
            data["suggested_action"] = self.suggested_action
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EvidenceGap:
        """Build a gap from its mapping form.

        Raises:
            ValueError: If the description is missing or the severity unknown.
        """
        description = data.get("description")
        if not isinstance(description, str) or not description:
            raise ValueError("evidence gap needs a description")
        return cls(
            description=description,
            source=str(data.get("source") or ""),
            severity=GapSeverity(str(data.get("severity") or GapSeverity.MEDIUM.value).lower()),
            suggested_action=str(data.get("suggested_action") or ""),
        )


@dataclass
class EvidenceGapBrief:
    """Artifact listing the gaps behind an inconclusive result."""

    case_id: str
    final_confidence: float
    gaps: list[EvidenceGap] = field(default_factory=list)
    summary: str = ""

    @property
    def type(self) -> str:
        return "evidence_gap_brief"

    @property
    def confidence(self) -> float:
        return self.final_confidence

    @property
    def raw(self) -> EvidenceGapBrief:
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "case_id": self.case_id,
            "final_confidence": self.final_confidence,
            "gaps": [g.to_dict() for g in self.gaps],
            "summary": self.summary,
        }


@dataclass(frozen=True)
class GapBriefThreshold:
    """When to produce an :class:`EvidenceGapBrief` and how many gaps it keeps."""

    min_confidence: float = DEFAULT_GAP_MIN_CONFIDENCE
    max_gaps: int = DEFAULT_MAX_GAPS

    def should_produce_gap_brief(self, confidence: float) -> bool:
        return confidence < self.min_confidence

    def build_brief(
        self,
        case_id: str,
        confidence: float,
        gaps: Iterable[EvidenceGap],
        summary: str = "",
    ) -> EvidenceGapBrief | None:
        """Return a brief for an inconclusive result, ``None`` otherwise.

        Gaps are ordered most severe first and capped at ``max_gaps``.
        """
        if not self.should_produce_gap_brief(confidence):
            return None
        order = list(GapSeverity)
        ranked = sorted(gaps, key=lambda g: order.index(g.severity))
        return EvidenceGapBrief(
            case_id=case_id,
            final_confidence=confidence,
            gaps=ranked[: self.max_gaps],
            summary=summary,
        )
