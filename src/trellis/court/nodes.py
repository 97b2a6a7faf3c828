"""Court stage nodes.

One :class:`CourtStageNode` class serves all five stages; the node's
``family`` selects the role prompt and the artifact parser.  Nodes of a
run share a :class:`CourtSession` holding the case under review, the
responder and the latest artifact of each stage.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from trellis.court.artifacts import (
    DEFENSE_BRIEF,
    DISCOVERY_REPORT,
    INDICTMENT,
    VERDICT as VERDICT_ARTIFACT,
    CourtEvidenceGap,
    DefenseBrief,
    DiscoveryReport,
    HearingRecord,
    Indictment,
    Verdict,
    parse_json,
)
from trellis.court.config import CourtConfig
from trellis.court.edges import HANDOFFS_COUNTER, REMAND_FEEDBACK_KEY
from trellis.court.hearing import hearing_loop
from trellis.court.remand import (
    RemandFeedbackInjection,
    build_remand_injection,
    inject_remand_context,
)
from trellis.court.responder import Responder
from trellis.court.vocabulary import (
    COURT_VOCABULARY,
    DEFEND,
    DISCOVER,
    HEARING,
    INDICT,
    STAGE_FAMILIES,
    VERDICT,
    StageVocabulary,
)
from trellis.framework.dsl import NodeDef, NodeFactory
from trellis.framework.identity import Element
from trellis.framework.models import Artifact, NodeContext

logger = logging.getLogger(__name__)

_PARSERS: dict[str, tuple[str, Callable[[Any], Artifact]]] = {
    INDICT: (INDICTMENT, Indictment.from_dict),
    DISCOVER: (DISCOVERY_REPORT, DiscoveryReport.from_dict),
    DEFEND: (DEFENSE_BRIEF, DefenseBrief.from_dict),
    VERDICT: (VERDICT_ARTIFACT, Verdict.from_dict),
}


@dataclass
class CourtSession:
    """Shared per-run state of the court stage nodes.

    Attributes:
        case_id: Case under review.
        classification: Upstream classification being challenged.
        confidence: Upstream confidence in that classification.
        responder: Produces every stage payload.
        config: Bounds for the run.
        vocabulary: Prompt wording and payload aliases.
        indictment: Latest indictment.
        discovery: Latest discovery report.
        brief: Latest defense brief.
        hearing: Latest hearing record.
        verdict: Latest verdict.
        hearing_rounds: Hearing rounds held across the run.
        gaps: Evidence gaps named by every verdict, without duplicates.
    """

    case_id: str
    classification: str
    confidence: float
    responder: Responder
    config: CourtConfig
    vocabulary: StageVocabulary = COURT_VOCABULARY
    indictment: Indictment | None = None
    discovery: DiscoveryReport | None = None
    brief: DefenseBrief | None = None
    hearing: HearingRecord | None = None
    verdict: Verdict | None = None
    hearing_rounds: int = 0
    gaps: list[CourtEvidenceGap] = field(default_factory=list)

    def record(self, artifact: Artifact) -> None:
        if isinstance(artifact, Indictment):
            self.indictment = artifact
        elif isinstance(artifact, DiscoveryReport):
            self.discovery = artifact
        elif isinstance(artifact, DefenseBrief):
            self.brief = artifact
        elif isinstance(artifact, HearingRecord):
            self.hearing = artifact
            self.hearing_rounds += len(artifact.rounds)
        elif isinstance(artifact, Verdict):
            self.verdict = artifact
            seen = {(g.description, g.source) for g in self.gaps}
            for gap in artifact.gaps:
                if (gap.description, gap.source) not in seen:
                    seen.add((gap.description, gap.source))
                    self.gaps.append(gap)


class CourtStageNode:
    """A court stage: prompts the responder and parses its artifact.

    Every visit counts one handoff in ``loop_counts["handoffs"]``.
    """

    def __init__(self, definition: NodeDef, session: CourtSession, family: str) -> None:
        if family not in STAGE_FAMILIES:
            raise ValueError(f"unknown court stage family '{family}'")
        self._name = definition.name
        self._element = Element.coerce(definition.element)
        self._family = family
        self._session = session

    @property
    def name(self) -> str:
        return self._name

    @property
    def element(self) -> Element | None:
        return self._element

    @property
    def family(self) -> str:
        return self._family

    async def process(self, nc: NodeContext) -> Artifact:
        session = self._session
        handoffs = nc.walker_state.increment_loop(HANDOFFS_COUNTER)
        logger.debug(
            "%s stage '%s' for case %s (handoff %d)",
            session.vocabulary.label,
            self._name,
            session.case_id,
            handoffs,
        )

        if self._family == HEARING:
            artifact: Artifact = await hearing_loop(
                session.responder,
                session.case_id,
                session.indictment,
                session.brief,
                session.config.max_hearing_rounds,
                step=self._name,
                vocabulary=session.vocabulary,
            )
        else:
            prompt = self.build_prompt(nc)
            raw = await session.responder.send_prompt(session.case_id, self._name, prompt)
            artifact_type, parse = _PARSERS[self._family]
            artifact = parse(session.vocabulary.normalize(parse_json(raw, artifact_type)))

        session.record(artifact)
        return artifact

    def build_prompt(self, nc: NodeContext) -> str:
        """Build the stage prompt from the case, prior artifact and role."""
        session = self._session
        vocabulary = session.vocabulary
        prompt = (
            f"Case: {session.case_id}\n"
            f"Upstream classification: {session.classification} "
            f"(confidence: {session.confidence:.2f})\n"
            f"{vocabulary.label.capitalize()} step: {self._name}\n"
        )

        if nc.prior_artifact is not None:
            prior = json.dumps(nc.prior_artifact.raw, indent=2, default=str)
            prompt += f"\nPrior {vocabulary.label} artifact:\n{prior}\n"

        prompt += "\n" + vocabulary.role_for(self._family)

        if self._family == INDICT:
            prompt = inject_remand_context(prompt, self._remand_injection(nc))
        return prompt

    def _remand_injection(self, nc: NodeContext) -> RemandFeedbackInjection | None:
        if not nc.walker_state.context.get(REMAND_FEEDBACK_KEY):
            return None
        session = self._session
        return build_remand_injection(
            session.case_id, session.verdict, session.brief, session.classification
        )

    def __repr__(self) -> str:
        return f"CourtStageNode({self._name}, family={self._family})"


def build_court_node_registry(session: CourtSession) -> dict[str, NodeFactory]:
    """Return node factories for the five stage families bound to *session*."""

    def factory_for(family: str) -> NodeFactory:
        def create(definition: NodeDef) -> CourtStageNode:
            return CourtStageNode(definition, session, family)

        return create

    return {family: factory_for(family) for family in STAGE_FAMILIES}
