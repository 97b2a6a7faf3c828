"""Heuristic routing edges HD1-HD12 for the court pipeline.

Every edge declines (returns ``None``) when handed an artifact of a type
it does not route, so a stage's edges can be listed together and
evaluated first-match.  Edges transition to the target declared in the
pipeline document; the same evaluators therefore serve any document that
wires the five stages, whatever the nodes are called.

Walk-scoped bookkeeping lives in the walker state:

- ``loop_counts[<verdict node>]``: remand cycles taken (HD8).
- ``loop_counts["handoffs"]``: stage visits, incremented by the stage
  nodes and checked by HD10/HD11.  At the verdict stage HD11 is declared
  after the decision edges, so a terminal decision on the last allowed
  handoff stands and only a remand is cut short.
- ``context["court.fast_track"]``: set by HD1, cleared by a remand.
- ``context["court.disposition"]``: the terminal decision.
"""

from __future__ import annotations

import functools
from collections.abc import Callable

from trellis.court.artifacts import (
    DefenseBrief,
    HearingRecord,
    Indictment,
    Verdict,
    VerdictDecision,
)
from trellis.court.config import CourtConfig
from trellis.framework.dsl import EdgeDef, EdgeFactoryFn
from trellis.framework.models import Artifact, Transition
from trellis.framework.state import WalkerState

FAST_TRACK_KEY = "court.fast_track"
DISPOSITION_KEY = "court.disposition"
REMAND_FEEDBACK_KEY = "court.remand_feedback"
HANDOFFS_COUNTER = "handoffs"

FAST_TRACK_CONFIDENCE = 0.95

EdgeEvaluator = Callable[
    [EdgeDef, Artifact | None, WalkerState, CourtConfig], Transition | None
]


class HeuristicEdge:
    """An :class:`~trellis.framework.models.Edge` backed by an evaluator function."""

    def __init__(
        self, definition: EdgeDef, evaluator: EdgeEvaluator, config: CourtConfig
    ) -> None:
        self._def = definition
        self._evaluator = evaluator
        self._config = config

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

    def evaluate(self, artifact: Artifact | None, state: WalkerState) -> Transition | None:
        return self._evaluator(self._def, artifact, state, self._config)

    def __repr__(self) -> str:
        return f"HeuristicEdge({self.id}: {self.source} -> {self.target})"


def is_fast_tracked(state: WalkerState) -> bool:
    return bool(state.context.get(FAST_TRACK_KEY, False))


# ---------------------------------------------------------------------------
# Evaluators
# ---------------------------------------------------------------------------


def _fast_track(ed, artifact, state, cfg):
    if not isinstance(artifact, Indictment):
        return None
    if artifact.confidence < FAST_TRACK_CONFIDENCE:
        return None
    return Transition(
        next_node=ed.target,
        explanation=f"indictment confidence {artifact.confidence:.2f} >= {FAST_TRACK_CONFIDENCE}",
        context_additions={FAST_TRACK_KEY: True},
    )


def _plea_deal(ed, artifact, state, cfg):
    if not isinstance(artifact, DefenseBrief) or not artifact.plea_deal:
        return None
    return Transition(next_node=ed.target, explanation="defense accepted plea deal")


def _challenges(ed, artifact, state, cfg):
    if not isinstance(artifact, DefenseBrief) or not artifact.challenges:
        return None
    if is_fast_tracked(state):
        return None
    return Transition(
        next_node=ed.target,
        explanation=f"defense raised {len(artifact.challenges)} evidence challenge(s)",
    )


def _alternative(ed, artifact, state, cfg):
    if not isinstance(artifact, DefenseBrief) or not artifact.alternative_hypothesis:
        return None
    if is_fast_tracked(state):
        return None
    return Transition(
        next_node=ed.target,
        explanation=f"defense proposed alternative: {artifact.alternative_hypothesis}",
    )


def _hearing_done(ed, artifact, state, cfg):
    if not isinstance(artifact, HearingRecord):
        return None
    cap = artifact.max_rounds or cfg.max_hearing_rounds
    if artifact.converged:
        return Transition(next_node=ed.target, explanation="hearing converged")
    if len(artifact.rounds) >= cap:
        return Transition(
            next_node=ed.target,
            explanation=f"hearing reached round cap ({cap}) without convergence",
        )
    return None


def _decision(decision: VerdictDecision):
    def evaluate(ed, artifact, state, cfg):
        if not isinstance(artifact, Verdict) or artifact.decision != decision:
            return None
        return Transition(
            next_node=ed.target,
            explanation=f"verdict: {decision.value}",
            context_additions={DISPOSITION_KEY: decision.value},
        )

    return evaluate


def _remand(ed, artifact, state, cfg):
    if not isinstance(artifact, Verdict) or artifact.decision != VerdictDecision.REMAND:
        return None
    if state.loop_count(ed.source) >= cfg.max_remands:
        return None
    count = state.increment_loop(ed.source)
    feedback = artifact.remand_feedback.to_dict() if artifact.remand_feedback else None
    return Transition(
        next_node=ed.target,
        explanation=f"remand {count} of {cfg.max_remands}",
        context_additions={FAST_TRACK_KEY: False, REMAND_FEEDBACK_KEY: feedback},
    )


def _handoff_limit(artifact_type: type):
    def evaluate(ed, artifact, state, cfg):
        if not isinstance(artifact, artifact_type):
            return None
        handoffs = state.loop_count(HANDOFFS_COUNTER)
        if handoffs < cfg.max_handoffs:
            return None
        return Transition(
            next_node=ed.target,
            explanation=f"handoff limit reached ({handoffs} >= {cfg.max_handoffs})",
            context_additions={DISPOSITION_KEY: VerdictDecision.MISTRIAL.value},
        )

    return evaluate


_EVALUATORS: dict[str, EdgeEvaluator] = {
    "HD1": _fast_track,
    "HD2": _plea_deal,
    "HD3": _challenges,
    "HD4": _alternative,
    "HD5": _hearing_done,
    "HD6": _decision(VerdictDecision.AFFIRM),
    "HD7": _decision(VerdictDecision.AMEND),
    "HD8": _remand,
    "HD9": _decision(VerdictDecision.ACQUIT),
    "HD10": _handoff_limit(DefenseBrief),
    "HD11": _handoff_limit(Verdict),
    "HD12": _decision(VerdictDecision.MISTRIAL),
}


def build_court_edge_factory(cfg: CourtConfig) -> dict[str, EdgeFactoryFn]:
    """Return edge factories for HD1-HD12 bound to *cfg*."""
    return {
        edge_id: functools.partial(HeuristicEdge, evaluator=evaluator, config=cfg)
        for edge_id, evaluator in _EVALUATORS.items()
    }
