"""Adversarial review pipeline built on the trellis framework.

Five stages (indict, discover, defend, hearing, verdict) argue an
uncertain upstream classification and reach a disposition: affirm,
amend, acquit, remand or mistrial.  The dialectic variant runs the same
machinery under thesis/antithesis/synthesis wording.
"""

from trellis.court.artifacts import (
    CourtEvidenceGap,
    DefenseBrief,
    DiscoveryReport,
    EvidenceChallenge,
    EvidenceItem,
    HearingRecord,
    HearingRound,
    Indictment,
    RemandFeedback,
    Verdict,
    VerdictDecision,
)
from trellis.court.config import CourtConfig
from trellis.court.dialectic import (
    DialecticConfig,
    DialecticResult,
    SynthesisDecision,
    dialectic_loop,
    run_dialectic,
)
from trellis.court.edges import HeuristicEdge, build_court_edge_factory
from trellis.court.hearing import hearing_loop
from trellis.court.nodes import CourtSession, CourtStageNode, build_court_node_registry
from trellis.court.remand import (
    RemandFeedbackInjection,
    build_remand_injection,
    inject_remand_context,
)
from trellis.court.responder import Responder, ResponderError, ScriptedResponder
from trellis.court.runner import CourtResult, load_court_pipeline, run_court

__all__ = [
    "CourtConfig",
    "CourtEvidenceGap",
    "CourtResult",
    "CourtSession",
    "CourtStageNode",
    "DefenseBrief",
    "DialecticConfig",
    "DialecticResult",
    "DiscoveryReport",
    "EvidenceChallenge",
    "EvidenceItem",
    "HearingRecord",
    "HearingRound",
    "HeuristicEdge",
    "Indictment",
    "RemandFeedback",
    "RemandFeedbackInjection",
    "Responder",
    "ResponderError",
    "ScriptedResponder",
    "SynthesisDecision",
    "Verdict",
    "VerdictDecision",
    "build_court_edge_factory",
    "build_court_node_registry",
    "build_remand_injection",
    "dialectic_loop",
    "hearing_loop",
    "inject_remand_context",
    "load_court_pipeline",
    "run_court",
    "run_dialectic",
]
