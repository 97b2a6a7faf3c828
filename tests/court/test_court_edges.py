"""Tests for the heuristic court edges."""

import pytest

from trellis.court.artifacts import (
    DefenseBrief,
    EvidenceChallenge,
    HearingRecord,
    HearingRound,
    Indictment,
    RemandFeedback,
    Verdict,
    VerdictDecision,
)
from trellis.court.config import CourtConfig
from trellis.court.edges import (
    DISPOSITION_KEY,
    FAST_TRACK_KEY,
    HANDOFFS_COUNTER,
    REMAND_FEEDBACK_KEY,
    HeuristicEdge,
    build_court_edge_factory,
    is_fast_tracked,
)
from trellis.framework.dsl import EdgeDef
from trellis.framework.models import Edge
from trellis.framework.state import WalkerState

_WIRING = {
    "HD1": ("indict", "defend"),
    "HD2": ("defend", "verdict"),
    "HD3": ("defend", "hearing"),
    "HD4": ("defend", "hearing"),
    "HD5": ("hearing", "verdict"),
    "HD6": ("verdict", "_done"),
    "HD7": ("verdict", "_done"),
    "HD8": ("verdict", "indict"),
    "HD9": ("verdict", "_done"),
    "HD10": ("defend", "_done"),
    "HD11": ("verdict", "_done"),
    "HD12": ("verdict", "_done"),
}


def _edge(edge_id: str, cfg: CourtConfig | None = None) -> HeuristicEdge:
    source, target = _WIRING[edge_id]
    factory = build_court_edge_factory(cfg or CourtConfig(enabled=True))
    return factory[edge_id](EdgeDef(edge_id, source=source, target=target))


def _brief(**kwargs) -> DefenseBrief:
    return DefenseBrief(**kwargs)


def _verdict(decision: VerdictDecision, **kwargs) -> Verdict:
    return Verdict(decision=decision, **kwargs)


class TestEdgeFactory:
    def test_covers_all_heuristics(self) -> None:
        factory = build_court_edge_factory(CourtConfig())
        assert sorted(factory, key=lambda k: int(k[2:])) == [f"HD{i}" for i in range(1, 13)]

    def test_edges_satisfy_protocol(self) -> None:
        edge = _edge("HD8")
        assert isinstance(edge, Edge)
        assert edge.id == "HD8"
        assert edge.source == "verdict"
        assert edge.target == "indict"


class TestFastTrack:
    def test_high_confidence_indictment(self) -> None:
        state = WalkerState(id="w")
        transition = _edge("HD1").evaluate(Indictment("product_bug", confidence=0.95), state)
        assert transition.next_node == "defend"
        assert transition.context_additions == {FAST_TRACK_KEY: True}

    def test_lower_confidence_declines(self) -> None:
        indictment = Indictment("product_bug", confidence=0.94)
        assert _edge("HD1").evaluate(indictment, WalkerState(id="w")) is None

    def test_wrong_artifact_declines(self) -> None:
        assert _edge("HD1").evaluate(_brief(), WalkerState(id="w")) is None
        assert _edge("HD1").evaluate(None, WalkerState(id="w")) is None


class TestDefenseRouting:
    def test_plea_deal(self) -> None:
        transition = _edge("HD2").evaluate(_brief(plea_deal=True), WalkerState(id="w"))
        assert transition.next_node == "verdict"
        assert _edge("HD2").evaluate(_brief(), WalkerState(id="w")) is None

    def test_challenges_go_to_hearing(self) -> None:
        brief = _brief(challenges=[EvidenceChallenge(0, "stale trace")])
        transition = _edge("HD3").evaluate(brief, WalkerState(id="w"))
        assert transition.next_node == "hearing"

    def test_alternative_goes_to_hearing(self) -> None:
        brief = _brief(alternative_hypothesis="infra flake")
        transition = _edge("HD4").evaluate(brief, WalkerState(id="w"))
        assert "infra flake" in transition.explanation

    @pytest.mark.parametrize("edge_id", ["HD3", "HD4"])
    def test_fast_track_skips_hearing(self, edge_id: str) -> None:
        state = WalkerState(id="w", context={FAST_TRACK_KEY: True})
        brief = _brief(
            challenges=[EvidenceChallenge(0, "stale trace")],
            alternative_hypothesis="infra flake",
        )
        assert is_fast_tracked(state)
        assert _edge(edge_id).evaluate(brief, state) is None


class TestHearingClosed:
    def test_converged(self) -> None:
        record = HearingRecord(rounds=[HearingRound(1)], max_rounds=3, converged=True)
        transition = _edge("HD5").evaluate(record, WalkerState(id="w"))
        assert transition.explanation == "hearing converged"

    def test_round_cap(self) -> None:
        record = HearingRecord(rounds=[HearingRound(1), HearingRound(2)], max_rounds=2)
        assert _edge("HD5").evaluate(record, WalkerState(id="w")) is not None

    def test_config_cap_when_record_has_none(self) -> None:
        cfg = CourtConfig(enabled=True, max_hearing_rounds=1)
        record = HearingRecord(rounds=[HearingRound(1)])
        assert _edge("HD5", cfg).evaluate(record, WalkerState(id="w")) is not None

    def test_open_hearing_declines(self) -> None:
        record = HearingRecord(rounds=[HearingRound(1)], max_rounds=3)
        assert _edge("HD5").evaluate(record, WalkerState(id="w")) is None


class TestVerdictRouting:
    @pytest.mark.parametrize(
        "edge_id,decision",
        [
            ("HD6", VerdictDecision.AFFIRM),
            ("HD7", VerdictDecision.AMEND),
            ("HD9", VerdictDecision.ACQUIT),
            ("HD12", VerdictDecision.MISTRIAL),
        ],
    )
    def test_terminal_decisions(self, edge_id: str, decision: VerdictDecision) -> None:
        transition = _edge(edge_id).evaluate(_verdict(decision), WalkerState(id="w"))
        assert transition.next_node == "_done"
        assert transition.context_additions == {DISPOSITION_KEY: decision.value}

    def test_terminal_edge_ignores_other_decisions(self) -> None:
        verdict = _verdict(VerdictDecision.AMEND)
        assert _edge("HD6").evaluate(verdict, WalkerState(id="w")) is None

    def test_remand_within_budget(self) -> None:
        state = WalkerState(id="w", context={FAST_TRACK_KEY: True})
        feedback = RemandFeedback(challenged_evidence=[1], specific_questions=["why?"])
        verdict = _verdict(VerdictDecision.REMAND, remand_feedback=feedback)
        transition = _edge("HD8").evaluate(verdict, state)
        assert transition.next_node == "indict"
        assert transition.context_additions == {
            FAST_TRACK_KEY: False,
            REMAND_FEEDBACK_KEY: feedback.to_dict(),
        }
        assert state.loop_count("verdict") == 1

    def test_remand_budget_exhausted(self) -> None:
        cfg = CourtConfig(enabled=True, max_remands=2)
        state = WalkerState(id="w")
        verdict = _verdict(VerdictDecision.REMAND)
        edge = _edge("HD8", cfg)
        assert edge.evaluate(verdict, state) is not None
        assert edge.evaluate(verdict, state) is not None
        assert edge.evaluate(verdict, state) is None
        assert state.loop_count("verdict") == 2

    def test_remand_without_feedback(self) -> None:
        transition = _edge("HD8").evaluate(_verdict(VerdictDecision.REMAND), WalkerState(id="w"))
        assert transition.context_additions[REMAND_FEEDBACK_KEY] is None


class TestHandoffLimit:
    def test_defense_limit(self) -> None:
        cfg = CourtConfig(enabled=True, max_handoffs=3)
        state = WalkerState(id="w", loop_counts={HANDOFFS_COUNTER: 3})
        transition = _edge("HD10", cfg).evaluate(_brief(), state)
        assert transition.next_node == "_done"
        assert transition.context_additions == {DISPOSITION_KEY: "mistrial"}

    def test_verdict_limit(self) -> None:
        cfg = CourtConfig(enabled=True, max_handoffs=3)
        state = WalkerState(id="w", loop_counts={HANDOFFS_COUNTER: 4})
        assert _edge("HD11", cfg).evaluate(_verdict(VerdictDecision.AFFIRM), state) is not None

    def test_below_limit_declines(self) -> None:
        cfg = CourtConfig(enabled=True, max_handoffs=3)
        state = WalkerState(id="w", loop_counts={HANDOFFS_COUNTER: 2})
        assert _edge("HD10", cfg).evaluate(_brief(), state) is None
        assert _edge("HD11", cfg).evaluate(_verdict(VerdictDecision.AFFIRM), state) is None

    def test_limit_checks_artifact_type(self) -> None:
        cfg = CourtConfig(enabled=True, max_handoffs=1)
        state = WalkerState(id="w", loop_counts={HANDOFFS_COUNTER: 5})
        assert _edge("HD10", cfg).evaluate(_verdict(VerdictDecision.AFFIRM), state) is None
        assert _edge("HD11", cfg).evaluate(_brief(), state) is None
