"""Tests for the multi-round hearing loop."""

import pytest

from trellis.court.artifacts import DefenseBrief, HearingRecord, Indictment
from trellis.court.hearing import build_hearing_round_prompt, hearing_loop
from trellis.court.responder import ResponderError, ScriptedResponder
from trellis.framework.errors import MalformedResponseError


def _round(converged: bool, note: str = "noted") -> dict:
    return {
        "prosecution_argument": "the trace is conclusive",
        "defense_rebuttal": "the trace predates the fix",
        "judge_notes": note,
        "converged": converged,
    }


def _case() -> tuple[Indictment, DefenseBrief]:
    indictment = Indictment("product_bug", narrative="retry path crashes", confidence=0.7)
    brief = DefenseBrief(alternative_hypothesis="infra flake")
    return indictment, brief


class TestHearingLoop:
    async def test_stops_at_first_converged_round(self) -> None:
        responder = ScriptedResponder({"hearing": [_round(False), _round(True), _round(False)]})
        indictment, brief = _case()
        record = await hearing_loop(responder, "C1", indictment, brief, 5)
        assert record.converged is True
        assert [r.round for r in record.rounds] == [1, 2]
        assert record.max_rounds == 5
        assert responder.calls("hearing") == 2

    async def test_round_cap_without_convergence(self) -> None:
        responder = ScriptedResponder({"hearing": _round(False)})
        record = await hearing_loop(responder, "C1", None, None, 3)
        assert record.converged is False
        assert len(record.rounds) == 3

    async def test_zero_rounds(self) -> None:
        responder = ScriptedResponder({})
        record = await hearing_loop(responder, "C1", None, None, 0)
        assert record.rounds == []
        assert responder.prompts == []

    async def test_prompt_carries_prior_round(self) -> None:
        responder = ScriptedResponder(
            {"hearing": [_round(False, note="needs the deploy log"), _round(True)]}
        )
        indictment, brief = _case()
        await hearing_loop(responder, "C1", indictment, brief, 3)
        first, second = (prompt for _, prompt in responder.prompts)
        assert first.startswith("Hearing round 1 of 3 for case C1.")
        assert "Prior round" not in first
        assert "Prior round 1:" in second
        assert "Judge notes: needs the deploy log" in second

    async def test_custom_step_name(self) -> None:
        responder = ScriptedResponder({"bench": _round(True)})
        record = await hearing_loop(responder, "C1", None, None, 2, step="bench")
        assert record.converged is True

    async def test_converged_must_be_bool(self) -> None:
        payload = _round(False)
        payload["converged"] = "yes"
        responder = ScriptedResponder({"hearing": payload})
        with pytest.raises(MalformedResponseError, match="converged"):
            await hearing_loop(responder, "C1", None, None, 2)

    async def test_invalid_json(self) -> None:
        responder = ScriptedResponder({"hearing": "not json"})
        with pytest.raises(MalformedResponseError):
            await hearing_loop(responder, "C1", None, None, 2)

    async def test_responder_failure_propagates(self) -> None:
        with pytest.raises(ResponderError):
            await hearing_loop(ScriptedResponder({}), "C1", None, None, 1)


class TestHearingPrompt:
    def test_includes_charge_and_defense(self) -> None:
        indictment, brief = _case()
        prompt = build_hearing_round_prompt(1, 3, "C9", indictment, brief, HearingRecord())
        assert "Prosecution charge: product_bug (confidence: 0.70)" in prompt
        assert "Narrative: retry path crashes" in prompt
        assert "Defense position: plea_deal=False, alternative=infra flake" in prompt
        assert prompt.endswith("converged (bool).")
