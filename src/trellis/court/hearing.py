"""Multi-round hearing convergence loop.

Used by the hearing stage node and callable on its own.  Each round the
responder is prompted with the charge, the defense position and the
previous round; the loop stops at the first round reporting
``converged`` and never runs more than ``max_rounds`` rounds.  Reaching
the cap without convergence is a normal outcome, not a failure.
"""

from __future__ import annotations

import logging

from trellis.court.artifacts import (
    HEARING_ROUND,
    DefenseBrief,
    HearingRecord,
    HearingRound,
    Indictment,
    parse_json,
)
from trellis.court.responder import Responder
from trellis.court.vocabulary import COURT_VOCABULARY, HEARING, StageVocabulary
from trellis.framework.errors import MalformedResponseError

logger = logging.getLogger(__name__)


async def hearing_loop(
    responder: Responder,
    case_id: str,
    indictment: Indictment | None,
    brief: DefenseBrief | None,
    max_rounds: int,
    *,
    step: str = HEARING,
    vocabulary: StageVocabulary = COURT_VOCABULARY,
) -> HearingRecord:
    """Run hearing rounds until convergence or *max_rounds*.

    Args:
        responder: Produces each round's payload.
        case_id: Case under review.
        indictment: The prosecution's charge, if one was made.
        brief: The defense brief, if one was filed.
        max_rounds: Round cap; ``0`` yields an empty record.
        step: Step name passed to the responder.
        vocabulary: Prompt wording and payload aliases.

    Returns:
        The hearing record, ``converged`` set when a round converged.

    Raises:
        MalformedResponseError: A round payload did not parse.
        ResponderError: The responder failed.
    """
    record = HearingRecord(max_rounds=max_rounds)

    for number in range(1, max_rounds + 1):
        prompt = build_hearing_round_prompt(
            number, max_rounds, case_id, indictment, brief, record, vocabulary
        )
        raw = await responder.send_prompt(case_id, step, prompt)
        payload = vocabulary.normalize(parse_json(raw, HEARING_ROUND))

        converged = payload.get("converged", False)
        if not isinstance(converged, bool):
            raise MalformedResponseError(HEARING_ROUND, "'converged' must be a boolean")

        record.rounds.append(HearingRound.from_dict(payload, round_number=number))
        logger.debug(
            "%s round %d complete for case %s (converged=%s)",
            vocabulary.round_title,
            number,
            case_id,
            converged,
        )

        if converged:
            record.converged = True
            break

    return record


def build_hearing_round_prompt(
    number: int,
    max_rounds: int,
    case_id: str,
    indictment: Indictment | None,
    brief: DefenseBrief | None,
    record: HearingRecord,
    vocabulary: StageVocabulary = COURT_VOCABULARY,
) -> str:
    """Build the prompt for hearing round *number*."""
    parts = [f"{vocabulary.round_title} round {number} of {max_rounds} for case {case_id}.\n"]

    if indictment is not None:
        parts.append(
            f"\n{vocabulary.charge_label}: {indictment.charged_classification} "
            f"(confidence: {indictment.confidence:.2f})\n"
            f"Narrative: {indictment.narrative}\n"
        )

    if brief is not None:
        parts.append(
            f"\n{vocabulary.defense_label}: plea_deal={brief.plea_deal}, "
            f"alternative={brief.alternative_hypothesis}\n"
        )

    if record.rounds:
        last = record.rounds[-1]
        parts.append(
            f"\nPrior round {last.round}:\n"
            f"  Prosecution: {last.prosecution_argument}\n"
            f"  Defense: {last.defense_rebuttal}\n"
            f"  Judge notes: {last.judge_notes}\n"
        )

    parts.append("\n" + vocabulary.round_instruction)
    return "".join(parts)
