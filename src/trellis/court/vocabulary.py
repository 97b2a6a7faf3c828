"""Wording used by the adversarial review stages.

The court and the dialectic run the same machinery; they differ only in
the names of roles, the labels used in prompts and the keys responders
use in their JSON.  A :class:`StageVocabulary` captures those
differences and normalizes responder payloads onto the court field names
that :mod:`trellis.court.artifacts` parses.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

INDICT = "indict"
DISCOVER = "discover"
DEFEND = "defend"
HEARING = "hearing"
VERDICT = "verdict"

STAGE_FAMILIES = (INDICT, DISCOVER, DEFEND, HEARING, VERDICT)


@dataclass(frozen=True)
class StageVocabulary:
    """Role text, prompt labels and payload aliases for one review variant.

    Attributes:
        label: Short name of the variant, used in prompts and logs.
        roles: Stage family -> role instructions appended to each prompt.
        round_title: Title for hearing rounds ("Hearing", "Dialectic").
        charge_label: Label for the prosecution's charge.
        defense_label: Label for the defense position.
        round_instruction: Closing instruction of each hearing round prompt.
        field_aliases: Responder key -> court key.
        decision_aliases: Responder decision -> court decision.
    """

    label: str
    roles: Mapping[str, str]
    round_title: str = "Hearing"
    charge_label: str = "Prosecution charge"
    defense_label: str = "Defense position"
    round_instruction: str = (
        "Produce a hearing round: prosecution argument, defense rebuttal, "
        "judge notes, and whether the hearing has converged. Output JSON with "
        "fields: prosecution_argument, defense_rebuttal, judge_notes, converged (bool)."
    )
    field_aliases: Mapping[str, str] = field(default_factory=dict)
    decision_aliases: Mapping[str, str] = field(default_factory=dict)

    def role_for(self, family: str) -> str:
        return self.roles.get(family, "")

    def normalize(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Rename aliased keys and decisions to their court equivalents.

        Keys that already use the court name win over their aliases.
        """
        data = dict(payload)
        for alias, name in self.field_aliases.items():
            if alias in data:
                value = data.pop(alias)
                data.setdefault(name, value)
        decision = data.get("decision")
        if isinstance(decision, str) and decision.lower() in self.decision_aliases:
            data["decision"] = self.decision_aliases[decision.lower()]
        return data


COURT_VOCABULARY = StageVocabulary(
    label="court",
    roles={
        INDICT: (
            "Role: Prosecution (Challenger). Examine the upstream evidence and "
            "produce an Indictment with charged defect type, prosecution "
            "narrative, and itemized evidence with weights."
        ),
        DISCOVER: (
            "Role: Discovery. Identify additional evidence sources not "
            "examined by prosecution."
        ),
        DEFEND: (
            "Role: Defense (Abyss). Challenge the prosecution's evidence, "
            "propose alternative hypotheses, or offer a plea deal if the "
            "evidence is overwhelming."
        ),
        HEARING: (
            "Role: Judge (Bulwark). Evaluate prosecution and defense arguments. "
            "Produce hearing notes and determine if the hearing has converged."
        ),
        VERDICT: (
            "Role: Judge (Specter). Render final verdict: affirm, amend, "
            "acquit, remand, or mistrial. Include reasoning and confidence."
        ),
    },
)
