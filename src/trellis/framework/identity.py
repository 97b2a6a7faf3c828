"""Agent identity and element affinity.

Elements are behavioral archetypes attached to nodes, zones and walkers.
The graph engine never interprets them; they are metadata for schedulers
that decide which walker should handle which node.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field


class Element(str, enum.Enum):
    """Behavioral archetype governing how an agent moves through a graph."""

    FIRE = "fire"
    LIGHTNING = "lightning"
    EARTH = "earth"
    DIAMOND = "diamond"
    WATER = "water"
    AIR = "air"
    IRON = "iron"  # derived from earth, see iron_from_earth

    @classmethod
    def parse(cls, value: str | None) -> Element | None:
        """Return the element named by *value*, or ``None`` when blank.

        Matching is case-insensitive.

        Raises:
            ValueError: If *value* names no known element.
        """
        if value is None or not value.strip():
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown element: {value!r}") from None

    @classmethod
    def coerce(cls, value: str | None) -> Element | None:
        """Like :meth:`parse`, but unknown names yield ``None``."""
        try:
            return cls.parse(value)
        except ValueError:
            return None


class SpeedClass(str, enum.Enum):
    FASTEST = "fastest"
    FAST = "fast"
    STEADY = "steady"
    PRECISE = "precise"
    DEEP = "deep"
    HOLISTIC = "holistic"


class Alignment(str, enum.Enum):
    """Which side of the adversarial process an agent plays."""

    LIGHT = "light"
    SHADOW = "shadow"


@dataclass(frozen=True)
class ElementTraits:
    """Quantified behavioral characteristics of an element.

    Attributes:
        element: The element these traits describe.
        speed: Processing velocity class.
        max_loops: How many times a walker of this element may loop.
        convergence_threshold: Confidence needed before moving on.
        shortcut_affinity: Willingness to take shortcut edges (0.0-1.0).
        evidence_depth: How many evidence items the element gathers.
        failure_mode: Short description of how the element fails.
    """

    element: Element
    speed: SpeedClass
    max_loops: int
    convergence_threshold: float
    shortcut_affinity: float
    evidence_depth: int
    failure_mode: str


_DEFAULT_TRAITS: dict[Element, ElementTraits] = {
    Element.FIRE: ElementTraits(
        Element.FIRE, SpeedClass.FAST, 0, 0.50, 0.9, 2,
        "burns out (token waste)",
    ),
    Element.LIGHTNING: ElementTraits(
        Element.LIGHTNING, SpeedClass.FASTEST, 0, 0.40, 1.0, 1,
        "brittle (wrong path, no recovery)",
    ),
    Element.EARTH: ElementTraits(
        Element.EARTH, SpeedClass.STEADY, 1, 0.70, 0.1, 5,
        "bloat (too many steps)",
    ),
    Element.DIAMOND: ElementTraits(
        Element.DIAMOND, SpeedClass.PRECISE, 0, 0.95, 0.5, 10,
        "shatters (ambiguity kills it)",
    ),
    Element.WATER: ElementTraits(
        Element.WATER, SpeedClass.DEEP, 3, 0.85, 0.1, 8,
        "slow (analysis paralysis)",
    ),
    Element.AIR: ElementTraits(
        Element.AIR, SpeedClass.HOLISTIC, 1, 0.60, 0.6, 3,
        "floaty (vague, no evidence)",
    ),
}

_CORE_ELEMENTS = (
    Element.FIRE,
    Element.LIGHTNING,
    Element.EARTH,
    Element.DIAMOND,
    Element.WATER,
    Element.AIR,
)


def default_traits(element: Element) -> ElementTraits | None:
    """Return the canonical traits for *element* (``None`` for iron)."""
    return _DEFAULT_TRAITS.get(element)


def all_elements() -> list[Element]:
    """Return the six core elements; iron is derived, not fundamental."""
    return list(_CORE_ELEMENTS)


def iron_from_earth(accuracy: float) -> ElementTraits:
    """Derive iron traits from earth, tuned by historical *accuracy* (0-1).

    ``max_loops`` shrinks as accuracy grows and the convergence threshold
    rises as accuracy falls.
    """
    earth = _DEFAULT_TRAITS[Element.EARTH]
    return ElementTraits(
        element=Element.IRON,
        speed=earth.speed,
        max_loops=max(0, earth.max_loops - math.floor(accuracy * 2)),
        convergence_threshold=earth.convergence_threshold + (1 - accuracy) * 0.1,
        shortcut_affinity=earth.shortcut_affinity,
        evidence_depth=earth.evidence_depth,
        failure_mode="rigid (over-calibrated to past data)",
    )


class CycleType(str, enum.Enum):
    """How two elements interact."""

    GENERATIVE = "generative"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class CycleRule:
    """A directed interaction from one element to another."""

    cycle: CycleType
    source: Element
    target: Element
    interaction: str


_GENERATIVE_RULES = (
    CycleRule(
        CycleType.GENERATIVE, Element.FIRE, Element.EARTH,
        "classification provides structure for steady investigation",
    ),
    CycleRule(
        CycleType.GENERATIVE, Element.EARTH, Element.WATER,
        "stable repo selection enables deep code investigation",
    ),
    CycleRule(
        CycleType.GENERATIVE, Element.WATER, Element.AIR,
        "deep evidence enables holistic synthesis",
    ),
    CycleRule(
        CycleType.GENERATIVE, Element.AIR, Element.FIRE,
        "synthesis reveals patterns for re-classification",
    ),
    CycleRule(
        CycleType.GENERATIVE, Element.LIGHTNING, Element.LIGHTNING,
        "lightning shortcuts any generative step",
    ),
    CycleRule(
        CycleType.GENERATIVE, Element.DIAMOND, Element.DIAMOND,
        "diamond validates any generative step",
    ),
)

_DESTRUCTIVE_RULES = (
    CycleRule(
        CycleType.DESTRUCTIVE, Element.FIRE, Element.WATER,
        "aggressive challenge forces deeper evidence",
    ),
    CycleRule(
        CycleType.DESTRUCTIVE, Element.WATER, Element.EARTH,
        "depth destabilizes stable conclusions",
    ),
    CycleRule(
        CycleType.DESTRUCTIVE, Element.EARTH, Element.FIRE,
        "methodical evidence extinguishes hasty challenges",
    ),
    CycleRule(
        CycleType.DESTRUCTIVE, Element.LIGHTNING, Element.DIAMOND,
        "speed exposes brittleness to ambiguity",
    ),
    CycleRule(
        CycleType.DESTRUCTIVE, Element.DIAMOND, Element.AIR,
        "precision grounds vague synthesis",
    ),
    CycleRule(
        CycleType.DESTRUCTIVE, Element.AIR, Element.LIGHTNING,
        "breadth covers narrow shortcut mistakes",
    ),
)

# Lightning and diamond modify generative steps but are not in the main sequence.
_GENERATIVE_NEXT = {
    rule.source: rule.target for rule in _GENERATIVE_RULES if rule.source != rule.target
}
_CHALLENGES = {rule.source: rule.target for rule in _DESTRUCTIVE_RULES}
_CHALLENGED_BY = {rule.target: rule.source for rule in _DESTRUCTIVE_RULES}


def generative_cycle() -> list[CycleRule]:
    """Return the generative rules: the four-step main cycle plus two modifiers."""
    return list(_GENERATIVE_RULES)


def destructive_cycle() -> list[CycleRule]:
    """Return the six adversarial pairings."""
    return list(_DESTRUCTIVE_RULES)


def next_generative(element: Element) -> Element | None:
    """Return the element that follows *element* in the main generative cycle."""
    return _GENERATIVE_NEXT.get(element)


def challenges(element: Element) -> Element | None:
    """Return the element that *element* challenges."""
    return _CHALLENGES.get(element)


def challenged_by(element: Element) -> Element | None:
    """Return the element that challenges *element*."""
    return _CHALLENGED_BY.get(element)


@dataclass
class AgentIdentity:
    """Who a walker is.

    Attributes:
        persona_name: Display name of the agent.
        element: Element affinity, if any.
        alignment: Light (investigating) or shadow (adversarial) side.
        home_zone: Zone the agent prefers to stay in.
        stickiness_level: 0-3, how strongly the agent stays in its zone.
        step_affinity: Node family -> preference weight (0.0-1.0).
        personality_tags: Free-form descriptors.
        prompt_preamble: Text prepended to prompts sent on its behalf.
    """

    persona_name: str
    element: Element | None = None
    alignment: Alignment = Alignment.LIGHT
    home_zone: str = ""
    stickiness_level: int = 0
    step_affinity: dict[str, float] = field(default_factory=dict)
    personality_tags: list[str] = field(default_factory=list)
    prompt_preamble: str = ""

    def affinity_for(self, step: str) -> float:
        """Return the preference weight for *step*, 0.0 when unknown."""
        return self.step_affinity.get(step, 0.0)
