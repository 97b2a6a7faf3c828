"""Court activation band and safety bounds."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any


@dataclass
class CourtConfig:
    """Controls when the adversarial review runs and how long it may go on.

    Attributes:
        enabled: Master switch; a disabled court never activates.
        ttl: Wall-clock budget for one run, in seconds.  ``0`` disables it.
        max_handoffs: Stage visits after which the run ends in a mistrial.
        max_remands: Remand cycles allowed before a remand is final.
        activation_floor: Lowest upstream confidence that triggers review.
        activation_threshold: Upstream confidence at or above which the
            conclusion is trusted and review is skipped.
        max_hearing_rounds: Round cap for each hearing.
    """

    enabled: bool = False
    ttl: float = 600.0
    max_handoffs: int = 6
    max_remands: int = 2
    activation_floor: float = 0.50
    activation_threshold: float = 0.85
    max_hearing_rounds: int = 3

    def should_activate(self, confidence: float) -> bool:
        """Return True when *confidence* falls in the uncertain band."""
        if not self.enabled:
            return False
        return self.activation_floor <= confidence < self.activation_threshold

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CourtConfig:
        """Build a config from a mapping, ignoring unknown keys.

        Raises:
            ValueError: If a known key has a value of the wrong type.
        """
        known = {f.name for f in fields(cls)}
        defaults = cls()
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            default = getattr(defaults, key)
            if isinstance(default, bool):
                if not isinstance(value, bool):
                    raise ValueError(f"court config '{key}' must be a boolean")
            elif isinstance(default, int):
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError(f"court config '{key}' must be an integer")
            elif isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"court config '{key}' must be a number")
            kwargs[key] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
