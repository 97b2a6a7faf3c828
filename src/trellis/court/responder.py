"""Responders: the external parties that argue each court stage.

A :class:`Responder` receives a prompt for one stage and returns that
stage's JSON payload.  Production responders wrap whatever service plays
the roles; :class:`ScriptedResponder` replays canned payloads for tests,
demos and replays of recorded cases.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from trellis.framework.errors import FrameworkError

logger = logging.getLogger(__name__)

ResponsePayload = str | bytes | Mapping[str, Any]


class ResponderError(FrameworkError):
    """A responder could not produce a payload for a stage."""


@runtime_checkable
class Responder(Protocol):
    """Produces the JSON payload for one stage of one case."""

    async def send_prompt(self, case_id: str, step: str, prompt: str) -> ResponsePayload: ...


class ScriptedResponder:
    """Replays canned payloads keyed by step name.

    Each step maps to a single payload or a list of payloads consumed in
    order; once a list is exhausted its last payload repeats.  Every
    prompt received is kept in :attr:`prompts` for later inspection.

    Args:
        responses: Step name -> payload or list of payloads.
    """

    def __init__(self, responses: Mapping[str, Any]) -> None:
        self._responses: dict[str, list[Any]] = {}
        for step, value in responses.items():
            self._responses[step] = list(value) if isinstance(value, list) else [value]
        self._cursor: dict[str, int] = {}
        self.prompts: list[tuple[str, str]] = []

    async def send_prompt(self, case_id: str, step: str, prompt: str) -> ResponsePayload:
        self.prompts.append((step, prompt))
        script = self._responses.get(step)
        if not script:
            raise ResponderError(f"no scripted response for step '{step}' (case {case_id})")
        index = self._cursor.get(step, 0)
        self._cursor[step] = index + 1
        payload = script[min(index, len(script) - 1)]
        logger.debug("Scripted response %d for case %s step %s", index + 1, case_id, step)
        return payload

    def calls(self, step: str) -> int:
        """Return how many prompts *step* has received."""
        return sum(1 for s, _ in self.prompts if s == step)

    @classmethod
    def from_file(cls, path: str | Path) -> ScriptedResponder:
        """Load a script from a JSON object of step -> payload(s).

        Raises:
            ResponderError: If the file is not a JSON object.
        """
        try:
            data = json.loads(Path(path).read_text())
        except json.JSONDecodeError as exc:
            raise ResponderError(f"invalid response script {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ResponderError(f"response script {path} must be a JSON object")
        return cls(data)
