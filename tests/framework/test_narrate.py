"""Tests for walk narration."""

import pytest

from trellis.framework.events import WalkEvent, WalkEventEmitter, WalkEventType
from trellis.framework.graph import Graph
from trellis.framework.identity import AgentIdentity, Element
from trellis.framework.models import BasicArtifact, NodeContext, Transition
from trellis.framework.narrate import NarrationObserver, format_duration
from trellis.framework.walker import ProcessWalker


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class StepNode:
    def __init__(self, name: str) -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def element(self) -> Element | None:
        return None

    async def process(self, nc: NodeContext) -> BasicArtifact:
        return BasicArtifact(type="step")


class AlwaysEdge:
    def __init__(self, id: str, source: str, target: str) -> None:
        self.id = id
        self.source = source
        self.target = target
        self.shortcut = False
        self.loop = False

    def evaluate(self, artifact, state) -> Transition:
        return Transition(next_node=self.target)


def _observer(lines: list[str], **kwargs) -> tuple[NarrationObserver, FakeClock]:
    clock = FakeClock()
    return NarrationObserver(sink=lines.append, clock=clock, **kwargs), clock


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(0.25, "250ms"), (3.21, "3.2s"), (125.0, "2m5s")],
    )
    def test_format(self, seconds: float, expected: str) -> None:
        assert format_duration(seconds) == expected


class TestNarrationObserver:
    async def test_node_lines(self) -> None:
        lines: list[str] = []
        observer, _ = _observer(lines, vocabulary={"indict": "Indictment"})
        await observer(WalkEvent(WalkEventType.NODE_ENTER, node="indict", walker="prosecutor"))
        await observer(WalkEvent(WalkEventType.NODE_EXIT, node="indict", elapsed=0.5))
        await observer(WalkEvent(WalkEventType.NODE_ENTER, node="defend"))
        await observer(WalkEvent(WalkEventType.NODE_EXIT, node="defend"))
        assert lines == [
            "[prosecutor] Entering Indictment",
            "Completed Indictment (500ms)",
            "Entering defend",
            "Completed defend",
        ]

    async def test_callable_vocabulary(self) -> None:
        lines: list[str] = []
        observer, _ = _observer(lines, vocabulary=str.upper)
        await observer(WalkEvent(WalkEventType.NODE_ENTER, node="verdict"))
        assert lines == ["Entering VERDICT"]

    async def test_failures(self) -> None:
        lines: list[str] = []
        observer, _ = _observer(lines)
        boom = RuntimeError("boom")
        await observer(WalkEvent(WalkEventType.NODE_EXIT, node="a", error=boom))
        await observer(WalkEvent(WalkEventType.WALK_ERROR, node="a", error=boom))
        await observer(WalkEvent(WalkEventType.WALK_ERROR, error=boom))
        assert lines == ["Failed at a: boom", "Walk failed at a: boom", "Walk failed: boom"]

    async def test_transitions_are_silent(self) -> None:
        lines: list[str] = []
        observer, _ = _observer(lines)
        await observer(WalkEvent(WalkEventType.TRANSITION, node="a", edge="E1"))
        await observer(WalkEvent(WalkEventType.EDGE_EVALUATE, node="a", edge="E1"))
        assert lines == []

    async def test_milestone(self) -> None:
        lines: list[str] = []
        observer, clock = _observer(lines, milestone_every=2)
        await observer(WalkEvent(WalkEventType.NODE_ENTER, node="a", walker="w"))
        await observer(WalkEvent(WalkEventType.NODE_EXIT, node="a", error=RuntimeError("x")))
        clock.now += 4.0
        await observer(WalkEvent(WalkEventType.NODE_EXIT, node="b"))
        assert lines[-1] == (
            "--- Progress: 2 nodes visited | Elapsed: 4.0s | Avg: 2.0s/node | Errors: 1 ---"
        )
        progress = observer.progress()
        assert progress.nodes_visited == 2
        assert progress.elapsed == 4.0
        assert progress.current_node == "a"
        assert progress.last_walker == "w"

    async def test_milestone_without_eta(self) -> None:
        lines: list[str] = []
        observer, _ = _observer(lines, milestone_every=1, show_eta=False)
        await observer(WalkEvent(WalkEventType.NODE_ENTER, node="a"))
        await observer(WalkEvent(WalkEventType.NODE_EXIT, node="a"))
        assert lines[-1] == "--- Progress: 1 nodes visited | Elapsed: 0ms ---"

    async def test_progress_before_walk(self) -> None:
        observer, _ = _observer([])
        assert observer.progress().elapsed == 0.0
        assert observer.progress().nodes_visited == 0

    async def test_narrates_real_walk(self) -> None:
        lines: list[str] = []
        observer, _ = _observer(lines, milestone_every=0)
        emitter = WalkEventEmitter()
        emitter.on_any(observer)
        graph = Graph(
            "g",
            [StepNode("a"), StepNode("b")],
            [AlwaysEdge("E1", "a", "b"), AlwaysEdge("E2", "b", "_done")],
            event_emitter=emitter,
        )
        await graph.walk(ProcessWalker(AgentIdentity(persona_name="w")), "a")
        assert lines[0] == "[w] Entering a"
        assert lines[2] == "[w] Entering b"
        assert lines[-1].startswith("Walk complete: 2 nodes visited in ")
