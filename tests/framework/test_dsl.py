"""Tests for pipeline document parsing, validation and graph building."""

import pytest

from trellis.court.dialectic import load_dialectic_pipeline
from trellis.court.runner import load_court_pipeline
from trellis.framework.dsl import (
    EdgeDef,
    NodeDef,
    PassthroughEdge,
    PipelineDef,
    PipelineValidationError,
    ValidationLevel,
    ZoneDef,
    has_errors,
    load_pipeline,
    load_pipeline_file,
    validate_pipeline_def,
)
from trellis.framework.errors import (
    MaxStepsExceededError,
    MissingNodeFactoryError,
    PipelineParseError,
)
from trellis.framework.identity import AgentIdentity, Element
from trellis.framework.models import BasicArtifact, NodeContext
from trellis.framework.state import WalkerState, WalkStatus
from trellis.framework.walker import ProcessWalker

PIPELINE_YAML = """\
pipeline: triage
description: Small triage flow
zones:
  intake:
    nodes: [recall, triage]
    element: fire
    stickiness: 2
nodes:
  - name: recall
    element: fire
    family: gather
  - name: triage
    element: water
    family: gather
  - name: report
edges:
  - id: T1
    name: recalled
    from: recall
    to: triage
    condition: always
  - id: T2
    name: triaged
    from: triage
    to: report
  - id: T3
    name: finish
    from: report
    to: _done
    shortcut: true
start: recall
done: _done
"""


class StubNode:
    def __init__(self, definition: NodeDef) -> None:
        self.definition = definition

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def element(self) -> Element | None:
        return Element.coerce(self.definition.element)

    async def process(self, nc: NodeContext) -> BasicArtifact:
        return BasicArtifact(type=self.definition.family or "stub")


def _registry() -> dict:
    return {"gather": StubNode, "report": StubNode}


def _rules(definition: PipelineDef) -> list[str]:
    return [f.rule for f in validate_pipeline_def(definition)]


def _make_def(**overrides) -> PipelineDef:
    fields = {
        "pipeline": "p",
        "nodes": [NodeDef("a"), NodeDef("b")],
        "edges": [
            EdgeDef("E1", source="a", target="b"),
            EdgeDef("E2", source="b", target="_done"),
        ],
        "start": "a",
        "done": "_done",
    }
    fields.update(overrides)
    return PipelineDef(**fields)


class TestLoadPipeline:
    def test_parses_document(self) -> None:
        definition = load_pipeline(PIPELINE_YAML)
        assert definition.pipeline == "triage"
        assert definition.description == "Small triage flow"
        assert definition.zones["intake"] == ZoneDef(
            nodes=["recall", "triage"], element="fire", stickiness=2
        )
        assert definition.node_names() == ["recall", "triage", "report"]
        assert definition.edges[0] == EdgeDef(
            id="T1", name="recalled", source="recall", target="triage", condition="always"
        )
        assert definition.edges[2].shortcut is True
        assert definition.start == "recall"
        assert definition.done == "_done"

    def test_accepts_bytes(self) -> None:
        assert load_pipeline(PIPELINE_YAML.encode()).pipeline == "triage"

    def test_load_from_file(self, tmp_path) -> None:
        path = tmp_path / "triage.yaml"
        path.write_text(PIPELINE_YAML)
        assert load_pipeline_file(path).pipeline == "triage"

    def test_invalid_yaml(self) -> None:
        with pytest.raises(PipelineParseError, match="parse pipeline YAML"):
            load_pipeline("pipeline: [unclosed")

    def test_non_mapping_document(self) -> None:
        with pytest.raises(PipelineParseError, match="mapping"):
            load_pipeline("- just\n- a list\n")

    def test_malformed_section(self) -> None:
        with pytest.raises(PipelineParseError):
            load_pipeline("pipeline: p\nnodes: [plain-string]\n")

    @pytest.mark.parametrize("field", ["shortcut", "loop"])
    def test_edge_flags_must_be_boolean(self, field: str) -> None:
        document = (
            "pipeline: p\n"
            "nodes: [{name: a}]\n"
            f"edges: [{{id: E1, from: a, to: _done, {field}: 'false'}}]\n"
        )
        with pytest.raises(PipelineParseError, match=f"'{field}' must be a boolean"):
            load_pipeline(document)

    def test_yaml_round_trip(self) -> None:
        definition = load_pipeline(PIPELINE_YAML)
        assert load_pipeline(definition.to_yaml()) == definition

    def test_to_dict_omits_empty_sections(self) -> None:
        data = _make_def().to_dict()
        assert "zones" not in data
        assert "description" not in data
        assert data["edges"][0] == {"id": "E1", "name": "", "from": "a", "to": "b"}


class TestValidation:
    def test_valid_definition(self) -> None:
        assert validate_pipeline_def(load_pipeline(PIPELINE_YAML)) == []

    def test_empty_definition(self) -> None:
        rules = _rules(PipelineDef(pipeline=""))
        for rule in ("pipeline_name", "nodes", "edges", "done_node", "start_node"):
            assert rule in rules

    def test_duplicate_node(self) -> None:
        definition = _make_def(nodes=[NodeDef("a"), NodeDef("b"), NodeDef("a")])
        findings = validate_pipeline_def(definition)
        duplicate = [f for f in findings if f.rule == "unique_nodes"]
        assert len(duplicate) == 1
        assert duplicate[0].node_name == "a"

    def test_blank_node_name(self) -> None:
        assert "node_name" in _rules(_make_def(nodes=[NodeDef("a"), NodeDef("b"), NodeDef("")]))

    def test_unknown_element_is_warning(self) -> None:
        definition = _make_def(nodes=[NodeDef("a", element="plasma"), NodeDef("b")])
        findings = [f for f in validate_pipeline_def(definition) if f.rule == "element"]
        assert findings[0].node_name == "a"
        assert findings[0].level == ValidationLevel.WARNING
        definition.validate()

    def test_missing_start_node(self) -> None:
        definition = _make_def(start="ghost")
        findings = validate_pipeline_def(definition)
        assert [f.rule for f in findings] == ["start_node"]
        assert "ghost" in findings[0].message

    def test_duplicate_edge_id(self) -> None:
        edges = [
            EdgeDef("E1", source="a", target="b"),
            EdgeDef("E1", source="b", target="_done"),
        ]
        assert "unique_edges" in _rules(_make_def(edges=edges))

    def test_blank_edge_id(self) -> None:
        edges = [EdgeDef("", source="a", target="b"), EdgeDef("E2", source="b", target="_done")]
        assert "edge_id" in _rules(_make_def(edges=edges))

    def test_dangling_edge(self) -> None:
        edges = [EdgeDef("E1", source="x", target="b"), EdgeDef("E2", source="b", target="y")]
        findings = validate_pipeline_def(_make_def(edges=edges))
        by_rule = {f.rule: f for f in findings if f.level == ValidationLevel.ERROR}
        assert by_rule["edge_source_exists"].edge_id == "E1"
        assert by_rule["edge_target_exists"].edge_id == "E2"

    def test_done_target_accepted(self) -> None:
        assert "edge_target_exists" not in _rules(_make_def())

    def test_zone_checks(self) -> None:
        zones = {"z": ZoneDef(nodes=["a", "ghost"], element="ether", stickiness=5)}
        rules = _rules(_make_def(zones=zones))
        assert "zone_nodes_exist" in rules
        assert "zone_stickiness" in rules
        assert "element" in rules

    def test_unreachable_node_is_warning(self) -> None:
        definition = _make_def(nodes=[NodeDef("a"), NodeDef("b"), NodeDef("island")])
        findings = validate_pipeline_def(definition)
        assert len(findings) == 1
        assert findings[0].level == ValidationLevel.WARNING
        assert findings[0].rule == "reachability"
        assert findings[0].node_name == "island"
        assert not has_errors(findings)
        definition.validate()

    def test_validate_raises_on_errors(self) -> None:
        with pytest.raises(PipelineValidationError) as exc_info:
            _make_def(start="").validate()
        assert exc_info.value.errors[0].rule == "start_node"

    def test_finding_str(self) -> None:
        definition = _make_def(nodes=[NodeDef("a"), NodeDef("b"), NodeDef("a")])
        finding = [f for f in validate_pipeline_def(definition) if f.rule == "unique_nodes"][0]
        assert str(finding) == "[ERROR] (node 'a') [unique_nodes] duplicate node name 'a'"

    def test_bundled_pipelines_are_clean(self) -> None:
        assert validate_pipeline_def(load_court_pipeline()) == []
        assert validate_pipeline_def(load_dialectic_pipeline()) == []


class TestBuildGraph:
    def test_unregistered_edges_become_passthrough(self) -> None:
        graph = load_pipeline(PIPELINE_YAML).build_graph(_registry())
        assert graph.name == "triage"
        assert graph.done_node == "_done"
        assert all(isinstance(e, PassthroughEdge) for e in graph.edges)
        zone = graph.zone_for_node("triage")
        assert zone.element is Element.FIRE
        assert zone.stickiness == 2

    def test_unknown_elements_tolerated(self) -> None:
        definition = load_pipeline(
            "pipeline: p\n"
            "zones: {z: {nodes: [gather], element: ether}}\n"
            "nodes: [{name: gather, element: plasma}]\n"
            "edges: [{id: E1, from: gather, to: _done}]\n"
            "start: gather\n"
            "done: _done\n"
        )
        graph = definition.build_graph(_registry())
        assert graph.node_by_name("gather").element is None
        assert graph.zone_for_node("gather").element is None

    async def test_walk_built_graph(self) -> None:
        graph = load_pipeline(PIPELINE_YAML).build_graph(_registry())
        state = await graph.walk(ProcessWalker(AgentIdentity(persona_name="w")), "recall")
        assert state.status == WalkStatus.DONE
        assert state.visited == ["recall", "triage", "report"]

    def test_family_preferred_over_name(self) -> None:
        calls = []

        def by_family(nd: NodeDef) -> StubNode:
            calls.append(("family", nd.name))
            return StubNode(nd)

        def by_name(nd: NodeDef) -> StubNode:
            calls.append(("name", nd.name))
            return StubNode(nd)

        definition = load_pipeline(PIPELINE_YAML)
        definition.build_graph({"gather": by_family, "recall": by_name, "report": by_name})
        assert calls == [("family", "recall"), ("family", "triage"), ("name", "report")]

    def test_missing_factory(self) -> None:
        with pytest.raises(MissingNodeFactoryError) as exc_info:
            load_pipeline(PIPELINE_YAML).build_graph({"gather": StubNode})
        assert exc_info.value.node_name == "report"

    def test_invalid_definition_not_built(self) -> None:
        with pytest.raises(PipelineValidationError):
            _make_def(start="ghost").build_graph({"a": StubNode, "b": StubNode})

    def test_registered_edge_factory_used(self) -> None:
        built = []

        def make_edge(ed: EdgeDef) -> PassthroughEdge:
            built.append(ed.id)
            return PassthroughEdge(ed)

        load_pipeline(PIPELINE_YAML).build_graph(_registry(), {"T2": make_edge})
        assert built == ["T2"]

    async def test_graph_options_forwarded(self) -> None:
        graph = load_pipeline(PIPELINE_YAML).build_graph(_registry(), max_steps=2)
        with pytest.raises(MaxStepsExceededError):
            await graph.walk(ProcessWalker(AgentIdentity(persona_name="w")), "recall")


class TestPassthroughEdge:
    def test_always_fires_with_condition(self) -> None:
        edge = PassthroughEdge(
            EdgeDef("P1", source="a", target="b", shortcut=True, loop=True, condition="always")
        )
        transition = edge.evaluate(None, WalkerState(id="w"))
        assert transition.next_node == "b"
        assert transition.explanation == "always"
        assert transition.context_additions is None
        assert edge.shortcut is True
        assert edge.loop is True
        assert edge.id == "P1"
