"""Rendering of pipeline definitions for documentation and review.

Two output formats are supported:

* Mermaid flowcharts (:func:`render_mermaid`), with zones drawn as
  subgraphs.
* GraphViz DOT (:func:`render_dot`), built with ``pydot`` so the result
  can be fed straight to ``dot`` or other GraphViz tooling.
"""

from __future__ import annotations

import pydot

from trellis.framework.dsl import EdgeDef, PipelineDef


def render_mermaid(definition: PipelineDef) -> str:
    """Return a left-to-right Mermaid flowchart for *definition*.

    Zones are emitted as subgraphs in name order; nodes outside every
    zone follow them.  Edge labels read ``"ID: name"``.
    """
    lines = ["graph LR"]

    if definition.zones:
        zoned: set[str] = set()
        for zone_name in sorted(definition.zones):
            zone = definition.zones[zone_name]
            lines.append(
                f"    subgraph {_sanitize_id(zone_name)} [{_capitalize(zone_name)}]"
            )
            for node_name in zone.nodes:
                lines.append(f"        {_sanitize_id(node_name)}")
                zoned.add(node_name)
            lines.append("    end")
        for nd in definition.nodes:
            if nd.name not in zoned:
                lines.append(f"    {_sanitize_id(nd.name)}")

    for ed in definition.edges:
        lines.append(
            f'    {_sanitize_id(ed.source)} -->|"{ed.id}: {_edge_label(ed)}"| '
            f"{_sanitize_id(ed.target)}"
        )

    return "\n".join(lines) + "\n"


def to_dot(definition: PipelineDef) -> pydot.Dot:
    """Build a :class:`pydot.Dot` graph for *definition*.

    Shortcut edges are drawn bold and loop edges dashed.  The done
    pseudo-node is drawn as a double circle when any edge targets it.
    """
    graph = pydot.Dot(definition.pipeline or "pipeline", graph_type="digraph")
    graph.set_graph_defaults(rankdir="LR")
    if definition.description:
        graph.set("label", _quote(definition.description))

    zoned: set[str] = set()
    for zone_name in sorted(definition.zones):
        zone = definition.zones[zone_name]
        cluster = pydot.Cluster(
            _sanitize_id(zone_name), label=_quote(_capitalize(zone_name))
        )
        for node_name in zone.nodes:
            cluster.add_node(pydot.Node(_quote(node_name), shape="box"))
            zoned.add(node_name)
        graph.add_subgraph(cluster)

    for nd in definition.nodes:
        if nd.name not in zoned:
            graph.add_node(pydot.Node(_quote(nd.name), shape="box"))

    if definition.done and any(ed.target == definition.done for ed in definition.edges):
        graph.add_node(pydot.Node(_quote(definition.done), shape="doublecircle"))

    for ed in definition.edges:
        attrs = {"label": _quote(f"{ed.id}: {_edge_label(ed)}")}
        if ed.shortcut:
            attrs["style"] = "bold"
        if ed.loop:
            attrs["style"] = "dashed"
        graph.add_edge(pydot.Edge(_quote(ed.source), _quote(ed.target), **attrs))

    return graph


def render_dot(definition: PipelineDef) -> str:
    """Return the GraphViz DOT source for *definition*."""
    return to_dot(definition).to_string()


def _edge_label(ed: EdgeDef) -> str:
    return ed.name or ed.id


def _sanitize_id(value: str) -> str:
    return value.replace("-", "_")


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def _quote(value: str) -> str:
    return '"' + value.replace('"', '\\"') + '"'
