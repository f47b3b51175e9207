"""Detects recurring architecture shapes in a flow graph.

Three shapes are recognised, all keyed on outgoing edges of an LLM agent:

* router        a light agent fanning out to two or more heavy agents
* distillation  a heavy agent feeding a light agent (one pattern per edge)
* autonomous    a heavy agent wired to two or more tool providers

Patterns are derived state. They are recomputed from scratch on every call
and may overlap.
"""
from __future__ import annotations

from typing import Dict, List, Sequence

from archflow.domain.graph import ArchitecturePattern, Edge, Node, Position, index_nodes
from archflow.domain.specifications import (
    HeavyAgent,
    IsToolProvider,
    LightAgent,
    Specification,
    filter_by_specification,
)

ROUTER_LABEL = "Router: Load Distribution"
DISTILLATION_LABEL = "Pipeline: Data Refinement"
AUTONOMOUS_LABEL = "Autonomous Agent"

ANCHOR_LIFT = 60
MIN_HUB_TARGETS = 2


def _anchor(hub: Node, targets: Sequence[Node]) -> Position:
    centroid_x = sum(t.position.x for t in targets) / len(targets)
    x = (hub.position.x + centroid_x) / 2
    y = min([hub.position.y] + [t.position.y for t in targets]) - ANCHOR_LIFT
    return Position(x=x, y=y)


def _outgoing_targets(
    hub: Node,
    edges: Sequence[Edge],
    by_id: Dict[str, Node],
    spec: Specification,
) -> List[Node]:
    """Distinct targets of ``hub`` satisfying ``spec``, in edge order."""
    seen = set()
    targets = []
    for edge in edges:
        if edge.source_id != hub.id or edge.target_id in seen:
            continue
        target = by_id.get(edge.target_id)
        if target is not None and spec.is_satisfied_by(target):
            seen.add(target.id)
            targets.append(target)
    return targets


def _hub_pattern(kind: str, label: str, hub: Node, targets: List[Node]) -> ArchitecturePattern:
    return ArchitecturePattern(
        kind=kind,
        label=label,
        member_node_ids=[hub.id] + [t.id for t in targets],
        anchor=_anchor(hub, targets),
    )


def detect_patterns(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[ArchitecturePattern]:
    """Scan the whole graph; routers first, then distillations, then autonomous agents."""
    by_id = index_nodes(list(nodes))
    light_agents = filter_by_specification(list(nodes), LightAgent)
    heavy_agents = filter_by_specification(list(nodes), HeavyAgent)

    patterns: List[ArchitecturePattern] = []

    for light in light_agents:
        heavy_targets = _outgoing_targets(light, edges, by_id, HeavyAgent)
        if len(heavy_targets) >= MIN_HUB_TARGETS:
            patterns.append(_hub_pattern("router", ROUTER_LABEL, light, heavy_targets))

    for heavy in heavy_agents:
        for edge in edges:
            if edge.source_id != heavy.id:
                continue
            light = by_id.get(edge.target_id)
            if light is None or not LightAgent.is_satisfied_by(light):
                continue
            patterns.append(ArchitecturePattern(
                kind="distillation",
                label=DISTILLATION_LABEL,
                member_node_ids=[heavy.id, light.id],
                anchor=_anchor(heavy, [light]),
            ))

    for heavy in heavy_agents:
        tools = _outgoing_targets(heavy, edges, by_id, IsToolProvider)
        if len(tools) >= MIN_HUB_TARGETS:
            patterns.append(_hub_pattern("autonomous", AUTONOMOUS_LABEL, heavy, tools))

    return patterns
