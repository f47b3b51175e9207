"""Graph model: nodes, edges and the derived value objects computed from them."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from archflow.domain.taxonomy import CapabilityGroup, resolve_capability


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass
class Node:
    """A diagram node. ``kind`` is kept as given so unknown kinds survive a round trip."""
    id: str
    kind: str
    position: Position = field(default_factory=Position)
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def capability(self) -> CapabilityGroup:
        return resolve_capability(self.kind)

    @property
    def model_id(self) -> Optional[str]:
        value = self.attributes.get("modelId")
        return value if isinstance(value, str) and value else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "position": self.position.to_dict(),
            "attributes": dict(self.attributes),
        }


@dataclass(frozen=True)
class EdgeAnnotation:
    """Derived visual/semantic metadata of an edge."""
    style: Dict[str, Any]
    animated: bool
    label: Optional[str] = None
    marker_end: Optional[str] = None
    class_name: str = ""

    @property
    def is_protocol_error(self) -> bool:
        return self.label is not None and self.label.startswith("Protocol Error")


@dataclass
class Edge:
    """A directed connection. Only ``id``, ``source_id`` and ``target_id`` are durable."""
    id: str
    source_id: str
    target_id: str
    style: Dict[str, Any] = field(default_factory=dict)
    animated: bool = False
    label: Optional[str] = None
    marker_end: Optional[str] = None
    class_name: str = ""

    def with_annotation(self, annotation: EdgeAnnotation) -> Edge:
        return replace(
            self,
            style=dict(annotation.style),
            animated=annotation.animated,
            label=annotation.label,
            marker_end=annotation.marker_end,
            class_name=annotation.class_name,
        )

    def touches(self, node_id: str) -> bool:
        return self.source_id == node_id or self.target_id == node_id

    def to_dict(self, include_derived: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "sourceId": self.source_id,
            "targetId": self.target_id,
        }
        if include_derived:
            data.update({
                "style": dict(self.style),
                "animated": self.animated,
                "label": self.label,
                "markerEnd": self.marker_end,
                "className": self.class_name,
            })
        return data


@dataclass(frozen=True)
class BurnRate:
    rate: float
    tier: str  # "low", "medium", "high"
    free_tier_override: bool
    formatted: str

    @property
    def display_tier(self) -> str:
        return "free" if self.free_tier_override else self.tier

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rate": self.rate,
            "tier": self.tier,
            "freeTierOverride": self.free_tier_override,
            "displayTier": self.display_tier,
            "formatted": self.formatted,
        }


@dataclass(frozen=True)
class ArchitecturePattern:
    kind: str  # "router", "distillation", "autonomous"
    label: str
    member_node_ids: List[str]
    anchor: Position

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "label": self.label,
            "memberNodeIds": list(self.member_node_ids),
            "anchor": self.anchor.to_dict(),
        }


def remove_node(nodes: List[Node], edges: List[Edge], node_id: str) -> tuple[List[Node], List[Edge]]:
    """Drop a node and every edge that references it."""
    remaining_nodes = [n for n in nodes if n.id != node_id]
    remaining_edges = [e for e in edges if not e.touches(node_id)]
    return remaining_nodes, remaining_edges


def index_nodes(nodes: List[Node]) -> Dict[str, Node]:
    return {node.id: node for node in nodes}
