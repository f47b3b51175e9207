"""Connection validator: decides edge legality and computes its annotation.

Invalid connections are not rejected. They produce a red, labelled
annotation so the editor can show the violation on the edge itself.
"""
from __future__ import annotations

from typing import Any, Dict, FrozenSet, Optional, Tuple

from archflow.domain.graph import EdgeAnnotation, Node
from archflow.domain.pricing import ModelPriceIndex
from archflow.domain.taxonomy import CapabilityGroup

ERROR_RED = "#dc2626"
SUCCESS_GREEN = "#22c55e"
DEFAULT_BLUE = "#3b82f6"

ERROR_MARKER = "url(#error-x)"
PROTOCOL_ERROR = "Protocol Error"
AGENT_REQUIRED = "Protocol Error: Agent Required"

DEFAULT_STROKE_WIDTH = 2

# price tier -> (stroke width, css class)
_THROUGHPUT_STYLES: Dict[Optional[str], Tuple[float, str]] = {
    "light": (1, "edge-light"),
    "heavy": (5, "edge-heavy"),
    "standard": (2.5, ""),
    None: (DEFAULT_STROKE_WIDTH, ""),
}

_AGENT = CapabilityGroup.AGENT
_TOOL = CapabilityGroup.TOOL_PROVIDER
_CLIENT = CapabilityGroup.CLIENT

# Clients and tool providers never talk directly, an agent has to mediate.
AGENT_REQUIRED_PAIRS: FrozenSet[Tuple[CapabilityGroup, CapabilityGroup]] = frozenset({
    (_CLIENT, _TOOL),
    (_TOOL, _CLIENT),
    (_TOOL, _TOOL),
    (_CLIENT, _CLIENT),
})


def throughput_style(model_id: Optional[str], prices: Optional[ModelPriceIndex]) -> Tuple[float, str]:
    """Stroke width and class for traffic leaving an agent running ``model_id``."""
    tier = prices.tier_for(model_id) if prices is not None else None
    return _THROUGHPUT_STYLES[tier]


def _error_annotation(label: str) -> EdgeAnnotation:
    return EdgeAnnotation(
        style={"stroke": ERROR_RED, "strokeWidth": DEFAULT_STROKE_WIDTH, "strokeDasharray": "0"},
        animated=False,
        label=label,
        marker_end=ERROR_MARKER,
    )


def validate_connection(
    source: Node,
    target: Node,
    prices: Optional[ModelPriceIndex] = None,
) -> EdgeAnnotation:
    """Annotate the edge ``source -> target``. Pure and total."""
    source_group = source.capability
    target_group = target.capability

    if CapabilityGroup.ERROR_SINK in (source_group, target_group):
        return _error_annotation(PROTOCOL_ERROR)

    if (source_group, target_group) in AGENT_REQUIRED_PAIRS:
        return _error_annotation(AGENT_REQUIRED)

    if _TOOL in (source_group, target_group):
        if source_group == _AGENT:
            width, class_name = throughput_style(source.model_id, prices)
        else:
            width, class_name = DEFAULT_STROKE_WIDTH, ""
        return EdgeAnnotation(
            style={"stroke": SUCCESS_GREEN, "strokeWidth": width},
            animated=True,
            class_name=class_name,
        )

    if source_group == _AGENT:
        width, class_name = throughput_style(source.model_id, prices)
        return EdgeAnnotation(
            style={"stroke": DEFAULT_BLUE, "strokeWidth": width},
            animated=True,
            class_name=class_name,
        )

    return EdgeAnnotation(
        style={"stroke": DEFAULT_BLUE, "strokeWidth": DEFAULT_STROKE_WIDTH},
        animated=True,
    )


def describe(annotation: EdgeAnnotation) -> Dict[str, Any]:
    """Flatten an annotation into the edge field names used on the wire."""
    return {
        "style": dict(annotation.style),
        "animated": annotation.animated,
        "label": annotation.label,
        "markerEnd": annotation.marker_end,
        "className": annotation.class_name,
    }
