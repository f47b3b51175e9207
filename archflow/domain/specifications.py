"""Specification pattern for reusable node predicates."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from archflow.domain.graph import Node
from archflow.domain.pricing import HIGH_RATE_LIMIT, LOW_RATE_LIMIT, estimate
from archflow.domain.taxonomy import CapabilityGroup


class Specification(ABC):
    """Abstract base for specifications (node filters)."""

    @abstractmethod
    def is_satisfied_by(self, candidate: Node) -> bool:
        """Check if candidate satisfies this specification."""
        pass

    def and_(self, other: Specification) -> Specification:
        """Combine with AND logic."""
        return AndSpecification(self, other)

    def or_(self, other: Specification) -> Specification:
        """Combine with OR logic."""
        return OrSpecification(self, other)

    def not_(self) -> Specification:
        """Negate this specification."""
        return NotSpecification(self)


class AndSpecification(Specification):
    """AND composite specification."""

    def __init__(self, left: Specification, right: Specification):
        self.left = left
        self.right = right

    def is_satisfied_by(self, candidate: Node) -> bool:
        return self.left.is_satisfied_by(candidate) and self.right.is_satisfied_by(candidate)


class OrSpecification(Specification):
    """OR composite specification."""

    def __init__(self, left: Specification, right: Specification):
        self.left = left
        self.right = right

    def is_satisfied_by(self, candidate: Node) -> bool:
        return self.left.is_satisfied_by(candidate) or self.right.is_satisfied_by(candidate)


class NotSpecification(Specification):
    """NOT specification."""

    def __init__(self, spec: Specification):
        self.spec = spec

    def is_satisfied_by(self, candidate: Node) -> bool:
        return not self.spec.is_satisfied_by(candidate)


class HasCapability(Specification):
    """Nodes whose kind resolves to a given capability group."""

    def __init__(self, group: CapabilityGroup):
        self.group = group

    def is_satisfied_by(self, node: Node) -> bool:
        return node.capability == self.group


class BurnRateBelow(Specification):
    """Nodes whose estimated burn rate is strictly below a limit."""

    def __init__(self, limit: float):
        self.limit = limit

    def is_satisfied_by(self, node: Node) -> bool:
        return estimate(node.attributes).rate < self.limit


class BurnRateAtLeast(Specification):
    """Nodes whose estimated burn rate reaches a limit."""

    def __init__(self, limit: float):
        self.limit = limit

    def is_satisfied_by(self, node: Node) -> bool:
        return estimate(node.attributes).rate >= self.limit


IsAgent = HasCapability(CapabilityGroup.AGENT)
IsToolProvider = HasCapability(CapabilityGroup.TOOL_PROVIDER)
LightAgent = IsAgent.and_(BurnRateBelow(LOW_RATE_LIMIT))
HeavyAgent = IsAgent.and_(BurnRateAtLeast(HIGH_RATE_LIMIT))


def filter_by_specification(items: List[Node], spec: Specification) -> List[Node]:
    """Filter a collection using a specification."""
    return [item for item in items if spec.is_satisfied_by(item)]
