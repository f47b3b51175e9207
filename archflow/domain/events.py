"""Domain events for decoupled side effects and integrations."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List
from uuid import uuid4

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for all domain events."""
    event_id: str
    timestamp: datetime
    aggregate_id: str

    def __post_init__(self):
        if not self.event_id:
            object.__setattr__(self, 'event_id', str(uuid4()))
        if not self.timestamp:
            object.__setattr__(self, 'timestamp', datetime.now())


@dataclass
class FlowCreated(DomainEvent):
    """Raised when a new flow is created."""
    name: str


@dataclass
class FlowDeleted(DomainEvent):
    """Raised when a flow is deleted."""
    name: str


@dataclass
class NodeAdded(DomainEvent):
    """Raised when a node is added to a flow."""
    node_id: str
    kind: str


@dataclass
class NodeUpdated(DomainEvent):
    """Raised when a node's kind, position or attributes change."""
    node_id: str
    changed_fields: List[str]


@dataclass
class NodeRemoved(DomainEvent):
    """Raised when a node and its edges are removed."""
    node_id: str
    edges_removed: int


@dataclass
class EdgeConnected(DomainEvent):
    """Raised when two nodes are connected."""
    edge_id: str
    source_id: str
    target_id: str
    label: str | None


@dataclass
class EdgeRemoved(DomainEvent):
    """Raised when an edge is removed."""
    edge_id: str


@dataclass
class EdgesReannotated(DomainEvent):
    """Raised when the synchronizer recomputed edge annotations."""
    edge_count: int


@dataclass
class FlowImported(DomainEvent):
    """Raised when a flow's graph is replaced wholesale."""
    node_count: int
    edge_count: int


@dataclass
class FlowPersisted(DomainEvent):
    """Raised after a snapshot reached the flow store."""
    node_count: int
    edge_count: int


@dataclass
class PersistenceFailed(DomainEvent):
    """Raised when the flow store rejected a snapshot."""
    error: str


class DomainEventPublisher:
    """Singleton publisher for domain events."""

    _instance: DomainEventPublisher | None = None
    _subscribers: Dict[type, List[Callable[[DomainEvent], None]]]

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._subscribers = {}
        return cls._instance

    def subscribe(self, event_type: type[DomainEvent], handler: Callable[[DomainEvent], None]) -> None:
        """Subscribe a handler to an event type."""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers."""
        event_type = type(event)
        if event_type in self._subscribers:
            for handler in self._subscribers[event_type]:
                try:
                    handler(event)
                except Exception:
                    # Log error but don't fail the main operation
                    logger.exception("Event handler error for %s", event_type.__name__)

    def clear_subscribers(self) -> None:
        """Clear all subscribers (useful for testing)."""
        self._subscribers = {}


# Singleton instance
event_publisher = DomainEventPublisher()
