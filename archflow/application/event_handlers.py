"""Event handlers for domain events."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from archflow.domain.events import (
        FlowCreated,
        FlowDeleted,
        NodeAdded,
        NodeRemoved,
        EdgeConnected,
        FlowImported,
        FlowPersisted,
        PersistenceFailed,
    )

logger = logging.getLogger(__name__)


class AuditLogHandler:
    """Logs domain events for audit trail."""
    
    def handle_flow_created(self, event: FlowCreated) -> None:
        logger.info(f"[AUDIT] Flow created: {event.aggregate_id} - {event.name}")
    
    def handle_flow_deleted(self, event: FlowDeleted) -> None:
        logger.info(f"[AUDIT] Flow deleted: {event.aggregate_id} - {event.name}")
    
    def handle_node_added(self, event: NodeAdded) -> None:
        logger.info(f"[AUDIT] Node added: {event.node_id} ({event.kind}) in flow {event.aggregate_id}")
    
    def handle_node_removed(self, event: NodeRemoved) -> None:
        logger.info(
            f"[AUDIT] Node removed: {event.node_id} in flow {event.aggregate_id}, "
            f"{event.edges_removed} edge(s) dropped"
        )
    
    def handle_flow_imported(self, event: FlowImported) -> None:
        logger.info(
            f"[AUDIT] Flow {event.aggregate_id} replaced: "
            f"{event.node_count} nodes, {event.edge_count} edges"
        )


class ProtocolViolationHandler:
    """Flags connections that need an agent in between."""
    
    def handle_edge_connected(self, event: EdgeConnected) -> None:
        if event.label and event.label.startswith("Protocol Error"):
            logger.warning(
                f"[VALIDATION] {event.source_id} -> {event.target_id} in flow "
                f"{event.aggregate_id}: {event.label}"
            )


class PersistenceMonitor:
    """Tracks the outcome of debounced saves."""
    
    def handle_flow_persisted(self, event: FlowPersisted) -> None:
        logger.debug(f"[PERSIST] Flow {event.aggregate_id} saved ({event.node_count} nodes)")
    
    def handle_persistence_failed(self, event: PersistenceFailed) -> None:
        # Local state stays; the next debounce cycle retries with a newer snapshot
        logger.warning(f"[PERSIST] Flow {event.aggregate_id} not saved: {event.error}")


def register_event_handlers():
    """Register all event handlers with the publisher."""
    from archflow.domain.events import (
        event_publisher,
        FlowCreated,
        FlowDeleted,
        NodeAdded,
        NodeRemoved,
        EdgeConnected,
        FlowImported,
        FlowPersisted,
        PersistenceFailed,
    )
    
    audit = AuditLogHandler()
    protocol = ProtocolViolationHandler()
    persistence = PersistenceMonitor()
    
    # Audit handlers
    event_publisher.subscribe(FlowCreated, audit.handle_flow_created)
    event_publisher.subscribe(FlowDeleted, audit.handle_flow_deleted)
    event_publisher.subscribe(NodeAdded, audit.handle_node_added)
    event_publisher.subscribe(NodeRemoved, audit.handle_node_removed)
    event_publisher.subscribe(FlowImported, audit.handle_flow_imported)
    
    # Connection feedback
    event_publisher.subscribe(EdgeConnected, protocol.handle_edge_connected)
    
    # Persistence
    event_publisher.subscribe(FlowPersisted, persistence.handle_flow_persisted)
    event_publisher.subscribe(PersistenceFailed, persistence.handle_persistence_failed)
