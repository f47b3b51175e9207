"""An editing session over one flow: the in-memory graph plus its derived state.

The in-memory graph is the source of truth. Every mutation replaces the
node/edge collections as a unit, re-runs the synchronizer and schedules a
debounced push of the durable snapshot to the flow store.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

import pydantic

from archflow.application.debounce import DebouncedPersister, TimerFactory
from archflow.application.graph_synchronizer import GraphSynchronizer
from archflow.domain.commands import (
    Command,
    CommandDispatcher,
    CreateNode,
    ExportFlow,
    ExportMCPConfig,
    ExportWorkbench,
    ImportFlow,
    ImportMCPConfig,
)
from archflow.domain.errors import NotFoundError, ValidationError
from archflow.domain.events import (
    EdgeConnected,
    EdgeRemoved,
    EdgesReannotated,
    FlowImported,
    FlowPersisted,
    NodeAdded,
    NodeRemoved,
    NodeUpdated,
    PersistenceFailed,
    event_publisher,
)
from archflow.domain.graph import (
    ArchitecturePattern,
    BurnRate,
    Edge,
    EdgeAnnotation,
    Node,
    Position,
    remove_node,
)
from archflow.domain.pricing import ModelPriceIndex, capacity_class, estimate
from archflow.domain.strategies import (
    ExportStrategyFactory,
    flow_document,
    merge_mcp_configs,
    nodes_from_mcp_config,
)
from archflow.domain.taxonomy import CapabilityGroup, default_attributes, parse_entity_type
from archflow.domain.topology import detect_patterns
from archflow.domain.validation import validate_connection
from archflow.schemas.api_schemas import FlowDocument
from archflow.storage.interface import FlowStorage

logger = logging.getLogger(__name__)

DEFAULT_DROP_POSITION = Position(x=400, y=300)


def _to_position(value: Dict[str, Any]) -> Position:
    return Position(x=float(value.get("x", 0)), y=float(value.get("y", 0)))


def parse_flow_document(payload: Any) -> tuple[List[Node], List[Edge]]:
    """Validate an imported ``{nodes, edges}`` document without touching any session."""
    if not isinstance(payload, dict):
        raise ValidationError("Flow document must be a JSON object with 'nodes' and 'edges'")
    try:
        document = FlowDocument.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Malformed flow document: {e.error_count()} error(s)") from e

    nodes, edges = document.to_domain()
    node_ids = [n.id for n in nodes]
    if len(set(node_ids)) != len(node_ids):
        raise ValidationError("Flow document contains duplicate node ids")
    edge_ids = [e.id for e in edges]
    if len(set(edge_ids)) != len(edge_ids):
        raise ValidationError("Flow document contains duplicate edge ids")
    known = set(node_ids)
    for edge in edges:
        if edge.source_id not in known or edge.target_id not in known:
            raise ValidationError(f"Edge {edge.id} references an unknown node")
    return nodes, edges


class FlowSession:
    """Owns the nodes/edges of one flow and everything derived from them."""

    def __init__(
        self,
        flow_id: str,
        storage: FlowStorage,
        prices: Optional[ModelPriceIndex] = None,
        debounce_seconds: float = 1.0,
        timer_factory: Optional[TimerFactory] = None,
        nodes: Sequence[Node] = (),
        edges: Sequence[Edge] = (),
    ) -> None:
        self.flow_id = flow_id
        self._storage = storage
        self._lock = threading.RLock()
        self._synchronizer = GraphSynchronizer(prices)
        persister_kwargs = {"timer_factory": timer_factory} if timer_factory else {}
        self._persister = DebouncedPersister(
            debounce_seconds,
            self._push_snapshot,
            on_error=self._report_persistence_failure,
            **persister_kwargs,
        )
        self._nodes: List[Node] = list(nodes)
        self._edges: List[Edge] = self._synchronizer.force_resync(self._nodes, list(edges))
        self.dispatcher = CommandDispatcher()
        self._register_commands()

    @classmethod
    def load(cls, flow_id: str, storage: FlowStorage, **kwargs) -> FlowSession:
        """Open a session over stored data. Stored annotations are never trusted."""
        data = storage.load_flow_data(flow_id)
        try:
            nodes, edges = FlowDocument.model_validate(data).to_domain()
        except pydantic.ValidationError as e:
            raise ValidationError(f"Stored flow {flow_id} is malformed") from e
        known = {n.id for n in nodes}
        kept = [e for e in edges if e.source_id in known and e.target_id in known]
        if len(kept) != len(edges):
            logger.warning(f"[SYNC] Dropped {len(edges) - len(kept)} dangling edges loading flow {flow_id}")
        return cls(flow_id, storage, nodes=nodes, edges=kept, **kwargs)

    # Read side

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes)

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges)

    @property
    def prices(self) -> Optional[ModelPriceIndex]:
        return self._synchronizer.prices

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return flow_document(self._nodes, self._edges)

    def get_node(self, node_id: str) -> Node:
        for node in self._nodes:
            if node.id == node_id:
                return node
        raise NotFoundError(f"Node not found: {node_id}")

    def patterns(self) -> List[ArchitecturePattern]:
        with self._lock:
            return detect_patterns(self._nodes, self._edges)

    def burn_rate(self, node_id: str) -> BurnRate:
        return estimate(self.get_node(node_id).attributes)

    def burn_rates(self) -> Dict[str, Dict[str, Any]]:
        report = {}
        for node in self.nodes:
            if node.capability != CapabilityGroup.AGENT:
                continue
            report[node.id] = {
                "burnRate": estimate(node.attributes).to_dict(),
                "capacityClass": capacity_class(node.model_id),
            }
        return report

    def preview_connection(self, source_id: str, target_id: str) -> EdgeAnnotation:
        return validate_connection(self.get_node(source_id), self.get_node(target_id), self.prices)

    # Write side

    def _commit(self, nodes: List[Node], edges: List[Edge], nodes_changed: bool = True) -> None:
        """Swap in new collections, resync annotations, schedule persistence."""
        if nodes_changed:
            resynced = self._synchronizer.on_nodes_changed(nodes, edges)
            if resynced is not None:
                edges = resynced
                event_publisher.publish(EdgesReannotated(
                    event_id="", timestamp=None, aggregate_id=self.flow_id, edge_count=len(edges),
                ))
        self._nodes = nodes
        self._edges = edges
        self._persister.schedule(flow_document(nodes, edges, include_derived=False))

    def add_node(
        self,
        entity_type: str,
        position: Optional[Dict[str, float]] = None,
        attributes: Optional[Dict[str, Any]] = None,
        node_id: Optional[str] = None,
    ) -> Node:
        kind = parse_entity_type(entity_type)
        if kind is None:
            raise ValidationError(f"Unknown entity type: {entity_type}")

        node_attributes = default_attributes(kind)
        node_attributes.update(attributes or {})
        node = Node(
            id=node_id or f"node-{uuid4().hex[:12]}",
            kind=kind.value,
            position=_to_position(position) if position else DEFAULT_DROP_POSITION,
            attributes=node_attributes,
        )
        with self._lock:
            if any(n.id == node.id for n in self._nodes):
                raise ValidationError(f"Node id already in use: {node.id}")
            self._commit(self._nodes + [node], self._edges)

        event_publisher.publish(NodeAdded(
            event_id="", timestamp=None, aggregate_id=self.flow_id, node_id=node.id, kind=node.kind,
        ))
        return node

    def update_node(
        self,
        node_id: str,
        kind: Optional[str] = None,
        position: Optional[Dict[str, float]] = None,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Node:
        """Change a node's kind, position and/or merge attributes into it."""
        changed = []
        with self._lock:
            current = self.get_node(node_id)
            updated = current
            if kind is not None:
                parsed = parse_entity_type(kind)
                if parsed is None:
                    raise ValidationError(f"Unknown entity type: {kind}")
                updated = replace(updated, kind=parsed.value)
                changed.append("kind")
            if position is not None:
                updated = replace(updated, position=_to_position(position))
                changed.append("position")
            if attributes is not None:
                updated = replace(updated, attributes={**updated.attributes, **attributes})
                changed.append("attributes")

            nodes = [updated if n.id == node_id else n for n in self._nodes]
            self._commit(nodes, self._edges)

        event_publisher.publish(NodeUpdated(
            event_id="", timestamp=None, aggregate_id=self.flow_id, node_id=node_id, changed_fields=changed,
        ))
        return updated

    def delete_node(self, node_id: str) -> int:
        """Remove a node and every edge touching it. Returns the number of edges dropped."""
        with self._lock:
            self.get_node(node_id)
            nodes, edges = remove_node(self._nodes, self._edges, node_id)
            dropped = len(self._edges) - len(edges)
            self._commit(nodes, edges)

        event_publisher.publish(NodeRemoved(
            event_id="", timestamp=None, aggregate_id=self.flow_id, node_id=node_id, edges_removed=dropped,
        ))
        return dropped

    def connect(self, source_id: str, target_id: str, edge_id: Optional[str] = None) -> Edge:
        """Connect two nodes. Illegal pairs are kept, annotated as protocol errors."""
        with self._lock:
            source = self.get_node(source_id)
            target = self.get_node(target_id)
            for existing in self._edges:
                if existing.source_id == source_id and existing.target_id == target_id:
                    return existing

            edge = Edge(
                id=edge_id or f"e-{source_id}-{target_id}",
                source_id=source_id,
                target_id=target_id,
            )
            if any(e.id == edge.id for e in self._edges):
                raise ValidationError(f"Edge id already in use: {edge.id}")
            edge = self._synchronizer.annotate(edge, source, target)
            self._commit(self._nodes, self._edges + [edge], nodes_changed=False)

        event_publisher.publish(EdgeConnected(
            event_id="", timestamp=None, aggregate_id=self.flow_id,
            edge_id=edge.id, source_id=source_id, target_id=target_id, label=edge.label,
        ))
        return edge

    def disconnect(self, edge_id: str) -> None:
        with self._lock:
            edges = [e for e in self._edges if e.id != edge_id]
            if len(edges) == len(self._edges):
                raise NotFoundError(f"Edge not found: {edge_id}")
            self._commit(self._nodes, edges, nodes_changed=False)

        event_publisher.publish(EdgeRemoved(
            event_id="", timestamp=None, aggregate_id=self.flow_id, edge_id=edge_id,
        ))

    def replace_graph(self, nodes: List[Node], edges: List[Edge]) -> None:
        """Swap the whole graph, annotations recomputed from scratch."""
        with self._lock:
            self._commit(list(nodes), self._synchronizer.force_resync(nodes, edges), nodes_changed=False)

        event_publisher.publish(FlowImported(
            event_id="", timestamp=None, aggregate_id=self.flow_id,
            node_count=len(nodes), edge_count=len(edges),
        ))

    def import_flow(self, payload: Any) -> Dict[str, Any]:
        # Parsed and checked in full before the current graph is touched
        nodes, edges = parse_flow_document(payload)
        self.replace_graph(nodes, edges)
        return self.snapshot()

    def import_mcp_config(self, config: Any) -> List[Node]:
        new_nodes = nodes_from_mcp_config(config, id_suffix=str(int(time.time() * 1000)))
        with self._lock:
            taken = {n.id for n in self._nodes}
            clashes = [n.id for n in new_nodes if n.id in taken]
            if clashes:
                raise ValidationError(f"Node ids already in use: {', '.join(clashes)}")
            self._commit(self._nodes + new_nodes, self._edges)
        logger.info(f"Imported {len(new_nodes)} MCP servers into flow {self.flow_id}")
        return new_nodes

    def export(self, export_format: str) -> bytes:
        strategy = ExportStrategyFactory.get_strategy(export_format)
        with self._lock:
            nodes, edges = list(self._nodes), list(self._edges)
        return strategy.export(nodes, edges)

    def set_prices(self, prices: Optional[ModelPriceIndex]) -> None:
        """New price data restyles every agent edge."""
        with self._lock:
            self._synchronizer.set_prices(prices)
            self._edges = self._synchronizer.force_resync(self._nodes, self._edges)

    # Commands

    def _register_commands(self) -> None:
        self.dispatcher.register(
            CreateNode, lambda c: self.add_node(c.entity_type, c.position, c.attributes)
        )
        self.dispatcher.register(ImportFlow, lambda c: self.import_flow(c.payload))
        self.dispatcher.register(ExportFlow, lambda c: self.export("json"))
        self.dispatcher.register(ExportWorkbench, lambda c: self.export("workbench"))
        self.dispatcher.register(ExportMCPConfig, lambda c: merge_mcp_configs(self.nodes))
        self.dispatcher.register(ImportMCPConfig, lambda c: self.import_mcp_config(c.config))

    def execute(self, command: Command) -> Any:
        """Dispatch a command; the session's own handler result is returned."""
        return self.dispatcher.dispatch(command)[0]

    # Persistence

    def _push_snapshot(self, snapshot: Dict[str, Any]) -> None:
        self._storage.save_flow_data(self.flow_id, snapshot)
        event_publisher.publish(FlowPersisted(
            event_id="", timestamp=None, aggregate_id=self.flow_id,
            node_count=len(snapshot["nodes"]), edge_count=len(snapshot["edges"]),
        ))

    def _report_persistence_failure(self, error: Exception) -> None:
        event_publisher.publish(PersistenceFailed(
            event_id="", timestamp=None, aggregate_id=self.flow_id, error=str(error),
        ))

    def flush(self) -> bool:
        """Write the pending snapshot immediately (PersistenceError propagates)."""
        return self._persister.flush()

    @property
    def has_pending_save(self) -> bool:
        return self._persister.has_pending

    def dispose(self) -> None:
        """Stop the session: no write happens after this returns."""
        self._persister.cancel()
        self.dispatcher.unregister_all()
