"""Keeps edge annotations consistent with the current state of their endpoints."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from archflow.domain.graph import Edge, Node, index_nodes
from archflow.domain.pricing import ModelPriceIndex
from archflow.domain.validation import validate_connection

logger = logging.getLogger(__name__)

Fingerprint = Tuple[Tuple[str, str, Optional[str]], ...]


def node_fingerprint(nodes: Sequence[Node]) -> Fingerprint:
    """The node fields edge annotations depend on: id, kind and model."""
    return tuple((n.id, n.kind, n.model_id) for n in nodes)


class GraphSynchronizer:
    """Re-runs the connection validator over every edge when the node signature changes.

    Moving a node or editing an unrelated attribute leaves the fingerprint
    unchanged, and the edges are returned untouched.
    """

    def __init__(self, prices: Optional[ModelPriceIndex] = None) -> None:
        self.prices = prices
        self._last_fingerprint: Optional[Fingerprint] = None

    def annotate(self, edge: Edge, source: Node, target: Node) -> Edge:
        return edge.with_annotation(validate_connection(source, target, self.prices))

    def reannotate_all(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> List[Edge]:
        by_id = index_nodes(list(nodes))
        result = []
        for edge in edges:
            source = by_id.get(edge.source_id)
            target = by_id.get(edge.target_id)
            if source is None or target is None:
                result.append(edge)
                continue
            result.append(self.annotate(edge, source, target))
        return result

    def on_nodes_changed(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> Optional[List[Edge]]:
        """New edge list if the node signature moved, else None."""
        fingerprint = node_fingerprint(nodes)
        if fingerprint == self._last_fingerprint:
            return None
        self._last_fingerprint = fingerprint
        logger.debug(f"[SYNC] Node signature changed, re-annotating {len(edges)} edges")
        return self.reannotate_all(nodes, edges)

    def force_resync(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> List[Edge]:
        self._last_fingerprint = node_fingerprint(nodes)
        return self.reannotate_all(nodes, edges)

    def set_prices(self, prices: Optional[ModelPriceIndex]) -> None:
        self.prices = prices
        self._last_fingerprint = None
