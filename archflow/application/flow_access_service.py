"""Service for flow access validation."""
from __future__ import annotations

from typing import Any, Dict

from archflow.storage.interface import FlowStorage
from archflow.domain.errors import NotFoundError


class FlowAccessService:
    """Centralizes flow existence checks to avoid controller duplication."""

    def __init__(self, storage: FlowStorage) -> None:
        self._storage = storage

    def require_flow_exists(self, flow_id: str) -> Dict[str, Any]:
        """Return the flow info, raising NotFoundError if it doesn't exist."""
        flow = self._storage.get_flow(flow_id)
        if not flow:
            raise NotFoundError(f"Flow not found: {flow_id}")
        return flow
