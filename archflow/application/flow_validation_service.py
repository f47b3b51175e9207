"""Service for flow validation logic."""
from __future__ import annotations

from archflow.storage.interface import FlowStorage
from archflow.domain.errors import ValidationError, ConflictError


class FlowValidationService:
    """Validates flow operations."""

    def __init__(self, storage: FlowStorage) -> None:
        self._storage = storage

    def validate_name(self, name: str) -> str:
        """Validate and normalize flow name."""
        if not name or not name.strip():
            raise ValidationError("Flow name is required and cannot be empty")
        return name.strip()

    def check_duplicate_name(self, name: str) -> None:
        """Check if flow name already exists."""
        for flow in self._storage.list_flows():
            if flow["name"].lower() == name.lower():
                raise ConflictError(f"Flow with name '{name}' already exists")
