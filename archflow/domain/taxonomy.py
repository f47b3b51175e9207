"""Entity kinds and the capability group each one resolves to."""
from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, Optional


class EntityType(str, Enum):
    """User-facing node kinds."""
    LLM_AGENT = "LLM Agent"
    MCP_SERVER = "MCP Server"
    DATABASE = "Database"
    STORAGE = "Storage"
    CLIENT_INTERFACE = "Client Interface"
    ANNOTATION = "Annotation"
    SYSTEM_ERROR = "System Error"


class CapabilityGroup(str, Enum):
    """Functional role of a node for connection validation."""
    AGENT = "agent"
    TOOL_PROVIDER = "tool_provider"
    CLIENT = "client"
    ERROR_SINK = "error_sink"
    DECORATION = "decoration"
    UNKNOWN = "unknown"


_CAPABILITIES: Dict[EntityType, CapabilityGroup] = {
    EntityType.LLM_AGENT: CapabilityGroup.AGENT,
    EntityType.MCP_SERVER: CapabilityGroup.TOOL_PROVIDER,
    EntityType.DATABASE: CapabilityGroup.TOOL_PROVIDER,
    EntityType.STORAGE: CapabilityGroup.TOOL_PROVIDER,
    EntityType.CLIENT_INTERFACE: CapabilityGroup.CLIENT,
    EntityType.ANNOTATION: CapabilityGroup.DECORATION,
    EntityType.SYSTEM_ERROR: CapabilityGroup.ERROR_SINK,
}

# Normalized spelling -> kind
_ALIASES: Dict[str, EntityType] = {
    " ".join(kind.value.lower().split()): kind for kind in EntityType
}


def _normalize(value: str) -> str:
    return " ".join(value.lower().split())


def parse_entity_type(value: Any) -> Optional[EntityType]:
    """Map a free-form kind string onto the closed set, or None if unknown."""
    if isinstance(value, EntityType):
        return value
    if not isinstance(value, str):
        return None
    return _ALIASES.get(_normalize(value))


def resolve_capability(kind: Any) -> CapabilityGroup:
    """Resolve a node kind to its capability group.

    Never raises: anything outside the closed set of kinds resolves to
    ``CapabilityGroup.UNKNOWN`` so callers can keep going with a degraded
    rendering.
    """
    entity_type = parse_entity_type(kind)
    if entity_type is None:
        return CapabilityGroup.UNKNOWN
    return _CAPABILITIES[entity_type]


def default_attributes(kind: EntityType) -> Dict[str, Any]:
    """Starting attributes for a freshly created node of ``kind``."""
    base: Dict[str, Any] = {
        "label": f"New {kind.value}",
        "shortName": kind.value.split(" ")[0],
    }

    if kind == EntityType.LLM_AGENT:
        base.update({
            "provider": "OpenAI",
            "modelId": "gpt-4",
            "cost": 0.03,
            "systemPrompt": "You are a helpful assistant.",
            "taskComplexity": "simple",
            "baseTokens": 500,
            "mcpFactor": 1,
            "userHasFreeTier": False,
        })
    elif kind == EntityType.MCP_SERVER:
        base.update({"tools": ["read_file", "write_file"], "resources": "filesystem"})
    elif kind == EntityType.DATABASE:
        base.update({
            "tools": ["query", "insert", "update"],
            "resources": "postgresql://localhost:5432",
        })
    elif kind == EntityType.STORAGE:
        base.update({
            "tools": ["upload", "download", "delete"],
            "resources": "s3://bucket-name",
        })
    elif kind == EntityType.CLIENT_INTERFACE:
        base.update({
            "interfaceType": "cli",
            "transport": "stdio",
            "sessionId": f"session-{int(time.time() * 1000)}",
            "env": "USER=developer\nSESSION_ID=dev-01",
        })
    elif kind == EntityType.ANNOTATION:
        base.update({"text": ""})

    return base
