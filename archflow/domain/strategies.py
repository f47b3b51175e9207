"""Strategy pattern for flow export formats."""
from __future__ import annotations

import io
import json
import logging
import re
import zipfile
from typing import Any, Dict, List, Protocol, Sequence

from archflow.domain.errors import ValidationError
from archflow.domain.graph import Edge, Node, Position, index_nodes
from archflow.domain.taxonomy import EntityType, default_attributes, parse_entity_type

logger = logging.getLogger(__name__)


class FlowExportStrategy(Protocol):
    """Protocol for flow export strategies."""

    media_type: str

    def export(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> bytes:
        """Render the graph to bytes."""
        ...

    def get_format_name(self) -> str:
        """Return the format name."""
        ...

    def get_filename(self) -> str:
        """Suggested download filename."""
        ...


def flow_document(nodes: Sequence[Node], edges: Sequence[Edge], include_derived: bool = True) -> Dict[str, Any]:
    """The ``{nodes, edges}`` document shared by export and persistence."""
    return {
        "nodes": [node.to_dict() for node in nodes],
        "edges": [edge.to_dict(include_derived=include_derived) for edge in edges],
    }


class JsonFlowExportStrategy:
    """Full flow as indented JSON."""

    media_type = "application/json"

    def export(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> bytes:
        return json.dumps(flow_document(nodes, edges), indent=2).encode("utf-8")

    def get_format_name(self) -> str:
        return "json"

    def get_filename(self) -> str:
        return "flow-export.json"


def _safe_filename(label: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", label, flags=re.IGNORECASE).lower()


def _labels(nodes: List[Node], kind: EntityType, fallback: str) -> List[str]:
    return [
        str(n.attributes.get("label") or fallback)
        for n in nodes
        if parse_entity_type(n.kind) == kind
    ]


def agent_markdown(agent: Node, nodes: Sequence[Node], edges: Sequence[Edge]) -> str:
    """Markdown brief for one LLM agent: front matter, connections, system prompt."""
    by_id = index_nodes(list(nodes))
    label = agent.attributes.get("label") or agent.id
    model_id = agent.attributes.get("modelId") or "unknown"
    provider = agent.attributes.get("provider") or "unknown"
    system_prompt = agent.attributes.get("systemPrompt") or ""

    upstream = [by_id[e.source_id] for e in edges if e.target_id == agent.id and e.source_id in by_id]
    downstream = [by_id[e.target_id] for e in edges if e.source_id == agent.id and e.target_id in by_id]

    clients = _labels(upstream, EntityType.CLIENT_INTERFACE, "Client")
    agents = _labels(upstream, EntityType.LLM_AGENT, "Unknown Agent")
    mcps = _labels(downstream, EntityType.MCP_SERVER, "Unknown MCP")

    context = f"This agent is designed to run on the **{model_id}** model.\n\n"
    context += "### Context & Connections\n"
    if clients:
        context += f"- **Receives input from:** Client Interface ({', '.join(clients)}).\n"
    if agents:
        context += f"- **Receives input from Agents:** {', '.join(agents)}.\n"
    if mcps:
        joined = ", ".join(mcps)
        context += f"- **Connected MCP Servers:** {joined}.\n"
        context += (
            f"\n**IMPORTANT INSTRUCTION:** You have access to the following MCP Servers: {joined}. "
            "You should attempt to use their tools when necessary to fulfill the request. "
            "IF an MCP tool call fails or the server is unreachable, you MUST STOP the process "
            "and ask the user how to proceed. Do not hallucinate a response if the tool fails.\n"
        )
    else:
        context += "- **No MCP Servers connected.**\n"

    return (
        "---\n"
        f"title: {label}\n"
        "type: agent\n"
        f"model: {model_id}\n"
        f"provider: {provider}\n"
        "---\n\n"
        "# Context & Instructions\n\n"
        f"{context}\n"
        "# System Prompt\n\n"
        f"{system_prompt}\n"
    )


class WorkbenchZipExportStrategy:
    """One markdown brief per LLM agent, zipped under ``workflow/``."""

    media_type = "application/zip"

    def export(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> bytes:
        agents = [n for n in nodes if parse_entity_type(n.kind) == EntityType.LLM_AGENT]
        if not agents:
            raise ValidationError("No LLM Agent nodes to export")

        # Same label twice: the later agent wins the file name.
        files: Dict[str, str] = {}
        for agent in agents:
            label = str(agent.attributes.get("label") or agent.id)
            files[f"workflow/{_safe_filename(label)}.md"] = agent_markdown(agent, nodes, edges)

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, content in files.items():
                archive.writestr(name, content)
        return buffer.getvalue()

    def get_format_name(self) -> str:
        return "workbench"

    def get_filename(self) -> str:
        return "project-workflow.zip"


_MCP_EXPORT_KINDS = (EntityType.MCP_SERVER, EntityType.DATABASE)


def merge_mcp_configs(nodes: Sequence[Node]) -> Dict[str, Any]:
    """Combine every server node's single-server config into one ``mcpServers`` map."""
    servers: Dict[str, Any] = {}
    for node in nodes:
        if parse_entity_type(node.kind) not in _MCP_EXPORT_KINDS:
            continue
        raw = node.attributes.get("mcpConfig")
        if not raw:
            continue
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError:
                logger.error(f"Failed to parse MCP config for node {node.id}")
                continue
        if not isinstance(raw, dict):
            logger.error(f"MCP config for node {node.id} is not an object")
            continue
        servers.update(raw)
    return {"mcpServers": servers}


class MCPConfigExportStrategy:
    """Claude-desktop style ``{"mcpServers": {...}}`` document."""

    media_type = "application/json"

    def export(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> bytes:
        return json.dumps(merge_mcp_configs(nodes), indent=2).encode("utf-8")

    def get_format_name(self) -> str:
        return "mcp"

    def get_filename(self) -> str:
        return "mcp-config.json"


# Grid used when dropping imported MCP servers onto the canvas
_GRID_ORIGIN = (500, 300)
_GRID_START = 50
_GRID_ROW_STEP = 120
_GRID_COLUMN_STEP = 250
_GRID_MAX_ROW = 400


def nodes_from_mcp_config(config: Any, id_suffix: str) -> List[Node]:
    """One MCP Server node per entry of ``config["mcpServers"]``."""
    if not isinstance(config, dict) or not isinstance(config.get("mcpServers"), dict):
        raise ValidationError("Invalid configuration file: it must contain an 'mcpServers' object")

    nodes = []
    x_offset = _GRID_START
    y_offset = _GRID_START
    for name, server_config in config["mcpServers"].items():
        attributes = default_attributes(EntityType.MCP_SERVER)
        attributes.update({
            "label": name,
            "shortName": name,
            "mcpConfig": json.dumps({name: server_config}, indent=2),
        })
        nodes.append(Node(
            id=f"mcp-{name}-{id_suffix}",
            kind=EntityType.MCP_SERVER.value,
            position=Position(x=_GRID_ORIGIN[0] + x_offset, y=_GRID_ORIGIN[1] + y_offset),
            attributes=attributes,
        ))

        y_offset += _GRID_ROW_STEP
        if y_offset > _GRID_MAX_ROW:
            y_offset = _GRID_START
            x_offset += _GRID_COLUMN_STEP
    return nodes


class ExportStrategyFactory:
    """Factory to select an export strategy by format name."""

    _strategies = {
        "json": JsonFlowExportStrategy,
        "flow": JsonFlowExportStrategy,
        "workbench": WorkbenchZipExportStrategy,
        "zip": WorkbenchZipExportStrategy,
        "mcp": MCPConfigExportStrategy,
    }

    @classmethod
    def get_strategy(cls, export_format: str) -> FlowExportStrategy:
        """Get export strategy for a format."""
        strategy_class = cls._strategies.get(export_format.lower())
        if strategy_class is None:
            raise ValidationError(f"Unsupported export format: {export_format}")
        return strategy_class()
