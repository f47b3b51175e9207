"""Tests for flow export strategies and MCP config import."""
from __future__ import annotations

import io
import json
import zipfile

import pytest

from archflow.domain.errors import ValidationError
from archflow.domain.graph import Position
from archflow.domain.strategies import (
    ExportStrategyFactory,
    JsonFlowExportStrategy,
    MCPConfigExportStrategy,
    WorkbenchZipExportStrategy,
    agent_markdown,
    merge_mcp_configs,
    nodes_from_mcp_config,
)

from factories import make_agent, make_edge, make_node


@pytest.fixture
def workbench_graph():
    client = make_node("client", "Client Interface", label="Web UI")
    planner = make_agent("planner", label="Planner", modelId="openai/gpt-4", systemPrompt="Plan the work.")
    writer = make_agent("writer", label="Writer Bot", modelId="anthropic/claude-3-haiku")
    github = make_node("github", "MCP Server", label="GitHub")
    db = make_node("db", "Database", label="Postgres")
    nodes = [client, planner, writer, github, db]
    edges = [
        make_edge("client", "planner"),
        make_edge("planner", "writer"),
        make_edge("writer", "github"),
        make_edge("writer", "db"),
    ]
    return nodes, edges


class TestJsonExport:
    """Test the JSON flow export."""

    def test_exports_nodes_and_annotated_edges(self):
        nodes = [make_agent("a"), make_node("b", "Storage")]
        edge = make_edge("a", "b")
        edge.label = "Protocol Error"
        document = json.loads(JsonFlowExportStrategy().export(nodes, [edge]))

        assert [n["id"] for n in document["nodes"]] == ["a", "b"]
        assert document["edges"][0]["sourceId"] == "a"
        assert document["edges"][0]["label"] == "Protocol Error"

    def test_metadata(self):
        strategy = JsonFlowExportStrategy()
        assert strategy.get_format_name() == "json"
        assert strategy.get_filename() == "flow-export.json"
        assert strategy.media_type == "application/json"


class TestWorkbenchExport:
    """Test the markdown-per-agent zip export."""

    def test_one_file_per_agent(self, workbench_graph):
        nodes, edges = workbench_graph
        archive = zipfile.ZipFile(io.BytesIO(WorkbenchZipExportStrategy().export(nodes, edges)))
        assert sorted(archive.namelist()) == ["workflow/planner.md", "workflow/writer_bot.md"]

    def test_markdown_describes_connections(self, workbench_graph):
        nodes, edges = workbench_graph
        planner = nodes[1]
        writer = nodes[2]

        planner_md = agent_markdown(planner, nodes, edges)
        assert planner_md.startswith("---\ntitle: Planner\ntype: agent\nmodel: openai/gpt-4\n")
        assert "Client Interface (Web UI)" in planner_md
        assert "No MCP Servers connected" in planner_md
        assert planner_md.rstrip().endswith("Plan the work.")

        writer_md = agent_markdown(writer, nodes, edges)
        assert "Receives input from Agents:** Planner." in writer_md
        assert "Connected MCP Servers:** GitHub." in writer_md
        # Databases are tools but not listed as MCP servers
        assert "Postgres" not in writer_md

    def test_duplicate_labels_last_wins(self):
        first = make_agent("a1", label="Same", systemPrompt="first")
        second = make_agent("a2", label="Same", systemPrompt="second")
        archive = zipfile.ZipFile(io.BytesIO(WorkbenchZipExportStrategy().export([first, second], [])))
        assert archive.namelist() == ["workflow/same.md"]
        assert "second" in archive.read("workflow/same.md").decode("utf-8")

    def test_no_agents(self):
        with pytest.raises(ValidationError):
            WorkbenchZipExportStrategy().export([make_node("db", "Database")], [])


class TestMCPConfig:
    """Test MCP configuration merge and import."""

    def test_merge_server_and_database_configs(self):
        nodes = [
            make_node("m", "MCP Server", mcpConfig=json.dumps({"github": {"command": "npx"}})),
            make_node("d", "Database", mcpConfig={"postgres": {"command": "pg"}}),
            make_node("s", "Storage", mcpConfig={"ignored": {}}),
            make_node("broken", "MCP Server", mcpConfig="{not json"),
            make_node("empty", "MCP Server"),
        ]
        assert merge_mcp_configs(nodes) == {
            "mcpServers": {"github": {"command": "npx"}, "postgres": {"command": "pg"}}
        }

    def test_export_strategy(self):
        nodes = [make_node("m", "MCP Server", mcpConfig={"fs": {"command": "fs"}})]
        assert json.loads(MCPConfigExportStrategy().export(nodes, [])) == {"mcpServers": {"fs": {"command": "fs"}}}
        assert MCPConfigExportStrategy().get_filename() == "mcp-config.json"

    def test_import_lays_out_grid(self):
        config = {"mcpServers": {f"s{i}": {"command": f"cmd{i}"} for i in range(5)}}
        nodes = nodes_from_mcp_config(config, id_suffix="1700")

        assert [n.id for n in nodes] == [f"mcp-s{i}-1700" for i in range(5)]
        assert [n.position for n in nodes] == [
            Position(x=550, y=350),
            Position(x=550, y=470),
            Position(x=550, y=590),
            Position(x=800, y=350),
            Position(x=800, y=470),
        ]
        assert all(n.kind == "MCP Server" for n in nodes)
        assert nodes[0].attributes["label"] == "s0"
        assert json.loads(nodes[0].attributes["mcpConfig"]) == {"s0": {"command": "cmd0"}}

    @pytest.mark.parametrize("config", [None, [], {}, {"mcpServers": []}])
    def test_import_rejects_invalid_config(self, config):
        with pytest.raises(ValidationError, match="mcpServers"):
            nodes_from_mcp_config(config, id_suffix="1")


class TestExportStrategyFactory:
    """Test strategy selection."""

    @pytest.mark.parametrize("name,expected", [
        ("json", JsonFlowExportStrategy),
        ("JSON", JsonFlowExportStrategy),
        ("workbench", WorkbenchZipExportStrategy),
        ("zip", WorkbenchZipExportStrategy),
        ("mcp", MCPConfigExportStrategy),
    ])
    def test_get_strategy(self, name, expected):
        assert isinstance(ExportStrategyFactory.get_strategy(name), expected)

    def test_unsupported_format(self):
        with pytest.raises(ValidationError, match="Unsupported export format"):
            ExportStrategyFactory.get_strategy("yaml")
