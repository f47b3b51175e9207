"""
Tests for the HTTP API.
"""
import io
import json
import zipfile

from factories import FakeTimer


def _add(client, flow_id, entity_type, **attributes):
    response = client.post(
        f"/flows/{flow_id}/nodes",
        json={"entityType": entity_type, "attributes": attributes},
    )
    assert response.status_code == 201
    return response.json()["node"]


def _connect(client, flow_id, source_id, target_id):
    response = client.post(f"/flows/{flow_id}/edges", json={"sourceId": source_id, "targetId": target_id})
    assert response.status_code == 201
    return response.json()


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_storage_health(self, client, sample_flow):
        data = client.get("/health/storage").json()
        assert data["status"] == "healthy"
        assert data["flows"] == 1
        assert data["catalogue_models"] == 8
        assert data["price_data"] is True


class TestFlowEndpoints:
    """Test flow CRUD endpoints."""

    def test_create_flow(self, client):
        response = client.post("/flows", json={"name": "  New Flow  "})
        assert response.status_code == 201
        assert response.json()["name"] == "New Flow"

    def test_duplicate_name(self, client, sample_flow):
        response = client.post("/flows", json={"name": "sample flow"})
        assert response.status_code == 409

    def test_blank_name(self, client):
        assert client.post("/flows", json={"name": "   "}).status_code == 400

    def test_list_and_get(self, client, sample_flow):
        flows = client.get("/flows").json()
        assert [f["flow_id"] for f in flows] == [sample_flow["flow_id"]]
        assert client.get(f"/flows/{sample_flow['flow_id']}").json()["name"] == "Sample Flow"

    def test_unknown_flow(self, client):
        assert client.get("/flows/missing").status_code == 404
        assert client.get("/flows/missing/data").status_code == 404

    def test_delete_discards_pending_edits(self, client, sample_flow, storage):
        flow_id = sample_flow["flow_id"]
        _add(client, flow_id, "Storage")

        assert client.delete(f"/flows/{flow_id}").json()["success"] is True

        FakeTimer.fire_all()
        assert storage.get_flow(flow_id) is None
        assert client.get(f"/flows/{flow_id}").status_code == 404


class TestGraphEndpoints:
    """Test node and edge editing."""

    def test_create_node_with_defaults(self, client, sample_flow):
        node = _add(client, sample_flow["flow_id"], "Client Interface")
        assert node["kind"] == "Client Interface"
        assert node["attributes"]["transport"] == "stdio"
        assert node["position"] == {"x": 400, "y": 300}

    def test_unknown_entity_type(self, client, sample_flow):
        response = client.post(f"/flows/{sample_flow['flow_id']}/nodes", json={"entityType": "Robot"})
        assert response.status_code == 400

    def test_protocol_error_edge(self, client, sample_flow):
        flow_id = sample_flow["flow_id"]
        ui = _add(client, flow_id, "Client Interface")
        mcp = _add(client, flow_id, "MCP Server")

        edge = _connect(client, flow_id, ui["id"], mcp["id"])

        assert edge["label"] == "Protocol Error: Agent Required"
        assert edge["markerEnd"] == "url(#error-x)"
        assert edge["style"]["stroke"] == "#dc2626"

    def test_update_kind_fixes_edge(self, client, sample_flow):
        flow_id = sample_flow["flow_id"]
        ui = _add(client, flow_id, "Client Interface")
        mcp = _add(client, flow_id, "MCP Server")
        _connect(client, flow_id, ui["id"], mcp["id"])

        response = client.patch(f"/flows/{flow_id}/nodes/{ui['id']}", json={"kind": "LLM Agent"})
        assert response.status_code == 200

        edge = client.get(f"/flows/{flow_id}/data").json()["edges"][0]
        assert edge["label"] is None
        assert edge["style"]["stroke"] == "#22c55e"

    def test_delete_node_cascades(self, client, sample_flow):
        flow_id = sample_flow["flow_id"]
        agent = _add(client, flow_id, "LLM Agent")
        db = _add(client, flow_id, "Database")
        _connect(client, flow_id, agent["id"], db["id"])

        response = client.delete(f"/flows/{flow_id}/nodes/{agent['id']}")
        assert response.json()["edges_removed"] == 1
        assert client.get(f"/flows/{flow_id}/data").json()["edges"] == []

    def test_delete_edge(self, client, sample_flow):
        flow_id = sample_flow["flow_id"]
        agent = _add(client, flow_id, "LLM Agent")
        db = _add(client, flow_id, "Database")
        edge = _connect(client, flow_id, agent["id"], db["id"])

        assert client.delete(f"/flows/{flow_id}/edges/{edge['id']}").status_code == 200
        assert client.delete(f"/flows/{flow_id}/edges/{edge['id']}").status_code == 404

    def test_connection_preview(self, client, sample_flow):
        flow_id = sample_flow["flow_id"]
        agent = _add(client, flow_id, "LLM Agent", modelId="anthropic/claude-3-opus")
        db = _add(client, flow_id, "Database")

        preview = client.post(
            f"/flows/{flow_id}/connections/preview",
            json={"sourceId": agent["id"], "targetId": db["id"]},
        ).json()

        assert preview["valid"] is True
        assert preview["annotation"]["className"] == "edge-heavy"
        assert client.get(f"/flows/{flow_id}/data").json()["edges"] == []


class TestPersistenceEndpoints:
    """Test debounced saving through the API."""

    def test_edits_saved_after_debounce(self, client, sample_flow, storage):
        flow_id = sample_flow["flow_id"]
        _add(client, flow_id, "LLM Agent")
        assert storage.load_flow_data(flow_id)["nodes"] == []

        FakeTimer.fire_all()

        assert len(storage.load_flow_data(flow_id)["nodes"]) == 1

    def test_explicit_save(self, client, sample_flow, storage):
        flow_id = sample_flow["flow_id"]
        _add(client, flow_id, "Storage")
        assert client.post(f"/flows/{flow_id}/save").json() == {"success": True, "saved": True}
        assert len(storage.load_flow_data(flow_id)["nodes"]) == 1
        assert client.post(f"/flows/{flow_id}/save").json()["saved"] is False


class TestImportExportEndpoints:
    """Test flow import and export formats."""

    def test_json_export_import(self, client, sample_flow):
        flow_id = sample_flow["flow_id"]
        agent = _add(client, flow_id, "LLM Agent", label="Planner")
        db = _add(client, flow_id, "Database")
        _connect(client, flow_id, agent["id"], db["id"])

        response = client.get(f"/flows/{flow_id}/export?format=json")
        assert response.status_code == 200
        assert 'filename="flow-export.json"' in response.headers["content-disposition"]
        document = response.json()

        other = client.post("/flows", json={"name": "Imported"}).json()["flow_id"]
        imported = client.put(f"/flows/{other}/data", json=document).json()
        assert [n["id"] for n in imported["nodes"]] == [agent["id"], db["id"]]
        assert imported["edges"][0]["sourceId"] == agent["id"]

    def test_malformed_import_keeps_graph(self, client, sample_flow):
        flow_id = sample_flow["flow_id"]
        _add(client, flow_id, "Storage")
        response = client.put(f"/flows/{flow_id}/data", json={"nodes": [{"id": "x"}], "edges": []})
        assert response.status_code == 400
        assert len(client.get(f"/flows/{flow_id}/data").json()["nodes"]) == 1

    def test_workbench_export(self, client, sample_flow):
        flow_id = sample_flow["flow_id"]
        _add(client, flow_id, "LLM Agent", label="Research Agent")

        response = client.get(f"/flows/{flow_id}/export?format=workbench")
        assert response.headers["content-type"] == "application/zip"
        archive = zipfile.ZipFile(io.BytesIO(response.content))
        assert archive.namelist() == ["workflow/research_agent.md"]

    def test_workbench_export_without_agents(self, client, sample_flow):
        response = client.get(f"/flows/{sample_flow['flow_id']}/export?format=workbench")
        assert response.status_code == 400

    def test_mcp_config_import_export(self, client, sample_flow):
        flow_id = sample_flow["flow_id"]
        config = {"mcpServers": {"github": {"command": "npx", "args": ["gh"]}}}

        response = client.post(f"/flows/{flow_id}/import/mcp-config", json=config)
        assert response.status_code == 201
        assert response.json()["imported"] == 1

        exported = client.get(f"/flows/{flow_id}/export?format=mcp")
        assert json.loads(exported.content) == config

    def test_invalid_mcp_config(self, client, sample_flow):
        response = client.post(f"/flows/{sample_flow['flow_id']}/import/mcp-config", json={"servers": {}})
        assert response.status_code == 400

    def test_unsupported_format(self, client, sample_flow):
        assert client.get(f"/flows/{sample_flow['flow_id']}/export?format=yaml").status_code == 400


class TestAnalysisEndpoints:
    """Test pattern, burn rate and model endpoints."""

    def test_patterns(self, client, sample_flow):
        flow_id = sample_flow["flow_id"]
        heavy = _add(client, flow_id, "LLM Agent", taskComplexity="complex")
        for kind in ("Database", "Storage"):
            tool = _add(client, flow_id, kind)
            _connect(client, flow_id, heavy["id"], tool["id"])

        patterns = client.get(f"/flows/{flow_id}/patterns").json()
        assert [p["label"] for p in patterns] == ["Autonomous Agent"]
        assert patterns[0]["memberNodeIds"][0] == heavy["id"]

    def test_burn_rates(self, client, sample_flow):
        flow_id = sample_flow["flow_id"]
        agent = _add(client, flow_id, "LLM Agent", taskComplexity="medium", modelId="anthropic/claude-3-haiku")
        _add(client, flow_id, "Database")

        rates = client.get(f"/flows/{flow_id}/burn-rates").json()
        assert list(rates) == [agent["id"]]
        assert rates[agent["id"]]["burnRate"]["formatted"] == "1.5k tkn"
        assert rates[agent["id"]]["capacityClass"] == "light"

        single = client.get(f"/flows/{flow_id}/nodes/{agent['id']}/burn-rate").json()
        assert single["burn_rate"]["tier"] == "medium"

    def test_models(self, client):
        data = client.get("/models").json()
        assert data["breakpoints"] == {"low": 3, "high": 6}
        assert "anthropic" in data["providers"]

    def test_model_suggestion(self, client):
        response = client.get("/models/suggestion", params={"model_id": "openai/gpt-4"})
        assert response.json() == {"model_id": "openai/gpt-4", "suggestion": "openai/gpt-3.5-turbo"}
