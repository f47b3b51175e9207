from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import Response
from typing import Any, Dict

from archflow.dependencies import get_flow_session
from archflow.application.flow_session import FlowSession
from archflow.domain.strategies import ExportStrategyFactory

router = APIRouter()


@router.get("/flows/{flow_id}/export")
def export_flow(
    export_format: str = Query("json", alias="format", description="json, workbench or mcp"),
    session: FlowSession = Depends(get_flow_session),
):
    """
    Download the flow as flow JSON, a workbench zip of agent briefs, or an
    MCP client configuration.
    """
    strategy = ExportStrategyFactory.get_strategy(export_format)
    content = session.export(export_format)
    return Response(
        content=content,
        media_type=strategy.media_type,
        headers={"Content-Disposition": f'attachment; filename="{strategy.get_filename()}"'},
    )


@router.post("/flows/{flow_id}/import/mcp-config", status_code=201)
def import_mcp_config(
    config: Dict[str, Any] = Body(...),
    session: FlowSession = Depends(get_flow_session),
):
    """
    Create one MCP Server node per entry of an ``{"mcpServers": {...}}`` document.
    """
    nodes = session.import_mcp_config(config)
    return {
        "success": True,
        "imported": len(nodes),
        "nodes": [node.to_dict() for node in nodes],
    }
