from fastapi import APIRouter, Depends

from archflow.schemas.api_schemas import (
    NodeCreate,
    NodeUpdate,
    NodeResponse,
    EdgeCreate,
    ConnectionPreview,
)
from archflow.dependencies import get_flow_session
from archflow.application.flow_session import FlowSession
from archflow.domain.validation import describe

router = APIRouter()


@router.post("/flows/{flow_id}/nodes", response_model=NodeResponse, status_code=201)
def create_node(
    node_data: NodeCreate,
    session: FlowSession = Depends(get_flow_session),
):
    """
    Add a node of the given entity type, starting from that type's defaults.
    """
    node = session.add_node(
        node_data.entity_type,
        position=node_data.position.model_dump() if node_data.position else None,
        attributes=node_data.attributes,
    )
    return NodeResponse(node=node.to_dict())


@router.patch("/flows/{flow_id}/nodes/{node_id}", response_model=NodeResponse)
def update_node(
    node_id: str,
    node_data: NodeUpdate,
    session: FlowSession = Depends(get_flow_session),
):
    """
    Change a node's kind or position, or merge attributes into it. Edges
    touching the node are re-annotated when its kind or model changes.
    """
    node = session.update_node(
        node_id,
        kind=node_data.kind,
        position=node_data.position.model_dump() if node_data.position else None,
        attributes=node_data.attributes,
    )
    return NodeResponse(node=node.to_dict())


@router.delete("/flows/{flow_id}/nodes/{node_id}")
def delete_node(
    node_id: str,
    session: FlowSession = Depends(get_flow_session),
):
    """
    Delete a node and every edge that references it.
    """
    dropped = session.delete_node(node_id)
    return {"success": True, "node_id": node_id, "edges_removed": dropped}


@router.post("/flows/{flow_id}/edges", status_code=201)
def create_edge(
    edge_data: EdgeCreate,
    session: FlowSession = Depends(get_flow_session),
):
    """
    Connect two nodes. Illegal connections are created too, carrying a
    protocol error annotation.
    """
    edge = session.connect(edge_data.source_id, edge_data.target_id, edge_id=edge_data.id)
    return edge.to_dict()


@router.delete("/flows/{flow_id}/edges/{edge_id}")
def delete_edge(
    edge_id: str,
    session: FlowSession = Depends(get_flow_session),
):
    session.disconnect(edge_id)
    return {"success": True, "edge_id": edge_id}


@router.post("/flows/{flow_id}/connections/preview", response_model=ConnectionPreview)
def preview_connection(
    edge_data: EdgeCreate,
    session: FlowSession = Depends(get_flow_session),
):
    """
    Annotation an edge between the two nodes would get, without creating it.
    """
    annotation = session.preview_connection(edge_data.source_id, edge_data.target_id)
    return ConnectionPreview(
        valid=not annotation.is_protocol_error,
        annotation=describe(annotation),
    )
