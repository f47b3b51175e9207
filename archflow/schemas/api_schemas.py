"""
API Request/Response Schemas using Pydantic.

Structure of HTTP requests and responses for archflow-api, plus the flow
file format (``{"nodes": [...], "edges": [...]}``) shared by import/export.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional, Any

from archflow.domain.graph import Edge, Node, Position


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# Flow file format
class PositionModel(_CamelModel):
    x: float = Field(0.0, description="Canvas x coordinate")
    y: float = Field(0.0, description="Canvas y coordinate")


class NodeModel(_CamelModel):
    id: str = Field(..., min_length=1, description="Unique node identifier")
    kind: str = Field(..., description="Entity type, e.g. 'LLM Agent' or 'MCP Server'")
    position: PositionModel = Field(default_factory=PositionModel)
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Kind specific fields")

    def to_domain(self) -> Node:
        return Node(
            id=self.id,
            kind=self.kind,
            position=Position(x=self.position.x, y=self.position.y),
            attributes=dict(self.attributes),
        )


class EdgeModel(_CamelModel):
    """Only the durable fields are read; annotations in the file are ignored."""
    id: str = Field(..., min_length=1, description="Unique edge identifier")
    source_id: str = Field(..., alias="sourceId", description="ID of the source node")
    target_id: str = Field(..., alias="targetId", description="ID of the target node")

    def to_domain(self) -> Edge:
        return Edge(id=self.id, source_id=self.source_id, target_id=self.target_id)


class FlowDocument(_CamelModel):
    nodes: List[NodeModel] = Field(..., description="List of nodes in the flow")
    edges: List[EdgeModel] = Field(..., description="List of edges connecting nodes")

    def to_domain(self) -> tuple[List[Node], List[Edge]]:
        return [n.to_domain() for n in self.nodes], [e.to_domain() for e in self.edges]


# Flow schemas
class FlowCreate(BaseModel):
    name: str = Field(..., description="Name of the flow", min_length=1, max_length=255)
    description: str = Field("", description="Optional description of the flow", max_length=1000)


class FlowResponse(BaseModel):
    flow_id: str = Field(..., description="Unique identifier for the flow")
    name: str = Field(..., description="Name of the flow")
    description: Optional[str] = Field(None, description="Flow description")
    created_at: str = Field(..., description="ISO format creation timestamp")


class FlowDataResponse(BaseModel):
    nodes: List[Dict[str, Any]] = Field(..., description="Nodes with all attributes")
    edges: List[Dict[str, Any]] = Field(..., description="Edges with recomputed annotations")
    patterns: List[Dict[str, Any]] = Field(default_factory=list, description="Detected architecture patterns")


# Node schemas
class NodeCreate(_CamelModel):
    entity_type: str = Field(..., alias="entityType", description="Kind of node to create")
    position: Optional[PositionModel] = Field(None, description="Drop position, defaults to canvas centre")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Overrides for the default attributes")


class NodeUpdate(_CamelModel):
    kind: Optional[str] = Field(None, description="New entity type")
    position: Optional[PositionModel] = Field(None, description="New position")
    attributes: Optional[Dict[str, Any]] = Field(None, description="Attributes to merge into the node")


class NodeResponse(BaseModel):
    success: bool = Field(default=True, description="Whether the operation was successful")
    node: Dict[str, Any] = Field(..., description="The node after the operation")


# Edge schemas
class EdgeCreate(_CamelModel):
    source_id: str = Field(..., alias="sourceId", description="ID of the source node")
    target_id: str = Field(..., alias="targetId", description="ID of the target node")
    id: Optional[str] = Field(None, description="Edge id, generated when omitted")


class ConnectionPreview(BaseModel):
    valid: bool = Field(..., description="False when the connection is a protocol error")
    annotation: Dict[str, Any] = Field(..., description="Annotation the edge would receive")


# Analysis schemas
class BurnRateResponse(BaseModel):
    node_id: str = Field(..., description="ID of the node")
    burn_rate: Dict[str, Any] = Field(..., description="Estimated rate, tier and display string")
    capacity_class: Optional[str] = Field(None, description="heavy/light/medium, agents only")


class ModelSuggestion(BaseModel):
    model_id: str = Field(..., description="Current model")
    suggestion: Optional[str] = Field(None, description="Cheaper alternative, if any")
