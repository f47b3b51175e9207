from fastapi import APIRouter, Body, Depends
from typing import Any, Dict, List

from archflow.schemas.api_schemas import FlowCreate, FlowResponse, FlowDataResponse
from archflow.dependencies import (
    get_flow_storage,
    get_flow_session,
    get_session_registry,
    get_flow_access_service,
    get_flow_validation_service,
)
from archflow.storage.interface import FlowStorage
from archflow.application.flow_session import FlowSession
from archflow.application.session_registry import SessionRegistry
from archflow.application.flow_access_service import FlowAccessService
from archflow.application.flow_validation_service import FlowValidationService
from archflow.domain.events import event_publisher, FlowCreated, FlowDeleted

router = APIRouter()


def _flow_response(flow: Dict[str, Any]) -> FlowResponse:
    return FlowResponse(
        flow_id=flow["id"],
        name=flow["name"],
        description=flow.get("description", ""),
        created_at=flow["created_at"],
    )


def _flow_data(session: FlowSession) -> FlowDataResponse:
    snapshot = session.snapshot()
    return FlowDataResponse(
        nodes=snapshot["nodes"],
        edges=snapshot["edges"],
        patterns=[p.to_dict() for p in session.patterns()],
    )


@router.post("/flows", response_model=FlowResponse, status_code=201)
def create_flow(
    flow_data: FlowCreate,
    storage: FlowStorage = Depends(get_flow_storage),
    validator: FlowValidationService = Depends(get_flow_validation_service),
):
    """
    Create a new, empty flow.
    """
    name = validator.validate_name(flow_data.name)
    validator.check_duplicate_name(name)
    description = flow_data.description.strip() if flow_data.description else ""
    
    flow = storage.create_flow(name=name, description=description)
    event_publisher.publish(FlowCreated(
        event_id="", timestamp=None, aggregate_id=flow["id"], name=name,
    ))
    return _flow_response(flow)


@router.get("/flows", response_model=List[FlowResponse])
def list_flows(storage: FlowStorage = Depends(get_flow_storage)):
    """
    Retrieve all flows.
    """
    return [_flow_response(flow) for flow in storage.list_flows()]


@router.get("/flows/{flow_id}", response_model=FlowResponse)
def get_flow(
    flow_id: str,
    access_svc: FlowAccessService = Depends(get_flow_access_service),
):
    """
    Get information about a specific flow.
    """
    return _flow_response(access_svc.require_flow_exists(flow_id))


@router.delete("/flows/{flow_id}")
def delete_flow(
    flow_id: str,
    access_svc: FlowAccessService = Depends(get_flow_access_service),
    storage: FlowStorage = Depends(get_flow_storage),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """
    Delete a flow. Pending edits are discarded, not written.
    """
    flow = access_svc.require_flow_exists(flow_id)
    registry.close(flow_id, flush=False)
    storage.delete_flow(flow_id)
    event_publisher.publish(FlowDeleted(
        event_id="", timestamp=None, aggregate_id=flow_id, name=flow["name"],
    ))
    return {"success": True, "flow_id": flow_id}


@router.get("/flows/{flow_id}/data", response_model=FlowDataResponse)
def get_flow_data(session: FlowSession = Depends(get_flow_session)):
    """
    Nodes, edges (annotations recomputed) and detected patterns of a flow.
    """
    return _flow_data(session)


@router.put("/flows/{flow_id}/data", response_model=FlowDataResponse)
def replace_flow_data(
    payload: Dict[str, Any] = Body(...),
    session: FlowSession = Depends(get_flow_session),
):
    """
    Replace the whole graph (JSON import). A malformed document leaves the
    current graph untouched.
    """
    session.import_flow(payload)
    return _flow_data(session)


@router.post("/flows/{flow_id}/save")
def save_flow(session: FlowSession = Depends(get_flow_session)):
    """
    Write pending edits now instead of waiting for the debounce window.
    """
    saved = session.flush()
    return {"success": True, "saved": saved}
