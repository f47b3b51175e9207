from fastapi import APIRouter, Depends, Query
from typing import Any, Dict, List

from archflow.schemas.api_schemas import BurnRateResponse, ModelSuggestion
from archflow.dependencies import get_flow_session, get_model_catalogue
from archflow.application.flow_session import FlowSession
from archflow.services.model_catalogue import ModelCatalogue
from archflow.domain.pricing import capacity_class
from archflow.domain.taxonomy import CapabilityGroup

router = APIRouter()


@router.get("/flows/{flow_id}/patterns")
def get_patterns(session: FlowSession = Depends(get_flow_session)) -> List[Dict[str, Any]]:
    """
    Architecture patterns (router, distillation, autonomous) detected in the flow.
    """
    return [p.to_dict() for p in session.patterns()]


@router.get("/flows/{flow_id}/burn-rates")
def get_burn_rates(session: FlowSession = Depends(get_flow_session)) -> Dict[str, Any]:
    """
    Burn rate and capacity class of every LLM agent in the flow.
    """
    return session.burn_rates()


@router.get("/flows/{flow_id}/nodes/{node_id}/burn-rate", response_model=BurnRateResponse)
def get_node_burn_rate(
    node_id: str,
    session: FlowSession = Depends(get_flow_session),
):
    node = session.get_node(node_id)
    return BurnRateResponse(
        node_id=node_id,
        burn_rate=session.burn_rate(node_id).to_dict(),
        capacity_class=capacity_class(node.model_id) if node.capability == CapabilityGroup.AGENT else None,
    )


@router.get("/models")
def list_models(catalogue: ModelCatalogue = Depends(get_model_catalogue)) -> Dict[str, Any]:
    """
    Known models grouped by provider, with the catalogue price breakpoints.
    """
    breakpoints = catalogue.breakpoints
    return {
        "breakpoints": {"low": breakpoints.low, "high": breakpoints.high} if breakpoints else None,
        "providers": {
            provider: [{"id": m.id, "name": m.name, "prompt": m.prompt_price} for m in models]
            for provider, models in catalogue.grouped_by_provider().items()
        },
    }


@router.get("/models/suggestion", response_model=ModelSuggestion)
def suggest_model(
    model_id: str = Query(..., description="Model currently assigned to an agent"),
    catalogue: ModelCatalogue = Depends(get_model_catalogue),
):
    """
    A noticeably cheaper alternative to ``model_id``, if the catalogue has one.
    """
    suggestion = catalogue.suggest_cheaper_model(model_id)
    return ModelSuggestion(model_id=model_id, suggestion=suggestion.id if suggestion else None)
