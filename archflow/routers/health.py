"""
Health check endpoints for the API.
"""
from fastapi import APIRouter, Depends
from typing import Dict, Any
from datetime import datetime

from archflow.config import settings
from archflow.dependencies import get_flow_storage, get_model_catalogue
from archflow.storage.interface import FlowStorage
from archflow.services.model_catalogue import ModelCatalogue

router = APIRouter()

@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.
    Returns API status and version information.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT
    }

@router.get("/health/storage")
def storage_health(
    storage: FlowStorage = Depends(get_flow_storage),
    catalogue: ModelCatalogue = Depends(get_model_catalogue),
) -> Dict[str, Any]:
    """
    Check flow storage health and whether price data is loaded.
    """
    try:
        flow_count = len(storage.list_flows())
        
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "storage_type": settings.STORAGE_TYPE,
            "flows": flow_count,
            "catalogue_models": len(catalogue.models),
            "price_data": catalogue.price_index().has_data,
        }
        
    except Exception as e:
        return {
            "status": "unhealthy",
            "timestamp": datetime.now().isoformat(),
            "error": str(e)
        }
