from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from archflow.config import settings
from archflow.storage.factory import get_storage
from archflow.storage.interface import FlowStorage
from archflow.services.model_catalogue import ModelCatalogue
from archflow.application.flow_session import FlowSession
from archflow.application.session_registry import SessionRegistry
from archflow.application.flow_access_service import FlowAccessService
from archflow.application.flow_validation_service import FlowValidationService


@lru_cache()
def get_flow_storage() -> FlowStorage:
    return get_storage()


@lru_cache()
def get_model_catalogue() -> ModelCatalogue:
    return ModelCatalogue.from_file(settings.MODEL_CATALOGUE_FILE)


@lru_cache()
def get_session_registry() -> SessionRegistry:
    return SessionRegistry(
        storage=get_flow_storage(),
        prices=get_model_catalogue().price_index(),
        debounce_seconds=settings.SAVE_DEBOUNCE_SECONDS,
    )


def get_flow_access_service(storage: FlowStorage = Depends(get_flow_storage)) -> FlowAccessService:
    return FlowAccessService(storage=storage)


def get_flow_validation_service(storage: FlowStorage = Depends(get_flow_storage)) -> FlowValidationService:
    return FlowValidationService(storage=storage)


def get_flow_session(
    flow_id: str,
    access_svc: FlowAccessService = Depends(get_flow_access_service),
    registry: SessionRegistry = Depends(get_session_registry),
) -> FlowSession:
    """Resolve the live session of a flow from the ``flow_id`` path parameter."""
    access_svc.require_flow_exists(flow_id)
    return registry.get(flow_id)
