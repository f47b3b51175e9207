"""
Test configuration and fixtures for archflow-api tests.
"""
import pytest
from fastapi.testclient import TestClient

from archflow.main import app
from archflow.application.session_registry import SessionRegistry
from archflow.dependencies import (
    get_flow_storage,
    get_model_catalogue,
    get_session_registry,
)
from archflow.domain.events import event_publisher
from archflow.services.model_catalogue import ModelCatalogue
from archflow.storage.filesystem import FilesystemStorage

from factories import CATALOGUE_PAYLOAD, FakeTimer


@pytest.fixture(autouse=True)
def clean_event_publisher():
    """Keep subscribers from leaking between tests."""
    event_publisher.clear_subscribers()
    FakeTimer.created = []
    yield
    event_publisher.clear_subscribers()


@pytest.fixture
def fake_timer():
    return FakeTimer


@pytest.fixture
def storage(tmp_path):
    """Filesystem flow storage in a temporary directory."""
    return FilesystemStorage(base_dir=str(tmp_path / "flows"))


@pytest.fixture
def catalogue():
    return ModelCatalogue.from_payload(CATALOGUE_PAYLOAD)


@pytest.fixture
def registry(storage, catalogue):
    registry = SessionRegistry(
        storage=storage,
        prices=catalogue.price_index(),
        debounce_seconds=1.0,
        timer_factory=FakeTimer,
    )
    yield registry
    for flow_id in list(registry._sessions):
        registry.close(flow_id, flush=False)


@pytest.fixture
def client(storage, catalogue, registry):
    """Create test client wired to temporary storage."""
    app.dependency_overrides[get_flow_storage] = lambda: storage
    app.dependency_overrides[get_model_catalogue] = lambda: catalogue
    app.dependency_overrides[get_session_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_flow(client):
    """Create a sample flow for testing."""
    response = client.post("/flows", json={"name": "Sample Flow", "description": "for tests"})
    assert response.status_code == 201
    return response.json()
