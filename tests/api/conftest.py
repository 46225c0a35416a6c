"""Shared fixtures for API tests."""

import pytest
from fastapi.testclient import TestClient

from wellnesstree.application.ledger_service import InMemoryCreditStore, set_credit_store
from wellnesstree.application.shipment_service import reset_shipment_repository
from wellnesstree.infrastructure.config import settings
from wellnesstree.main import app


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh shipment repository and credit store for every test."""
    reset_shipment_repository()
    set_credit_store(InMemoryCreditStore())
    yield
    reset_shipment_repository()
    set_credit_store(None)
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    """Create test client without authentication."""
    return TestClient(app)


@pytest.fixture
def auth_client() -> TestClient:
    """Create test client with valid API key authentication."""
    return TestClient(
        app,
        headers={"Authorization": f"Bearer {settings.api_key}"},
    )
