"""API test fixtures: TestClient over the invoice service with an in-memory store."""

import pytest
from starlette.testclient import TestClient

from api.app import create_app


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(invoice_service):
    """FastAPI app with request IDs, error handlers and invoice routes."""
    return create_app(invoice_service)


@pytest.fixture
def client(app):
    """Test client; server errors come back as 500 responses."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def create_invoice(client, invoice_payload):
    """POST an invoice and return its response data."""

    def create(**overrides) -> dict:
        response = client.post("/api/invoices", json=invoice_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return create
