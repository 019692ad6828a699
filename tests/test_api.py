"""HTTP surface for /conversations/* and /ai/health."""

from __future__ import annotations

import importlib

import pytest
from fastapi.testclient import TestClient

from conftest import FakeCatalogRepository, FakeCustomerRepository, FakeGateway, FakeOrderRepository
from vhouse_ai.controllers.conversations import PIPELINE_STAGES
from vhouse_ai.controllers.dependencies import (
    get_catalog_repository,
    get_customer_repository,
    get_order_repository,
    get_text_generation_gateway,
)
from vhouse_ai.main import app

ORDER_JSON = (
    '{"items": [{"product": "Leche de Avena Orgánica", "quantity": 50}],'
    ' "delivery_date": "2024-06-03", "payment_terms": "net 30"}'
)


@pytest.fixture
def gateway():
    return FakeGateway(ORDER_JSON)


@pytest.fixture(autouse=True)
def override_dependencies(customer, catalog, gateway):
    """Swap the database-backed repositories and the real providers for fakes."""

    app.dependency_overrides[get_customer_repository] = lambda: FakeCustomerRepository([customer])
    app.dependency_overrides[get_order_repository] = lambda: FakeOrderRepository()
    app.dependency_overrides[get_catalog_repository] = lambda: FakeCatalogRepository(catalog)
    app.dependency_overrides[get_text_generation_gateway] = lambda: gateway

    yield

    app.dependency_overrides.clear()


def test_process_complex_order_endpoint(customer):
    client = TestClient(app)

    response = client.post(
        "/conversations/orders",
        json={
            "naturalLanguageText": "Necesito 50 cajas de leche de avena orgánica",
            "customerId": customer.id,
            "conversationType": "OrderInquiry",
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["isSuccessful"] is True
    assert payload["extractionMode"] == "json"
    assert payload["extractedItems"][0]["productId"] == 1
    assert payload["extractedItems"][0]["quantity"] == 50
    assert payload["orderSummary"]["subTotal"] == "1250.00"
    assert payload["estimatedTotal"] == "1450.00"
    assert payload["requestedDeliveryDate"] == "2024-06-03"
    assert payload["paymentTerms"]["daysNet"] == 30
    assert payload["priority"] == "medium"
    assert "X-Request-ID" in response.headers


def test_unknown_customer_still_answers_200(gateway):
    client = TestClient(app)

    response = client.post(
        "/conversations/orders",
        json={"naturalLanguageText": "Quiero tofu", "customerId": 404},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["isSuccessful"] is False
    assert payload["errorCode"] == "CUSTOMER_NOT_FOUND"
    assert gateway.requests == []


def test_process_conversation_endpoint(gateway, customer):
    gateway.result = gateway.result.__class__(
        content="Tenemos Tofu Firme disponible; con gusto le envío una cotización.",
        is_successful=True,
        used_model="fake-claude",
    )
    client = TestClient(app)

    response = client.post(
        "/conversations/process",
        json={
            "message": "¿Tienen tofu?",
            "customerId": customer.id,
            "conversationType": "product_availability",
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["isSuccessful"] is True
    assert payload["context"] == "product_availability"
    assert payload["productRecommendations"][0]["productName"] == "Tofu Firme"
    assert payload["suggestedActions"][0]["actionType"] == "generar_cotizacion"
    assert payload["priority"] == "low"


def test_generate_email_endpoint(gateway, customer):
    gateway.result = gateway.result.__class__(
        content="SUBJECT: Recordatorio de pago\nBODY:\nSu factura vence el viernes.",
        is_successful=True,
    )
    client = TestClient(app)

    response = client.post(
        "/conversations/email",
        json={
            "emailType": "recordatorio_pago",
            "customerId": customer.id,
            "emailData": {"factura": "F-001", "monto": 1450.0, "vencida": False, "nota": None},
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["subject"] == "Recordatorio de pago"
    assert payload["isUrgent"] is True
    assert payload["requiredAttachments"] == ["factura.pdf", "estado_cuenta.pdf"]


def test_email_data_must_be_flat():
    client = TestClient(app)

    response = client.post(
        "/conversations/email",
        json={"emailType": "recordatorio_pago", "customerId": 7, "emailData": {"items": [1, 2]}},
    )

    assert response.status_code == 422


def test_empty_message_is_rejected():
    client = TestClient(app)

    response = client.post("/conversations/process", json={"message": ""})

    assert response.status_code == 422


def test_ai_health_endpoint():
    client = TestClient(app)

    response = client.get("/ai/health")

    assert response.status_code == 200
    assert response.json() == {
        "serviceStatus": {"claude": True, "openai": False},
        "recommendedProvider": "claude",
        "fallbackAvailable": False,
    }


def test_pipeline_stages_point_at_real_modules():
    assert [stage.order for stage in PIPELINE_STAGES] == list(range(1, len(PIPELINE_STAGES) + 1))
    for stage in PIPELINE_STAGES:
        assert importlib.import_module(stage.module).__name__ == stage.module


def test_unknown_route_uses_error_body():
    client = TestClient(app)

    response = client.get("/conversations/nope")

    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found", "code": "HTTP_404"}


def test_unhandled_failure_returns_internal_error_body():
    def broken_gateway():
        raise RuntimeError("gateway wiring failed")

    app.dependency_overrides[get_text_generation_gateway] = broken_gateway
    client = TestClient(app, raise_server_exceptions=False)

    response = client.post("/conversations/process", json={"message": "Hola", "customerId": 7})

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error", "code": "INTERNAL_ERROR"}
