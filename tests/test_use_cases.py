"""Conversation, email and complex-order use cases end to end with fakes."""

from __future__ import annotations

import asyncio
from datetime import date, timedelta
from decimal import Decimal

from conftest import FakeGateway, FakeOrderRepository, make_order
from vhouse_ai.application.use_cases.conversation_use_cases import (
    CONVERSATION_UNAVAILABLE,
    GenerateBusinessEmailUseCase,
    ProcessBusinessConversationUseCase,
    ProcessComplexOrderUseCase,
)
from vhouse_ai.domain.models import AIProvider, BusinessPriority, ConversationKind
from vhouse_ai.pipelines.conversation.parsing import DEFAULT_EMAIL_SUBJECT
from vhouse_ai.pipelines.conversation.types import (
    BusinessContextOverride,
    BusinessEmailRequest,
    ComplexOrderRequest,
    ConversationRequest,
    ErrorCode,
    ExtractionMode,
    GenerationResult,
)

TODAY = date(2024, 5, 15)
ORDER_TEXT = "Necesito 50 cajas de leche de avena orgánica para entrega la próxima semana"


def _order_use_case(repositories, gateway, **kwargs):
    customers, orders, catalog = repositories
    return ProcessComplexOrderUseCase(customers, orders, catalog, gateway, today=lambda: TODAY, **kwargs)


def _failed_gateway(message="rate limited"):
    return FakeGateway(
        result=GenerationResult(
            content="",
            is_successful=False,
            error_message=message,
            used_provider=AIProvider.OPENAI,
        )
    )


def test_order_from_json_contract(repositories, customer):
    gateway = FakeGateway(
        '```json\n{"items": [{"product": "Leche de Avena Orgánica", "quantity": 50, "unit_price": 25}],'
        ' "delivery_date": "próxima semana", "payment_terms": "30 días"}\n```'
    )
    customers, _, catalog = repositories
    history = FakeOrderRepository([make_order(1, customer.id, "1000.00")])
    use_case = _order_use_case((customers, history, catalog), gateway)

    result = asyncio.run(use_case.execute(ComplexOrderRequest(ORDER_TEXT, customer.id)))

    assert result.is_successful
    assert result.extraction_mode is ExtractionMode.JSON
    assert len(result.extracted_items) == 1
    item = result.extracted_items[0]
    assert (item.product_id, item.quantity, item.unit_price) == (1, 50, Decimal("25.00"))
    assert result.order_summary.sub_total == Decimal("1250.00")
    assert result.order_summary.estimated_tax == Decimal("200.00")
    assert result.estimated_total == Decimal("1450.00")
    assert result.requested_delivery_date == TODAY + timedelta(days=7)
    assert result.payment_terms.days_net == 30
    assert result.alerts == ()
    assert result.missing_information == ()
    assert result.priority is BusinessPriority.MEDIUM
    assert "CATÁLOGO DISPONIBLE:" in gateway.requests[0].prompt


def test_order_from_prose_falls_back_to_keywords(repositories, customer):
    gateway = FakeGateway("Confirmamos 50 cajas de Leche de Avena Orgánica a $25 por caja.")

    result = asyncio.run(_order_use_case(repositories, gateway).execute(ComplexOrderRequest(ORDER_TEXT, customer.id)))

    assert result.is_successful
    assert result.extraction_mode is ExtractionMode.KEYWORD_FALLBACK
    assert [(item.product_name, item.quantity) for item in result.extracted_items] == [("Leche de Avena Orgánica", 50)]
    assert result.estimated_total == Decimal("1450.00")
    assert result.requested_delivery_date == TODAY + timedelta(days=7)
    # No purchase history, so the first order is also flagged as large.
    assert [alert.alert_type for alert in result.alerts] == ["PEDIDO_GRANDE", "REVISION_MANUAL"]
    assert "Términos de pago" in result.missing_information


def test_order_never_prices_products_outside_catalog(repositories, customer):
    gateway = FakeGateway(
        '{"items": [{"product": "Caviar de Berenjena", "quantity": 3, "unit_price": 900},'
        ' {"product": "Tofu Firme", "quantity": 2}]}'
    )

    result = asyncio.run(_order_use_case(repositories, gateway).execute(ComplexOrderRequest(ORDER_TEXT, customer.id)))

    assert [item.product_name for item in result.extracted_items] == ["Tofu Firme"]
    assert "Caviar de Berenjena" in result.missing_information
    assert result.order_summary.sub_total == Decimal("71.50")
    assert "PRODUCTOS_NO_ENCONTRADOS" in [alert.alert_type for alert in result.alerts]


def test_large_order_against_caller_supplied_history(repositories, customer):
    gateway = FakeGateway('{"items": [{"product": "Leche de Avena Orgánica", "quantity": 90}]}')
    request = ComplexOrderRequest(
        "90 cajas de leche de avena, pago de contado",
        customer.id,
        business_context=BusinessContextOverride(typical_order_value=Decimal("1000")),
        kind=ConversationKind.BULK_ORDER,
    )

    result = asyncio.run(_order_use_case(repositories, gateway).execute(request))

    assert result.order_summary.sub_total == Decimal("2250.00")
    large = [alert for alert in result.alerts if alert.alert_type == "PEDIDO_GRANDE"]
    assert large and large[0].priority is BusinessPriority.MEDIUM
    assert result.payment_terms.description == "Pago de contado con 2% descuento"
    assert result.priority is BusinessPriority.HIGH


def test_order_generation_failure(repositories, customer):
    result = asyncio.run(
        _order_use_case(repositories, _failed_gateway()).execute(ComplexOrderRequest(ORDER_TEXT, customer.id))
    )

    assert not result.is_successful
    assert result.error_code is ErrorCode.GENERATION_FAILED
    assert "rate limited" in result.error_message
    assert result.extracted_items == ()
    assert result.estimated_total == Decimal("0.00")


def test_unknown_customer_short_circuits_every_use_case(repositories):
    customers, orders, catalog = repositories
    gateway = FakeGateway("no debería usarse")

    order = asyncio.run(_order_use_case(repositories, gateway).execute(ComplexOrderRequest(ORDER_TEXT, 404)))
    email = asyncio.run(
        GenerateBusinessEmailUseCase(customers, orders, catalog, gateway).execute(
            BusinessEmailRequest("confirmacion_pedido", 404)
        )
    )
    conversation = asyncio.run(
        ProcessBusinessConversationUseCase(customers, orders, catalog, gateway).execute(
            ConversationRequest("Hola", customer_id=404)
        )
    )

    for result in (order, email, conversation):
        assert not result.is_successful
        assert result.error_code is ErrorCode.CUSTOMER_NOT_FOUND
    assert email.subject == "Error: Cliente no encontrado"
    assert gateway.requests == []


def test_internal_error_is_reported_not_raised(repositories, customer):
    customers, _, catalog = repositories

    class BrokenOrders(FakeOrderRepository):
        async def list_recent_for_customer(self, customer_id, limit=5):
            raise RuntimeError("db down")

    result = asyncio.run(
        ProcessComplexOrderUseCase(customers, BrokenOrders(), catalog, FakeGateway("x")).execute(
            ComplexOrderRequest(ORDER_TEXT, customer.id)
        )
    )

    assert not result.is_successful
    assert result.error_code is ErrorCode.INTERNAL_ERROR
    assert result.error_message == "Error interno (RuntimeError)"


def test_conversation_happy_path(repositories, customer):
    customers, _, catalog = repositories
    orders = FakeOrderRepository([make_order(1, customer.id, "800.00")])
    gateway = FakeGateway("Con gusto. El Tofu Firme tiene precio de $35.75 y podemos levantar su pedido.")

    result = asyncio.run(
        ProcessBusinessConversationUseCase(customers, orders, catalog, gateway).execute(
            ConversationRequest(
                "Necesito tofu urgente, 10 cajas",
                customer_id=customer.id,
                kind=ConversationKind.ORDER_INQUIRY,
            )
        )
    )

    assert result.is_successful
    assert result.response_text.startswith("Con gusto")
    assert result.priority is BusinessPriority.URGENT
    assert [action.action_type for action in result.suggested_actions] == ["crear_pedido", "generar_cotizacion"]
    assert [suggestion.product_id for suggestion in result.product_recommendations] == [3]
    assert "producto:tofu" in result.extracted_entities
    assert "cantidad:10 cajas" in result.extracted_entities
    assert "Pedido #1" in gateway.requests[0].prompt


def test_conversation_for_prospect_and_generation_failure(repositories):
    customers, orders, catalog = repositories

    result = asyncio.run(
        ProcessBusinessConversationUseCase(customers, orders, catalog, _failed_gateway()).execute(
            ConversationRequest("Hola, ¿qué venden?")
        )
    )

    assert not result.is_successful
    assert result.response_text == CONVERSATION_UNAVAILABLE
    assert result.error_code is ErrorCode.GENERATION_FAILED
    assert result.used_provider is AIProvider.OPENAI


def test_email_generation(repositories, customer):
    customers, orders, catalog = repositories
    gateway = FakeGateway("SUBJECT: Su pedido #1234 está confirmado\nBODY:\nHola Café Verde,\nGracias por su compra.")

    result = asyncio.run(
        GenerateBusinessEmailUseCase(customers, orders, catalog, gateway).execute(
            BusinessEmailRequest("Confirmacion Pedido", customer.id, {"pedido": 1234, "nota": "envío urgente"})
        )
    )

    assert result.is_successful
    assert result.email_type == "confirmacion_pedido"
    assert result.subject == "Su pedido #1234 está confirmado"
    assert result.body == "Hola Café Verde,\nGracias por su compra."
    assert result.is_urgent
    assert result.required_attachments == ("orden_compra.pdf", "terminos_condiciones.pdf")


def test_email_without_markers_uses_default_subject(repositories, customer):
    customers, orders, catalog = repositories
    raw = "Estimado cliente, le compartimos nuestras novedades."

    result = asyncio.run(
        GenerateBusinessEmailUseCase(customers, orders, catalog, FakeGateway(raw)).execute(
            BusinessEmailRequest("actualizacion_negocio", customer.id)
        )
    )

    assert result.subject == DEFAULT_EMAIL_SUBJECT
    assert result.body == raw
    assert not result.is_urgent
