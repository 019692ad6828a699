"""Business rules: priority, email urgency, actions, alerts, missing facts."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from conftest import make_product
from vhouse_ai.domain.models import BusinessPriority, ConversationKind
from vhouse_ai.pipelines.conversation.grounding import ground_items
from vhouse_ai.pipelines.conversation.rules import (
    determine_priority,
    generate_alerts,
    identify_missing_information,
    is_urgent_email,
    normalize_email_type,
    required_attachments,
    suggest_actions,
)
from vhouse_ai.pipelines.conversation.summary import summarize_order
from vhouse_ai.pipelines.conversation.types import (
    BusinessContext,
    ContextStatus,
    ExtractedOrderItem,
    ExtractionMode,
    OrderSummary,
    PaymentTerms,
)


def _context(typical="0.00"):
    return BusinessContext(status=ContextStatus.FOUND, typical_order_value=Decimal(typical))


def _alert_types(alerts):
    return [alert.alert_type for alert in alerts]


@pytest.mark.parametrize("kind", list(ConversationKind))
@pytest.mark.parametrize(
    "message",
    ["Es URGENTE", "lo necesito urgentemente", "entrega inmediata", "para hoy", "tenemos una emergencia"],
)
def test_urgency_words_win_over_kind(message, kind):
    assert determine_priority(message, kind) is BusinessPriority.URGENT


@pytest.mark.parametrize(
    "kind, expected",
    [
        (ConversationKind.COMPLAINT, BusinessPriority.HIGH),
        (ConversationKind.BULK_ORDER, BusinessPriority.HIGH),
        (ConversationKind.ORDER_INQUIRY, BusinessPriority.MEDIUM),
        (ConversationKind.PRICE_QUOTE, BusinessPriority.MEDIUM),
        (ConversationKind.GENERAL, BusinessPriority.LOW),
        (ConversationKind.PARTNERSHIP, BusinessPriority.LOW),
    ],
)
def test_priority_by_kind(kind, expected):
    assert determine_priority("Quisiera información", kind) is expected


def test_hoy_must_be_a_whole_word():
    assert determine_priority("Hoyos en el empaque", ConversationKind.GENERAL) is BusinessPriority.LOW


def test_email_urgency_and_attachments():
    assert normalize_email_type("Recordatorio Pago") == "recordatorio_pago"
    assert is_urgent_email("recordatorio_pago", {})
    assert is_urgent_email("confirmacion_pedido", {"nota": "Entrega crítica"})
    assert not is_urgent_email("confirmacion_pedido", {"pedido": 1234, "pagado": True})
    assert required_attachments("confirmacion_pedido") == ("orden_compra.pdf", "terminos_condiciones.pdf")
    assert required_attachments("tipo_desconocido") == ()


def test_suggested_actions():
    actions = suggest_actions(ConversationKind.ORDER_INQUIRY, "Con gusto preparamos su pedido; el precio es $25.")

    assert [action.action_type for action in actions] == ["crear_pedido", "generar_cotizacion"]
    assert actions[0].action_url == "/orders/create"

    complaint = suggest_actions(ConversationKind.COMPLAINT, "Lamentamos el inconveniente")
    assert [action.action_type for action in complaint] == ["escalar_a_humano"]


def test_large_order_alert_against_typical_value():
    summary = OrderSummary(sub_total=Decimal("9000.00"), estimated_total=Decimal("10440.00"))
    item = ExtractedOrderItem(raw_product_name="Tofu", quantity=1, product_id=3, product_name="Tofu", unit_price=Decimal("9000"))

    alerts = generate_alerts([item], summary=summary, context=_context("3000.00"))

    large = [alert for alert in alerts if alert.alert_type == "PEDIDO_GRANDE"]
    assert len(large) == 1
    assert large[0].priority is BusinessPriority.MEDIUM
    assert large[0].message == "Pedido excede valor típico por $6000.00"


def test_first_order_without_history_is_flagged_as_large():
    summary = OrderSummary(sub_total=Decimal("9000.00"))
    item = ExtractedOrderItem(raw_product_name="Tofu", quantity=1, product_id=3, product_name="Tofu")

    alerts = generate_alerts([item], summary=summary, context=_context())

    assert _alert_types(alerts) == ["PEDIDO_GRANDE"]
    assert alerts[0].message == "Pedido excede valor típico por $9000.00"


def test_empty_order_is_never_large():
    alerts = generate_alerts([], summary=OrderSummary(), context=_context())

    assert "PEDIDO_GRANDE" not in _alert_types(alerts)


def test_stock_price_and_missing_product_alerts():
    catalog = [make_product(1, "Queso Vegano Cheddar", "65.00", stock=4)]
    extracted = [
        ExtractedOrderItem(raw_product_name="Queso Vegano Cheddar", quantity=10, quoted_unit_price=Decimal("50")),
        ExtractedOrderItem(raw_product_name="Caviar de Berenjena", quantity=1),
    ]
    grounding = ground_items(extracted, catalog)
    summary = summarize_order(grounding.items, tax_rate=Decimal("0.16"), currency="MXN")

    alerts = generate_alerts(
        grounding.items,
        summary=summary,
        context=_context("1000.00"),
        missing_names=grounding.missing_names,
    )

    assert _alert_types(alerts) == ["STOCK_INSUFICIENTE", "PRECIO_DISCREPANTE", "PRODUCTOS_NO_ENCONTRADOS"]
    assert alerts[0].priority is BusinessPriority.HIGH
    assert "Caviar de Berenjena" in alerts[2].message


def test_price_within_tolerance_is_not_flagged():
    item = ExtractedOrderItem(
        raw_product_name="Tofu",
        quantity=1,
        product_id=3,
        product_name="Tofu",
        unit_price=Decimal("100"),
        quoted_unit_price=Decimal("105"),
    )

    alerts = generate_alerts([item], summary=OrderSummary(), context=_context())

    assert "PRECIO_DISCREPANTE" not in _alert_types(alerts)


def test_manual_review_for_empty_or_keyword_orders():
    empty = generate_alerts([], summary=OrderSummary(), context=_context())
    assert _alert_types(empty) == ["REVISION_MANUAL"]

    item = ExtractedOrderItem(raw_product_name="Tofu", quantity=1, product_id=3, product_name="Tofu")
    keyword = generate_alerts(
        [item],
        summary=OrderSummary(),
        context=_context(),
        extraction_mode=ExtractionMode.KEYWORD_FALLBACK,
    )
    assert _alert_types(keyword) == ["REVISION_MANUAL"]
    assert keyword[0].priority is BusinessPriority.HIGH


def test_missing_information():
    missing = identify_missing_information(
        reported=["Dirección de entrega", ""],
        missing_names=["Caviar"],
        extraction_mode=ExtractionMode.KEYWORD_FALLBACK,
    )

    assert missing == (
        "Dirección de entrega",
        "Caviar",
        "Fecha de entrega requerida",
        "Términos de pago",
        "Cantidades por confirmar: el pedido no llegó en formato estructurado",
    )

    complete = identify_missing_information(
        delivery_date=date(2024, 5, 22),
        payment_terms=PaymentTerms(days_net=30, discount_percentage=Decimal("0"), discount_days=0, description="Net 30 días"),
    )
    assert complete == ()
