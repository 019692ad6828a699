"""Business rule evaluation stage (Stage 06).

Pure functions over data the earlier stages already extracted: request
priority, email urgency and attachments, follow-up actions, order alerts and
the list of facts still missing from an order.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from vhouse_ai.domain.models import BusinessPriority, ConversationKind, EmailType
from vhouse_ai.telemetry import record_alert
from vhouse_ai.utils.text import normalize_text

from .types import (
    BusinessAction,
    BusinessAlert,
    BusinessContext,
    EmailDataValue,
    ExtractedOrderItem,
    ExtractionMode,
    OrderSummary,
    PaymentTerms,
)

logger = logging.getLogger("vhouse_ai.pipeline")

URGENCY_LEXICON = ("urgente", "inmediato", "hoy", "emergencia")
# Prefix match at a word start, so "urgentemente" and "inmediata" count too.
_URGENCY_PATTERN = re.compile(r"\b(?:urgent|inmediat|hoy\b|emergencia)")

_HIGH_PRIORITY_KINDS = frozenset({ConversationKind.COMPLAINT, ConversationKind.BULK_ORDER})
_MEDIUM_PRIORITY_KINDS = frozenset({ConversationKind.ORDER_INQUIRY, ConversationKind.PRICE_QUOTE})


def determine_priority(message: str | None, kind: ConversationKind) -> BusinessPriority:
    """Urgency words beat the conversation kind; the kind decides otherwise."""

    if _URGENCY_PATTERN.search(normalize_text(message or "")):
        return BusinessPriority.URGENT
    if kind in _HIGH_PRIORITY_KINDS:
        return BusinessPriority.HIGH
    if kind in _MEDIUM_PRIORITY_KINDS:
        return BusinessPriority.MEDIUM
    return BusinessPriority.LOW


# --- email rules ------------------------------------------------------------

_URGENT_EMAIL_TYPES = frozenset(
    {
        EmailType.PAYMENT_REMINDER.value,
        EmailType.PRODUCT_ALERT.value,
        EmailType.TECHNICAL_NOTICE.value,
    }
)
_URGENT_EMAIL_DATA = re.compile(r"\b(?:urgent|inmediat|critic|emergencia)")

_REQUIRED_ATTACHMENTS: Mapping[str, tuple[str, ...]] = {
    EmailType.ORDER_CONFIRMATION.value: ("orden_compra.pdf", "terminos_condiciones.pdf"),
    EmailType.DELIVERY_UPDATE.value: ("guia_seguimiento.pdf",),
    EmailType.PAYMENT_REMINDER.value: ("factura.pdf", "estado_cuenta.pdf"),
    EmailType.PROMOTIONAL_OFFER.value: ("catalogo_promociones.pdf",),
    EmailType.MARKETING_CAMPAIGN.value: ("catalogo_productos.pdf", "hoja_valores_veganos.pdf"),
}


def normalize_email_type(email_type: str | None) -> str:
    return normalize_text(email_type or "").replace(" ", "_")


def is_urgent_email(email_type: str, email_data: Mapping[str, EmailDataValue]) -> bool:
    if normalize_email_type(email_type) in _URGENT_EMAIL_TYPES:
        return True
    flattened = " ".join(f"{key} {value}" for key, value in email_data.items())
    return bool(_URGENT_EMAIL_DATA.search(normalize_text(flattened)))


def required_attachments(email_type: str) -> tuple[str, ...]:
    return _REQUIRED_ATTACHMENTS.get(normalize_email_type(email_type), ())


# --- conversation actions ---------------------------------------------------

_ORDER_KINDS = frozenset({ConversationKind.ORDER_INQUIRY, ConversationKind.BULK_ORDER})


def suggest_actions(kind: ConversationKind, content: str) -> tuple[BusinessAction, ...]:
    normalized = normalize_text(content)
    actions: list[BusinessAction] = []
    if kind in _ORDER_KINDS and re.search(r"\bpedido", normalized):
        actions.append(
            BusinessAction(
                action_type="crear_pedido",
                description="Crear nuevo pedido basado en consulta",
                action_url="/orders/create",
                priority=BusinessPriority.HIGH,
            )
        )
    if re.search(r"\b(?:cotizacion|precio)", normalized):
        actions.append(
            BusinessAction(
                action_type="generar_cotizacion",
                description="Generar cotización formal",
                action_url="/quotes/create",
                priority=BusinessPriority.MEDIUM,
            )
        )
    if kind is ConversationKind.COMPLAINT:
        actions.append(
            BusinessAction(
                action_type="escalar_a_humano",
                description="Asignar la queja a un ejecutivo de cuenta",
                action_url="/support/escalate",
                priority=BusinessPriority.HIGH,
            )
        )
    return tuple(actions)


# --- order alerts -----------------------------------------------------------


def generate_alerts(
    items: Sequence[ExtractedOrderItem],
    *,
    summary: OrderSummary,
    context: BusinessContext,
    missing_names: Sequence[str] = (),
    extraction_mode: ExtractionMode = ExtractionMode.JSON,
    large_order_multiplier: Decimal = Decimal("2"),
    price_tolerance: Decimal = Decimal("0.10"),
) -> tuple[BusinessAlert, ...]:
    """Evaluate every alert family independently; several may fire at once."""

    alerts: list[BusinessAlert] = []

    typical = context.typical_order_value
    # With no history the typical value is 0, so any priced first order is flagged.
    if summary.sub_total > typical * large_order_multiplier:
        excess = summary.sub_total - typical
        alerts.append(
            BusinessAlert(
                alert_type="PEDIDO_GRANDE",
                message=f"Pedido excede valor típico por ${excess:.2f}",
                priority=BusinessPriority.MEDIUM,
                suggested_actions=("Confirmar inventario", "Verificar términos de pago"),
            )
        )

    for item in items:
        if item.available_stock is not None and item.quantity > item.available_stock:
            alerts.append(
                BusinessAlert(
                    alert_type="STOCK_INSUFICIENTE",
                    message=(
                        f"{item.product_name}: se solicitan {item.quantity} unidades "
                        f"y hay {item.available_stock} en inventario"
                    ),
                    priority=BusinessPriority.HIGH,
                    suggested_actions=("Ofrecer entrega parcial", "Programar reabastecimiento"),
                )
            )

    for item in items:
        quoted = item.quoted_unit_price
        if quoted is None or item.unit_price <= 0:
            continue
        deviation = abs(quoted - item.unit_price) / item.unit_price
        if deviation > price_tolerance:
            alerts.append(
                BusinessAlert(
                    alert_type="PRECIO_DISCREPANTE",
                    message=(
                        f"{item.product_name}: precio mencionado ${quoted:.2f} "
                        f"difiere del catálogo ${item.unit_price:.2f}"
                    ),
                    priority=BusinessPriority.MEDIUM,
                    suggested_actions=("Usar precio de catálogo", "Confirmar precio con el cliente"),
                )
            )

    if missing_names:
        alerts.append(
            BusinessAlert(
                alert_type="PRODUCTOS_NO_ENCONTRADOS",
                message="Productos no encontrados en catálogo: " + ", ".join(missing_names),
                priority=BusinessPriority.MEDIUM,
                suggested_actions=("Confirmar productos con el cliente", "Ofrecer alternativas del catálogo"),
            )
        )

    if not items or extraction_mode is ExtractionMode.KEYWORD_FALLBACK:
        reason = (
            "Pedido extraído sin formato estructurado; cantidades por confirmar"
            if items
            else "No se identificaron productos del catálogo en el pedido"
        )
        alerts.append(
            BusinessAlert(
                alert_type="REVISION_MANUAL",
                message=reason,
                priority=BusinessPriority.HIGH,
                suggested_actions=("Asignar a un ejecutivo de ventas", "Contactar al cliente"),
            )
        )

    for alert in alerts:
        record_alert(alert.alert_type)
    if alerts:
        logger.info("Alertas generadas: %s", ", ".join(alert.alert_type for alert in alerts))
    return tuple(alerts)


def identify_missing_information(
    *,
    reported: Iterable[str] = (),
    missing_names: Iterable[str] = (),
    delivery_date: Optional[date] = None,
    payment_terms: Optional[PaymentTerms] = None,
    extraction_mode: ExtractionMode = ExtractionMode.JSON,
) -> tuple[str, ...]:
    entries: list[str] = [entry for entry in reported if entry]
    entries.extend(missing_names)
    if delivery_date is None:
        entries.append("Fecha de entrega requerida")
    if payment_terms is None:
        entries.append("Términos de pago")
    if extraction_mode is ExtractionMode.KEYWORD_FALLBACK:
        entries.append("Cantidades por confirmar: el pedido no llegó en formato estructurado")
    return tuple(dict.fromkeys(entries))


__all__ = [
    "URGENCY_LEXICON",
    "determine_priority",
    "generate_alerts",
    "identify_missing_information",
    "is_urgent_email",
    "normalize_email_type",
    "required_attachments",
    "suggest_actions",
]
