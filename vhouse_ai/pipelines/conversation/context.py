"""Business context stage for the conversation pipeline (Stage 01).

Reads the customer profile and recent order history that ground a
generation request. A missing customer id yields a prospect context; an id
the store does not know yields a NOT_FOUND context instead of an exception,
so the orchestrator can short-circuit before any generation call.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from .summary import to_money
from .types import ZERO, BusinessContext, BusinessContextOverride, ContextStatus

if TYPE_CHECKING:
    from vhouse_ai.application.interfaces import (
        CustomerRepositoryInterface,
        OrderRepositoryInterface,
    )
    from vhouse_ai.domain.models import Customer, OrderRecord

logger = logging.getLogger("vhouse_ai.pipeline")


def classify_customer(customer: "Customer") -> str:
    """Commercial classification shown to the generator."""

    preference = "Vegano comprometido" if customer.is_vegan_preferred else "Cliente general"
    status = "activo" if customer.is_active else "inactivo"
    return f"{preference} ({status})"


def summarize_order_record(order: "OrderRecord") -> str:
    line = f"Pedido #{order.id} del {order.order_date:%Y-%m-%d}: ${to_money(order.total_amount):.2f}"
    if order.notes:
        line += f" ({order.notes.strip()[:80]})"
    return line


def _typical_value(orders: list["OrderRecord"]) -> Decimal:
    if not orders:
        return ZERO
    total = sum((Decimal(order.total_amount) for order in orders), Decimal("0"))
    return to_money(total / len(orders))


def apply_override(
    context: BusinessContext,
    override: Optional[BusinessContextOverride],
) -> BusinessContext:
    """Let caller-supplied facts replace the store-derived ones."""

    if override is None or context.status is ContextStatus.NOT_FOUND:
        return context

    changes: dict[str, object] = {}
    if override.customer_type:
        changes["customer_type"] = override.customer_type
    if override.typical_order_value is not None:
        changes["typical_order_value"] = to_money(override.typical_order_value)
    if override.recent_order_history is not None:
        changes["recent_order_summaries"] = tuple(override.recent_order_history)
    return replace(context, **changes) if changes else context


async def build_business_context(
    customer_id: Optional[int],
    *,
    customer_repository: "CustomerRepositoryInterface",
    order_repository: "OrderRepositoryInterface",
    recent_limit: int = 5,
    override: Optional[BusinessContextOverride] = None,
) -> BusinessContext:
    """Assemble the read-only facts for one request."""

    if customer_id is None:
        return apply_override(BusinessContext(status=ContextStatus.PROSPECT), override)

    customer = await customer_repository.get_by_id(customer_id)
    if customer is None:
        logger.warning("Cliente %s no encontrado", customer_id)
        return BusinessContext(status=ContextStatus.NOT_FOUND, customer_type="Desconocido")

    orders = await order_repository.list_recent_for_customer(customer_id, recent_limit)
    orders = list(orders)[:recent_limit]
    context = BusinessContext(
        status=ContextStatus.FOUND,
        customer=customer,
        customer_type=classify_customer(customer),
        typical_order_value=_typical_value(orders),
        recent_order_summaries=tuple(summarize_order_record(order) for order in orders),
    )
    logger.info(
        "Contexto cliente=%s tipo=%s pedidos_recientes=%s valor_tipico=%s",
        customer_id,
        context.customer_type,
        len(orders),
        context.typical_order_value,
    )
    return apply_override(context, override)


__all__ = [
    "apply_override",
    "build_business_context",
    "classify_customer",
    "summarize_order_record",
]
