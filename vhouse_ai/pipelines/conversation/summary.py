"""Financial summary stage (Stage 07)."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from .types import ExtractedOrderItem, OrderSummary

CENT = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    """Quantize to currency precision (two decimals, half up)."""

    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def summarize_order(
    items: Iterable[ExtractedOrderItem],
    *,
    tax_rate: Decimal,
    currency: str,
) -> OrderSummary:
    """Compute item count, subtotal, tax and total for grounded items.

    Raises ValueError if an item has not been bound to a catalog product.
    """

    total_items = 0
    sub_total = Decimal("0")
    for item in items:
        if not item.is_grounded:
            raise ValueError(f"Partida sin producto de catálogo: {item.raw_product_name}")
        total_items += item.quantity
        sub_total += item.unit_price * item.quantity

    sub_total = to_money(sub_total)
    estimated_tax = to_money(sub_total * Decimal(tax_rate))
    return OrderSummary(
        total_items=total_items,
        sub_total=sub_total,
        estimated_tax=estimated_tax,
        estimated_total=sub_total + estimated_tax,
        currency=currency,
    )


__all__ = ["CENT", "summarize_order", "to_money"]
