"""Catalog grounding stage (Stage 05).

Cross-checks the product names the generator mentioned against the live
catalog. Only active, in-stock products can be bound; anything else is
dropped and reported by its raw name so a human can follow up. Prices
always come from the catalog, never from the generated text.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from vhouse_ai.domain.models import Product
from vhouse_ai.telemetry import record_grounding_miss
from vhouse_ai.utils.text import name_key, significant_tokens

from .types import ExtractedOrderItem, GroundingResult, ProductSuggestion

logger = logging.getLogger("vhouse_ai.pipeline")

_EXACT = 3.0
_NAME_IN_TEXT = 2.0
_TEXT_IN_NAME = 1.0
_MIN_TOKEN_OVERLAP = 0.6

# Descriptors shared by much of the catalog; they do not identify a product.
_GENERIC_TOKENS = frozenset(
    {"vegano", "vegana", "organico", "organica", "natural", "artesanal", "premium", "kg", "gr", "ml"}
)


def available_products(catalog: Iterable[Product]) -> list[Product]:
    """Return the active, in-stock products in catalog order."""

    return [product for product in catalog if product.is_available]


def _score(raw_key: str, raw_tokens: frozenset[str], product: Product) -> float:
    product_key = name_key(product.name)
    if not product_key:
        return 0.0
    if raw_key == product_key:
        return _EXACT
    if f" {product_key} " in f" {raw_key} ":
        return _NAME_IN_TEXT + len(product_key) / max(len(raw_key), 1)
    if f" {raw_key} " in f" {product_key} ":
        return _TEXT_IN_NAME

    product_tokens = significant_tokens(product.name) - _GENERIC_TOKENS
    if not raw_tokens or not product_tokens:
        return 0.0
    shared = raw_tokens & product_tokens
    if len(shared) / len(raw_tokens) < _MIN_TOKEN_OVERLAP:
        return 0.0
    return len(shared) / len(raw_tokens | product_tokens)


def match_product(raw_name: str, products: Sequence[Product]) -> Optional[Product]:
    """Return the single best catalog match for ``raw_name``.

    A tie between different products is treated as no match: binding the
    wrong product would put an invented line on the order.
    """

    raw_key = name_key(raw_name)
    if not raw_key:
        return None
    raw_tokens = significant_tokens(raw_name) - _GENERIC_TOKENS

    best_score = 0.0
    best: list[Product] = []
    for product in products:
        score = _score(raw_key, raw_tokens, product)
        if score <= 0:
            continue
        if score > best_score:
            best_score = score
            best = [product]
        elif score == best_score:
            best.append(product)

    if len({product.id for product in best}) == 1:
        return best[0]
    if best:
        logger.info(
            "Producto ambiguo '%s' coincide con %s",
            raw_name,
            ", ".join(product.name for product in best),
        )
    return None


def ground_items(
    items: Iterable[ExtractedOrderItem],
    catalog: Iterable[Product],
) -> GroundingResult:
    """Bind extracted items to catalog products; collect the unmatched names."""

    products = available_products(catalog)
    grounded: list[ExtractedOrderItem] = []
    missing: list[str] = []

    for item in items:
        product = match_product(item.raw_product_name, products)
        if product is None:
            record_grounding_miss()
            if item.raw_product_name not in missing:
                missing.append(item.raw_product_name)
            logger.info("Producto fuera de catálogo descartado: '%s'", item.raw_product_name)
            continue
        grounded.append(
            replace(
                item,
                product_id=product.id,
                product_name=product.name,
                unit_price=product.price,
                available_stock=product.stock_quantity,
            )
        )

    return GroundingResult(items=tuple(grounded), missing_names=tuple(missing))


def recommend_products(
    text: str,
    catalog: Iterable[Product],
    limit: int,
) -> tuple[ProductSuggestion, ...]:
    """Suggest catalog products mentioned (by name or name token) in ``text``."""

    if limit <= 0 or not text:
        return ()
    text_key = f" {name_key(text)} "
    text_tokens = significant_tokens(text)

    scored: list[tuple[int, int, ProductSuggestion]] = []
    for product in available_products(catalog):
        product_key = name_key(product.name)
        if product_key and f" {product_key} " in text_key:
            rank, reason = 2, "Mencionado en la conversación"
        else:
            shared = sorted((significant_tokens(product.name) & text_tokens) - _GENERIC_TOKENS)
            if not shared:
                continue
            rank, reason = 1, f"Relacionado con '{shared[0]}' en la conversación"
        scored.append(
            (
                rank,
                product.id,
                ProductSuggestion(
                    product_id=product.id,
                    product_name=product.name,
                    reason=reason,
                    price=product.price,
                    in_stock=product.stock_quantity > 0,
                ),
            )
        )

    scored.sort(key=lambda entry: (-entry[0], entry[1]))
    return tuple(suggestion for _, _, suggestion in scored[:limit])


__all__ = [
    "available_products",
    "ground_items",
    "match_product",
    "recommend_products",
]
