"""Pydantic models for validating generator JSON responses.

The order-extraction prompt asks the generator for a JSON object shaped like
``{items:[{product, quantity, notes}], delivery_date, payment_terms,
special_requests, missing_info}``. These schemas validate that object so the
parser receives normalized, type-safe values, and report anything else as a
`ResponseContractError`.
"""

from __future__ import annotations

import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

_LEADING_INTEGER = re.compile(r"\d+")


class ResponseContractError(RuntimeError):
    """Raised when the generator response contract cannot be validated."""


class OrderItemPayload(BaseModel):
    product: str = Field(
        min_length=1,
        validation_alias=AliasChoices("product", "product_name", "productName", "name"),
    )
    quantity: int = Field(gt=0)
    notes: Optional[str] = None
    unit_price: Optional[Decimal] = Field(default=None, alias="unitPrice", ge=0)

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("product", mode="before")
    @classmethod
    def strip_product(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("quantity", mode="before")
    @classmethod
    def quantity_from_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            match = _LEADING_INTEGER.search(value)
            return int(match.group(0)) if match else value
        return value

    @field_validator("unit_price", mode="before")
    @classmethod
    def lenient_price(cls, value: Any) -> Any:
        # A quoted price is advisory only; an unreadable one is dropped.
        if value is None or isinstance(value, bool):
            return None
        text = str(value).replace("$", "").replace(",", "").strip()
        try:
            price = Decimal(text)
        except InvalidOperation:
            return None
        if not price.is_finite() or price < 0:
            return None
        return price

    @field_validator("notes", mode="before")
    @classmethod
    def stringify_notes(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value or None
        return str(value)


class OrderExtractionPayload(BaseModel):
    items: List[Any] = Field(default_factory=list)
    delivery_date: Optional[str] = Field(default=None, alias="deliveryDate")
    payment_terms: Optional[str] = Field(default=None, alias="paymentTerms")
    special_requests: Optional[str] = Field(default=None, alias="specialRequests")
    missing_info: List[str] = Field(default_factory=list, alias="missingInfo")

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator("items", mode="before")
    @classmethod
    def default_items(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("delivery_date", "payment_terms", "special_requests", mode="before")
    @classmethod
    def optional_text(cls, value: Any) -> Any:
        if value is None:
            return None
        text = value if isinstance(value, str) else str(value)
        return text.strip() or None

    @field_validator("missing_info", mode="before")
    @classmethod
    def coerce_missing_info(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        if isinstance(value, list):
            return [str(entry).strip() for entry in value if str(entry).strip()]
        return value

    def valid_items(self) -> tuple[list[OrderItemPayload], list[str]]:
        """Split raw items into validated payloads and readable rejections."""

        accepted: list[OrderItemPayload] = []
        rejected: list[str] = []
        for entry in self.items:
            if not isinstance(entry, dict):
                rejected.append(f"Partida ilegible: {str(entry)[:80]}")
                continue
            try:
                accepted.append(OrderItemPayload.model_validate(entry))
            except ValidationError:
                label = entry.get("product") or entry.get("name") or "sin nombre"
                rejected.append(f"Cantidad o producto inválido para '{str(label)[:80]}'")
        return accepted, rejected

    @classmethod
    def from_json(cls, payload: str) -> "OrderExtractionPayload":
        cleaned = _clean_json_payload(payload)
        if not cleaned:
            raise ResponseContractError("Respuesta vacía: no hay JSON que validar.")
        try:
            data = json.loads(cleaned)
        except (ValueError, RecursionError) as exc:
            # ValueError also covers integers past the interpreter digit limit.
            raise ResponseContractError(f"JSON inválido: {exc}") from exc

        if isinstance(data, list):
            data = {"items": data}
        if not isinstance(data, dict):
            raise ResponseContractError("El JSON no es un objeto de pedido.")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ResponseContractError(str(exc)) from exc


_FENCED_BLOCK = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)


def _clean_json_payload(payload: str) -> str:
    """Strip Markdown code blocks and find the first/last brace to extract JSON."""
    if not payload:
        return ""

    cleaned = payload.strip()
    fenced = _FENCED_BLOCK.search(cleaned)
    if fenced:
        cleaned = fenced.group(1).strip()

    # Find the first '{' and last '}'
    start = cleaned.find("{")
    end = cleaned.rfind("}")

    if start != -1 and end != -1 and end > start:
        return cleaned[start : end + 1]
    if cleaned.startswith("["):
        return cleaned
    return ""


__all__ = [
    "OrderExtractionPayload",
    "OrderItemPayload",
    "ResponseContractError",
]
