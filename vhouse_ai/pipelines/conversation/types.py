"""Typed containers shared across the conversation pipeline.

These dataclasses live in their own module so the other stages
(`context`, `prompts`, `llm`, `parsing`, `grounding`, `rules`, `summary`)
can import them without creating circular dependencies. Every container is
frozen: stages build new instances with `dataclasses.replace` instead of
mutating what an earlier stage produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Mapping, Optional, Union

from vhouse_ai.domain.models import (
    AIProvider,
    BusinessPriority,
    ConversationKind,
    Customer,
)

EmailDataValue = Union[str, int, float, bool, None]

ZERO = Decimal("0.00")


class ContextStatus(str, Enum):
    PROSPECT = "prospect"
    FOUND = "found"
    NOT_FOUND = "not_found"


class ExtractionMode(str, Enum):
    JSON = "json"
    KEYWORD_FALLBACK = "keyword_fallback"
    NONE = "none"


class ErrorCode(str, Enum):
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    GENERATION_FAILED = "GENERATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# --- inbound requests -------------------------------------------------------


@dataclass(frozen=True)
class ConversationRequest:
    message: str
    customer_id: Optional[int] = None
    kind: ConversationKind = ConversationKind.GENERAL
    freeform_context: Optional[str] = None
    preferred_provider: Optional[AIProvider] = None


@dataclass(frozen=True)
class BusinessEmailRequest:
    email_type: str
    customer_id: int
    email_data: Mapping[str, EmailDataValue] = field(default_factory=dict)
    preferred_provider: Optional[AIProvider] = None


@dataclass(frozen=True)
class BusinessContextOverride:
    """Caller-supplied commercial facts that replace the store-derived ones."""

    customer_type: Optional[str] = None
    typical_order_value: Optional[Decimal] = None
    recent_order_history: Optional[tuple[str, ...]] = None


@dataclass(frozen=True)
class ComplexOrderRequest:
    natural_language_text: str
    customer_id: int
    business_context: Optional[BusinessContextOverride] = None
    kind: ConversationKind = ConversationKind.ORDER_INQUIRY
    preferred_provider: Optional[AIProvider] = None


# --- context and generation -------------------------------------------------


@dataclass(frozen=True)
class BusinessContext:
    """Facts that ground one generation request. Built fresh per request."""

    status: ContextStatus
    customer: Optional[Customer] = None
    customer_type: str = "Prospecto"
    typical_order_value: Decimal = ZERO
    recent_order_summaries: tuple[str, ...] = ()

    @property
    def is_found(self) -> bool:
        return self.status is ContextStatus.FOUND

    @property
    def customer_name(self) -> str:
        if self.customer is None:
            return "Cliente potencial"
        return self.customer.name

    def render(self) -> str:
        """Return the context block interpolated into prompts."""

        if self.status is ContextStatus.PROSPECT:
            return (
                "CONTEXTO DEL CLIENTE:\n"
                "- Cliente potencial sin historial registrado.\n"
                "- Presenta la propuesta de valor de VHouse como distribuidor vegano."
            )

        lines = [
            "CONTEXTO DEL CLIENTE:",
            f"- Nombre: {self.customer_name}",
            f"- Tipo de cliente: {self.customer_type}",
            f"- Valor típico de pedido: ${self.typical_order_value:.2f}",
        ]
        if self.customer is not None:
            lines.append(f"- Estado: {'Activo' if self.customer.is_active else 'Inactivo'}")
        if self.recent_order_summaries:
            lines.append("- Pedidos recientes:")
            lines.extend(f"  * {summary}" for summary in self.recent_order_summaries)
        else:
            lines.append("- Sin pedidos recientes.")
        return "\n".join(lines)


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    max_tokens: int
    temperature: float
    preferred_provider: Optional[AIProvider] = None
    system_message: str = ""


@dataclass(frozen=True)
class GenerationResult:
    """Gateway output. `content` must not be parsed unless `is_successful`."""

    content: str
    is_successful: bool
    error_message: Optional[str] = None
    used_provider: Optional[AIProvider] = None
    used_model: Optional[str] = None
    tokens_used: int = 0
    response_time_ms: float = 0.0


# --- parsing and grounding --------------------------------------------------


@dataclass(frozen=True)
class ExtractedOrderItem:
    """One order line. `product_id` is set only by catalog grounding."""

    raw_product_name: str
    quantity: int
    unit_price: Decimal = ZERO
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    notes: Optional[str] = None
    quoted_unit_price: Optional[Decimal] = None
    available_stock: Optional[int] = None
    quantity_is_placeholder: bool = False

    @property
    def is_grounded(self) -> bool:
        return self.product_id is not None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class ParsedEmail:
    subject: str
    body: str
    has_subject_marker: bool = False
    has_body_marker: bool = False


@dataclass(frozen=True)
class ParsedOrder:
    items: tuple[ExtractedOrderItem, ...] = ()
    mode: ExtractionMode = ExtractionMode.NONE
    delivery_date_text: Optional[str] = None
    payment_terms_text: Optional[str] = None
    special_requests: Optional[str] = None
    missing_information: tuple[str, ...] = ()


@dataclass(frozen=True)
class GroundingResult:
    items: tuple[ExtractedOrderItem, ...] = ()
    missing_names: tuple[str, ...] = ()


# --- rule evaluation and summaries ------------------------------------------


@dataclass(frozen=True)
class OrderSummary:
    total_items: int = 0
    sub_total: Decimal = ZERO
    estimated_tax: Decimal = ZERO
    estimated_total: Decimal = ZERO
    currency: str = "MXN"


@dataclass(frozen=True)
class BusinessAlert:
    alert_type: str
    message: str
    priority: BusinessPriority
    suggested_actions: tuple[str, ...] = ()


@dataclass(frozen=True)
class PaymentTerms:
    days_net: int
    discount_percentage: Decimal
    discount_days: int
    description: str


@dataclass(frozen=True)
class BusinessAction:
    action_type: str
    description: str
    action_url: str
    priority: BusinessPriority


@dataclass(frozen=True)
class ProductSuggestion:
    product_id: int
    product_name: str
    reason: str
    price: Decimal
    in_stock: bool


# --- orchestrator output ----------------------------------------------------


@dataclass(frozen=True)
class ConversationResponse:
    response_text: str
    is_successful: bool
    context_label: str = ConversationKind.GENERAL.value
    suggested_actions: tuple[BusinessAction, ...] = ()
    product_recommendations: tuple[ProductSuggestion, ...] = ()
    priority: BusinessPriority = BusinessPriority.LOW
    extracted_entities: tuple[str, ...] = ()
    used_provider: Optional[AIProvider] = None
    used_model: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    response_time_ms: float = 0.0


@dataclass(frozen=True)
class BusinessEmailResponse:
    subject: str
    body: str
    is_successful: bool
    email_type: str = ""
    is_urgent: bool = False
    required_attachments: tuple[str, ...] = ()
    used_provider: Optional[AIProvider] = None
    used_model: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    response_time_ms: float = 0.0


@dataclass(frozen=True)
class ComplexOrderResponse:
    is_successful: bool
    extracted_items: tuple[ExtractedOrderItem, ...] = ()
    order_summary: OrderSummary = field(default_factory=OrderSummary)
    alerts: tuple[BusinessAlert, ...] = ()
    missing_information: tuple[str, ...] = ()
    requested_delivery_date: Optional[date] = None
    payment_terms: Optional[PaymentTerms] = None
    special_requests: Optional[str] = None
    priority: BusinessPriority = BusinessPriority.MEDIUM
    extraction_mode: ExtractionMode = ExtractionMode.NONE
    used_provider: Optional[AIProvider] = None
    used_model: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    response_time_ms: float = 0.0

    @property
    def estimated_total(self) -> Decimal:
        return self.order_summary.estimated_total


__all__ = [
    "BusinessAction",
    "BusinessAlert",
    "BusinessContext",
    "BusinessContextOverride",
    "BusinessEmailRequest",
    "BusinessEmailResponse",
    "ComplexOrderRequest",
    "ComplexOrderResponse",
    "ContextStatus",
    "ConversationRequest",
    "ConversationResponse",
    "EmailDataValue",
    "ErrorCode",
    "ExtractedOrderItem",
    "ExtractionMode",
    "GenerationRequest",
    "GenerationResult",
    "GroundingResult",
    "OrderSummary",
    "ParsedEmail",
    "ParsedOrder",
    "PaymentTerms",
    "ProductSuggestion",
    "ZERO",
]
