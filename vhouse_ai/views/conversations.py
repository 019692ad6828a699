"""Request/response schemas for the conversation endpoints."""

import re
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from vhouse_ai.domain.models import AIProvider, BusinessPriority, ConversationKind
from vhouse_ai.pipelines.conversation.types import (
    BusinessContextOverride,
    BusinessEmailRequest,
    BusinessEmailResponse,
    ComplexOrderRequest,
    ComplexOrderResponse,
    ConversationRequest,
    ConversationResponse,
)

EmailDataValue = Union[str, int, float, bool, None]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _enum_token(value: Any) -> Any:
    """Accept "OrderInquiry", "ORDER_INQUIRY", "order-inquiry" or "order_inquiry"."""
    if not isinstance(value, str):
        return value
    token = value.strip().replace("-", "_")
    if not token.isupper():
        token = _CAMEL_BOUNDARY.sub("_", token)
    return token.replace("__", "_").lower()


class _CamelModel(BaseModel):
    class Config:
        populate_by_name = True


# --- requests ---------------------------------------------------------------


class ConversationProcessRequest(_CamelModel):
    """Free-form business message."""

    message: str = Field(..., min_length=1, description="Customer or operator message")
    customer_id: Optional[int] = Field(None, alias="customerId")
    conversation_type: ConversationKind = Field(
        ConversationKind.GENERAL, alias="conversationType"
    )
    context: Optional[str] = Field(None, description="Additional free-form context")
    preferred_provider: Optional[AIProvider] = Field(None, alias="preferredProvider")

    @field_validator("conversation_type", "preferred_provider", mode="before")
    @classmethod
    def _normalize_enums(cls, value: Any) -> Any:
        return _enum_token(value)

    def to_domain(self) -> ConversationRequest:
        return ConversationRequest(
            message=self.message,
            customer_id=self.customer_id,
            kind=self.conversation_type,
            freeform_context=self.context,
            preferred_provider=self.preferred_provider,
        )


class BusinessEmailGenerateRequest(_CamelModel):
    """Email generation request; emailData is a flat map of primitives."""

    email_type: str = Field(..., min_length=1, alias="emailType")
    customer_id: int = Field(..., alias="customerId")
    email_data: Dict[str, EmailDataValue] = Field(default_factory=dict, alias="emailData")
    preferred_provider: Optional[AIProvider] = Field(None, alias="preferredProvider")

    @field_validator("preferred_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: Any) -> Any:
        return _enum_token(value)

    def to_domain(self) -> BusinessEmailRequest:
        return BusinessEmailRequest(
            email_type=self.email_type,
            customer_id=self.customer_id,
            email_data=dict(self.email_data),
            preferred_provider=self.preferred_provider,
        )


class BusinessContextPayload(_CamelModel):
    customer_type: Optional[str] = Field(None, alias="customerType")
    typical_order_value: Optional[Decimal] = Field(None, alias="typicalOrderValue", ge=0)
    recent_order_history: Optional[List[str]] = Field(None, alias="recentOrderHistory")


class ComplexOrderProcessRequest(_CamelModel):
    """Natural-language order request."""

    natural_language_text: str = Field(..., min_length=1, alias="naturalLanguageText")
    customer_id: int = Field(..., alias="customerId")
    business_context: Optional[BusinessContextPayload] = Field(None, alias="businessContext")
    conversation_type: ConversationKind = Field(
        ConversationKind.ORDER_INQUIRY, alias="conversationType"
    )
    preferred_provider: Optional[AIProvider] = Field(None, alias="preferredProvider")

    @field_validator("conversation_type", "preferred_provider", mode="before")
    @classmethod
    def _normalize_enums(cls, value: Any) -> Any:
        return _enum_token(value)

    def to_domain(self) -> ComplexOrderRequest:
        override = None
        if self.business_context is not None:
            history = self.business_context.recent_order_history
            override = BusinessContextOverride(
                customer_type=self.business_context.customer_type,
                typical_order_value=self.business_context.typical_order_value,
                recent_order_history=tuple(history) if history is not None else None,
            )
        return ComplexOrderRequest(
            natural_language_text=self.natural_language_text,
            customer_id=self.customer_id,
            business_context=override,
            kind=self.conversation_type,
            preferred_provider=self.preferred_provider,
        )


# --- responses --------------------------------------------------------------


class BusinessActionView(_CamelModel):
    action_type: str = Field(..., alias="actionType")
    description: str
    action_url: str = Field(..., alias="actionUrl")
    priority: BusinessPriority


class ProductSuggestionView(_CamelModel):
    product_id: int = Field(..., alias="productId")
    product_name: str = Field(..., alias="productName")
    reason: str
    price: Decimal
    in_stock: bool = Field(..., alias="inStock")


class ConversationProcessResponse(_CamelModel):
    response: str
    context: str
    suggested_actions: List[BusinessActionView] = Field(default_factory=list, alias="suggestedActions")
    product_recommendations: List[ProductSuggestionView] = Field(
        default_factory=list, alias="productRecommendations"
    )
    priority: BusinessPriority
    extracted_entities: List[str] = Field(default_factory=list, alias="extractedEntities")
    used_provider: Optional[AIProvider] = Field(None, alias="usedProvider")
    used_model: Optional[str] = Field(None, alias="usedModel")
    is_successful: bool = Field(..., alias="isSuccessful")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    error_code: Optional[str] = Field(None, alias="errorCode")
    response_time_ms: float = Field(..., alias="responseTimeMs")

    @classmethod
    def from_domain(cls, result: ConversationResponse) -> "ConversationProcessResponse":
        return cls(
            response=result.response_text,
            context=result.context_label,
            suggested_actions=[
                BusinessActionView(
                    action_type=action.action_type,
                    description=action.description,
                    action_url=action.action_url,
                    priority=action.priority,
                )
                for action in result.suggested_actions
            ],
            product_recommendations=[
                ProductSuggestionView(
                    product_id=suggestion.product_id,
                    product_name=suggestion.product_name,
                    reason=suggestion.reason,
                    price=suggestion.price,
                    in_stock=suggestion.in_stock,
                )
                for suggestion in result.product_recommendations
            ],
            priority=result.priority,
            extracted_entities=list(result.extracted_entities),
            used_provider=result.used_provider,
            used_model=result.used_model,
            is_successful=result.is_successful,
            error_message=result.error_message,
            error_code=result.error_code.value if result.error_code else None,
            response_time_ms=result.response_time_ms,
        )


class BusinessEmailGenerateResponse(_CamelModel):
    subject: str
    body: str
    email_type: str = Field(..., alias="emailType")
    is_urgent: bool = Field(..., alias="isUrgent")
    required_attachments: List[str] = Field(default_factory=list, alias="requiredAttachments")
    used_provider: Optional[AIProvider] = Field(None, alias="usedProvider")
    used_model: Optional[str] = Field(None, alias="usedModel")
    is_successful: bool = Field(..., alias="isSuccessful")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    error_code: Optional[str] = Field(None, alias="errorCode")
    response_time_ms: float = Field(..., alias="responseTimeMs")

    @classmethod
    def from_domain(cls, result: BusinessEmailResponse) -> "BusinessEmailGenerateResponse":
        return cls(
            subject=result.subject,
            body=result.body,
            email_type=result.email_type,
            is_urgent=result.is_urgent,
            required_attachments=list(result.required_attachments),
            used_provider=result.used_provider,
            used_model=result.used_model,
            is_successful=result.is_successful,
            error_message=result.error_message,
            error_code=result.error_code.value if result.error_code else None,
            response_time_ms=result.response_time_ms,
        )


class OrderItemView(_CamelModel):
    product_id: int = Field(..., alias="productId")
    product_name: str = Field(..., alias="productName")
    raw_product_name: str = Field(..., alias="rawProductName")
    quantity: int
    unit_price: Decimal = Field(..., alias="unitPrice")
    line_total: Decimal = Field(..., alias="lineTotal")
    notes: Optional[str] = None
    quantity_is_placeholder: bool = Field(False, alias="quantityIsPlaceholder")


class OrderSummaryView(_CamelModel):
    total_items: int = Field(..., alias="totalItems")
    sub_total: Decimal = Field(..., alias="subTotal")
    estimated_tax: Decimal = Field(..., alias="estimatedTax")
    estimated_total: Decimal = Field(..., alias="estimatedTotal")
    currency: str


class BusinessAlertView(_CamelModel):
    alert_type: str = Field(..., alias="alertType")
    message: str
    priority: BusinessPriority
    suggested_actions: List[str] = Field(default_factory=list, alias="suggestedActions")


class PaymentTermsView(_CamelModel):
    days_net: int = Field(..., alias="daysNet")
    discount_percentage: Decimal = Field(..., alias="discountPercentage")
    discount_days: int = Field(..., alias="discountDays")
    description: str


class ComplexOrderProcessResponse(_CamelModel):
    extracted_items: List[OrderItemView] = Field(default_factory=list, alias="extractedItems")
    order_summary: OrderSummaryView = Field(..., alias="orderSummary")
    alerts: List[BusinessAlertView] = Field(default_factory=list)
    missing_information: List[str] = Field(default_factory=list, alias="missingInformation")
    requested_delivery_date: Optional[date] = Field(None, alias="requestedDeliveryDate")
    payment_terms: Optional[PaymentTermsView] = Field(None, alias="paymentTerms")
    special_requests: Optional[str] = Field(None, alias="specialRequests")
    priority: BusinessPriority
    extraction_mode: str = Field(..., alias="extractionMode")
    estimated_total: Decimal = Field(..., alias="estimatedTotal")
    used_provider: Optional[AIProvider] = Field(None, alias="usedProvider")
    used_model: Optional[str] = Field(None, alias="usedModel")
    is_successful: bool = Field(..., alias="isSuccessful")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    error_code: Optional[str] = Field(None, alias="errorCode")
    response_time_ms: float = Field(..., alias="responseTimeMs")

    @classmethod
    def from_domain(cls, result: ComplexOrderResponse) -> "ComplexOrderProcessResponse":
        summary = result.order_summary
        terms = result.payment_terms
        return cls(
            extracted_items=[
                OrderItemView(
                    product_id=item.product_id,
                    product_name=item.product_name or item.raw_product_name,
                    raw_product_name=item.raw_product_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                    notes=item.notes,
                    quantity_is_placeholder=item.quantity_is_placeholder,
                )
                for item in result.extracted_items
            ],
            order_summary=OrderSummaryView(
                total_items=summary.total_items,
                sub_total=summary.sub_total,
                estimated_tax=summary.estimated_tax,
                estimated_total=summary.estimated_total,
                currency=summary.currency,
            ),
            alerts=[
                BusinessAlertView(
                    alert_type=alert.alert_type,
                    message=alert.message,
                    priority=alert.priority,
                    suggested_actions=list(alert.suggested_actions),
                )
                for alert in result.alerts
            ],
            missing_information=list(result.missing_information),
            requested_delivery_date=result.requested_delivery_date,
            payment_terms=(
                PaymentTermsView(
                    days_net=terms.days_net,
                    discount_percentage=terms.discount_percentage,
                    discount_days=terms.discount_days,
                    description=terms.description,
                )
                if terms
                else None
            ),
            special_requests=result.special_requests,
            priority=result.priority,
            extraction_mode=result.extraction_mode.value,
            estimated_total=result.estimated_total,
            used_provider=result.used_provider,
            used_model=result.used_model,
            is_successful=result.is_successful,
            error_message=result.error_message,
            error_code=result.error_code.value if result.error_code else None,
            response_time_ms=result.response_time_ms,
        )


class AIHealthResponse(_CamelModel):
    service_status: Dict[str, bool] = Field(..., alias="serviceStatus")
    recommended_provider: str = Field(..., alias="recommendedProvider")
    fallback_available: bool = Field(..., alias="fallbackAvailable")
