import logging
import time
from datetime import date
from typing import Callable, List, Optional

from vhouse_ai.application.interfaces import (
    CatalogRepositoryInterface,
    CustomerRepositoryInterface,
    OrderRepositoryInterface,
    TextGenerationGateway,
)
from vhouse_ai.config.settings import OrderingConfig, settings
from vhouse_ai.domain.models import ConversationKind, Product
from vhouse_ai.pipelines.conversation import (
    available_products,
    build_business_context,
    build_conversation_request,
    build_email_request,
    build_order_request,
    call_generation_gateway,
    determine_priority,
    extract_business_entities,
    extract_delivery_date,
    extract_payment_terms,
    generate_alerts,
    ground_items,
    identify_missing_information,
    parse_email,
    parse_order,
    recommend_products,
    summarize_order,
)
from vhouse_ai.pipelines.conversation.parsing import DEFAULT_PRODUCT_FRAGMENTS
from vhouse_ai.pipelines.conversation.rules import (
    is_urgent_email,
    normalize_email_type,
    required_attachments,
    suggest_actions,
)
from vhouse_ai.pipelines.conversation.types import (
    BusinessEmailRequest,
    BusinessEmailResponse,
    ComplexOrderRequest,
    ComplexOrderResponse,
    ContextStatus,
    ConversationRequest,
    ConversationResponse,
    ErrorCode,
    OrderSummary,
)
from vhouse_ai.telemetry import record_conversation

logger = logging.getLogger("vhouse_ai.pipeline")

CONVERSATION_UNAVAILABLE = (
    "Lo siento, no puedo procesar tu consulta en este momento. "
    "Por favor, contacta a nuestro equipo de soporte."
)
CONVERSATION_INTERNAL_ERROR = (
    "Ocurrió un error procesando tu consulta. Nuestro equipo ha sido notificado."
)
CONVERSATION_CUSTOMER_NOT_FOUND = (
    "No encontramos tu cuenta de cliente. "
    "Por favor, contacta a nuestro equipo de soporte."
)
CUSTOMER_NOT_FOUND_ERROR = "Cliente no encontrado en el sistema"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _internal_error_message(exc: Exception) -> str:
    return f"Error interno ({exc.__class__.__name__})"


class _CatalogGroundedUseCase:
    """Shared wiring for the three conversation use cases."""

    def __init__(
        self,
        customer_repository: CustomerRepositoryInterface,
        order_repository: OrderRepositoryInterface,
        catalog_repository: CatalogRepositoryInterface,
        gateway: TextGenerationGateway,
        ordering: Optional[OrderingConfig] = None,
    ):
        self.customer_repository = customer_repository
        self.order_repository = order_repository
        self.catalog_repository = catalog_repository
        self.gateway = gateway
        self.ordering = ordering or settings.ordering

    async def _load_context(self, customer_id, override=None):
        return await build_business_context(
            customer_id,
            customer_repository=self.customer_repository,
            order_repository=self.order_repository,
            recent_limit=self.ordering.recent_order_limit,
            override=override,
        )

    async def _load_catalog_excerpt(self) -> List[Product]:
        products = available_products(await self.catalog_repository.list_all())
        return products[: self.ordering.catalog_excerpt_limit]


class ProcessBusinessConversationUseCase(_CatalogGroundedUseCase):
    """Answer a free-form business message grounded on the live catalog"""

    async def execute(self, request: ConversationRequest) -> ConversationResponse:
        started = time.perf_counter()
        label = request.kind.value
        try:
            context = await self._load_context(request.customer_id)
            if context.status is ContextStatus.NOT_FOUND:
                record_conversation("conversation", ErrorCode.CUSTOMER_NOT_FOUND.value)
                return ConversationResponse(
                    response_text=CONVERSATION_CUSTOMER_NOT_FOUND,
                    is_successful=False,
                    context_label=label,
                    error_message=CUSTOMER_NOT_FOUND_ERROR,
                    error_code=ErrorCode.CUSTOMER_NOT_FOUND,
                    response_time_ms=_elapsed_ms(started),
                )

            catalog = await self._load_catalog_excerpt()
            generation_request = build_conversation_request(
                message=request.message,
                kind=request.kind,
                context=context,
                catalog=catalog,
                freeform_context=request.freeform_context,
                preferred_provider=request.preferred_provider,
            )
            result = await call_generation_gateway(
                self.gateway, generation_request, label=f"conversacion:{label}"
            )
            if not result.is_successful:
                record_conversation("conversation", ErrorCode.GENERATION_FAILED.value)
                return ConversationResponse(
                    response_text=CONVERSATION_UNAVAILABLE,
                    is_successful=False,
                    context_label=label,
                    priority=determine_priority(request.message, request.kind),
                    used_provider=result.used_provider,
                    used_model=result.used_model,
                    error_message=result.error_message,
                    error_code=ErrorCode.GENERATION_FAILED,
                    response_time_ms=_elapsed_ms(started),
                )

            response = ConversationResponse(
                response_text=result.content,
                is_successful=True,
                context_label=label,
                suggested_actions=suggest_actions(request.kind, result.content),
                product_recommendations=recommend_products(
                    result.content, catalog, self.ordering.recommendation_limit
                ),
                priority=determine_priority(request.message, request.kind),
                extracted_entities=extract_business_entities(
                    f"{request.message}\n{result.content}"
                ),
                used_provider=result.used_provider,
                used_model=result.used_model,
                response_time_ms=_elapsed_ms(started),
            )
            record_conversation("conversation", "ok")
            return response
        except Exception as exc:
            logger.exception("Error procesando conversación tipo=%s", label)
            record_conversation("conversation", ErrorCode.INTERNAL_ERROR.value)
            return ConversationResponse(
                response_text=CONVERSATION_INTERNAL_ERROR,
                is_successful=False,
                context_label=label,
                error_message=_internal_error_message(exc),
                error_code=ErrorCode.INTERNAL_ERROR,
                response_time_ms=_elapsed_ms(started),
            )


class GenerateBusinessEmailUseCase(_CatalogGroundedUseCase):
    """Draft a business email for a known customer"""

    async def execute(self, request: BusinessEmailRequest) -> BusinessEmailResponse:
        started = time.perf_counter()
        email_type = normalize_email_type(request.email_type)
        try:
            context = await self._load_context(request.customer_id)
            if context.status is not ContextStatus.FOUND:
                record_conversation("email", ErrorCode.CUSTOMER_NOT_FOUND.value)
                return BusinessEmailResponse(
                    subject="Error: Cliente no encontrado",
                    body="No se pudo generar el email debido a que el cliente no existe en el sistema.",
                    is_successful=False,
                    email_type=email_type,
                    error_message="Cliente no encontrado",
                    error_code=ErrorCode.CUSTOMER_NOT_FOUND,
                    response_time_ms=_elapsed_ms(started),
                )

            catalog = await self._load_catalog_excerpt()
            generation_request = build_email_request(
                email_type=email_type,
                context=context,
                catalog=catalog,
                email_data=request.email_data,
                preferred_provider=request.preferred_provider,
            )
            result = await call_generation_gateway(
                self.gateway, generation_request, label=f"email:{email_type}"
            )
            if not result.is_successful:
                record_conversation("email", ErrorCode.GENERATION_FAILED.value)
                return BusinessEmailResponse(
                    subject="Error generando email",
                    body="No se pudo generar el contenido del email en este momento.",
                    is_successful=False,
                    email_type=email_type,
                    used_provider=result.used_provider,
                    used_model=result.used_model,
                    error_message=result.error_message,
                    error_code=ErrorCode.GENERATION_FAILED,
                    response_time_ms=_elapsed_ms(started),
                )

            parsed = parse_email(result.content)
            record_conversation("email", "ok")
            return BusinessEmailResponse(
                subject=parsed.subject,
                body=parsed.body,
                is_successful=True,
                email_type=email_type,
                is_urgent=is_urgent_email(email_type, request.email_data),
                required_attachments=required_attachments(email_type),
                used_provider=result.used_provider,
                used_model=result.used_model,
                response_time_ms=_elapsed_ms(started),
            )
        except Exception as exc:
            logger.exception("Error generando email tipo=%s", email_type)
            record_conversation("email", ErrorCode.INTERNAL_ERROR.value)
            return BusinessEmailResponse(
                subject="Error interno del sistema",
                body="Ocurrió un error interno al generar el email.",
                is_successful=False,
                email_type=email_type,
                error_message=_internal_error_message(exc),
                error_code=ErrorCode.INTERNAL_ERROR,
                response_time_ms=_elapsed_ms(started),
            )


class ProcessComplexOrderUseCase(_CatalogGroundedUseCase):
    """Turn a natural-language order into grounded, priced order lines"""

    def __init__(self, *args, today: Callable[[], date] = date.today, **kwargs):
        super().__init__(*args, **kwargs)
        self.today = today

    async def execute(self, request: ComplexOrderRequest) -> ComplexOrderResponse:
        started = time.perf_counter()
        empty_summary = OrderSummary(currency=self.ordering.currency)
        try:
            context = await self._load_context(request.customer_id, request.business_context)
            if context.status is not ContextStatus.FOUND:
                record_conversation("order", ErrorCode.CUSTOMER_NOT_FOUND.value)
                return ComplexOrderResponse(
                    is_successful=False,
                    order_summary=empty_summary,
                    error_message=CUSTOMER_NOT_FOUND_ERROR,
                    error_code=ErrorCode.CUSTOMER_NOT_FOUND,
                    response_time_ms=_elapsed_ms(started),
                )

            kind = request.kind
            if kind not in (ConversationKind.ORDER_INQUIRY, ConversationKind.BULK_ORDER):
                kind = ConversationKind.ORDER_INQUIRY
            priority = determine_priority(request.natural_language_text, kind)

            catalog = await self._load_catalog_excerpt()
            generation_request = build_order_request(
                text=request.natural_language_text,
                context=context,
                catalog=catalog,
                preferred_provider=request.preferred_provider,
            )
            result = await call_generation_gateway(self.gateway, generation_request, label="pedido")
            if not result.is_successful:
                record_conversation("order", ErrorCode.GENERATION_FAILED.value)
                return ComplexOrderResponse(
                    is_successful=False,
                    order_summary=empty_summary,
                    priority=priority,
                    used_provider=result.used_provider,
                    used_model=result.used_model,
                    error_message=result.error_message,
                    error_code=ErrorCode.GENERATION_FAILED,
                    response_time_ms=_elapsed_ms(started),
                )

            vocabulary = [product.name for product in catalog] + list(DEFAULT_PRODUCT_FRAGMENTS)
            parsed = parse_order(
                result.content,
                vocabulary,
                keyword_fallback=self.ordering.keyword_fallback_enabled,
            )
            grounding = ground_items(parsed.items, catalog)
            summary = summarize_order(
                grounding.items,
                tax_rate=self.ordering.tax_rate,
                currency=self.ordering.currency,
            )

            today = self.today()
            # Structured field first, then the generated text, then the customer's words.
            delivery_date = next(
                filter(
                    None,
                    (
                        extract_delivery_date(text, today)
                        for text in (
                            parsed.delivery_date_text,
                            result.content,
                            request.natural_language_text,
                        )
                    ),
                ),
                None,
            )
            payment_terms = next(
                filter(
                    None,
                    (
                        extract_payment_terms(text)
                        for text in (
                            parsed.payment_terms_text,
                            result.content,
                            request.natural_language_text,
                        )
                    ),
                ),
                None,
            )

            alerts = generate_alerts(
                grounding.items,
                summary=summary,
                context=context,
                missing_names=grounding.missing_names,
                extraction_mode=parsed.mode,
                large_order_multiplier=self.ordering.large_order_multiplier,
                price_tolerance=self.ordering.price_tolerance,
            )
            missing = identify_missing_information(
                reported=parsed.missing_information,
                missing_names=grounding.missing_names,
                delivery_date=delivery_date,
                payment_terms=payment_terms,
                extraction_mode=parsed.mode,
            )
            logger.info(
                "Pedido procesado cliente=%s modo=%s partidas=%s faltantes=%s total=%s",
                request.customer_id,
                parsed.mode.value,
                len(grounding.items),
                len(missing),
                summary.estimated_total,
            )
            record_conversation("order", "ok")
            return ComplexOrderResponse(
                is_successful=True,
                extracted_items=grounding.items,
                order_summary=summary,
                alerts=alerts,
                missing_information=missing,
                requested_delivery_date=delivery_date,
                payment_terms=payment_terms,
                special_requests=parsed.special_requests,
                priority=priority,
                extraction_mode=parsed.mode,
                used_provider=result.used_provider,
                used_model=result.used_model,
                response_time_ms=_elapsed_ms(started),
            )
        except Exception as exc:
            logger.exception("Error procesando pedido complejo cliente=%s", request.customer_id)
            record_conversation("order", ErrorCode.INTERNAL_ERROR.value)
            return ComplexOrderResponse(
                is_successful=False,
                order_summary=empty_summary,
                error_message=_internal_error_message(exc),
                error_code=ErrorCode.INTERNAL_ERROR,
                response_time_ms=_elapsed_ms(started),
            )
