"""Business conversation endpoints.

For a stage-by-stage map see
`vhouse_ai.pipelines.conversation.flow.ConversationPipeline`. Every endpoint
answers 200 with `isSuccessful`/`errorCode` in the body; only malformed
requests are rejected (422) before the pipeline runs.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from vhouse_ai.application.use_cases.conversation_use_cases import (
    GenerateBusinessEmailUseCase,
    ProcessBusinessConversationUseCase,
    ProcessComplexOrderUseCase,
)
from vhouse_ai.controllers.dependencies import (
    get_complex_order_use_case,
    get_conversation_use_case,
    get_email_use_case,
)
from vhouse_ai.pipelines.conversation import ConversationPipeline
from vhouse_ai.views.conversations import (
    BusinessEmailGenerateRequest,
    BusinessEmailGenerateResponse,
    ComplexOrderProcessRequest,
    ComplexOrderProcessResponse,
    ConversationProcessRequest,
    ConversationProcessResponse,
)

router = APIRouter(prefix="/conversations", tags=["conversations"])

logger = logging.getLogger(__name__)

PIPELINE_STAGES = tuple(ConversationPipeline.describe())
"""Ordered pipeline metadata used for quick reference and debugging."""


@router.post("/process", response_model=ConversationProcessResponse)
async def process_conversation(
    payload: ConversationProcessRequest,
    use_case: Annotated[ProcessBusinessConversationUseCase, Depends(get_conversation_use_case)],
) -> ConversationProcessResponse:
    """Answer a business message with catalog-grounded suggestions."""

    logger.info(
        "Conversación recibida tipo=%s cliente=%s",
        payload.conversation_type.value,
        payload.customer_id,
    )
    result = await use_case.execute(payload.to_domain())
    return ConversationProcessResponse.from_domain(result)


@router.post("/email", response_model=BusinessEmailGenerateResponse)
async def generate_business_email(
    payload: BusinessEmailGenerateRequest,
    use_case: Annotated[GenerateBusinessEmailUseCase, Depends(get_email_use_case)],
) -> BusinessEmailGenerateResponse:
    """Draft a business email (subject + body) for a known customer."""

    logger.info("Email solicitado tipo=%s cliente=%s", payload.email_type, payload.customer_id)
    result = await use_case.execute(payload.to_domain())
    return BusinessEmailGenerateResponse.from_domain(result)


@router.post("/orders", response_model=ComplexOrderProcessResponse)
async def process_complex_order(
    payload: ComplexOrderProcessRequest,
    use_case: Annotated[ProcessComplexOrderUseCase, Depends(get_complex_order_use_case)],
) -> ComplexOrderProcessResponse:
    """Extract, ground and price an order written in natural language."""

    logger.info("Pedido en lenguaje natural recibido cliente=%s", payload.customer_id)
    result = await use_case.execute(payload.to_domain())
    return ComplexOrderProcessResponse.from_domain(result)
