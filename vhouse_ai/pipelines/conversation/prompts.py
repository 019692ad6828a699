"""Prompt construction stage for the conversation pipeline (Stage 03).

Wraps the prompt template engine and pairs each prompt with the generation
parameters of its use case.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from vhouse_ai.domain.models import AIProvider, ConversationKind, Product
from vhouse_ai.services.prompt_builder import (
    PromptBundle,
    build_conversation_prompt,
    build_email_prompt,
    build_order_prompt,
)
from vhouse_ai.utils.text import truncate

from .types import BusinessContext, EmailDataValue, GenerationRequest

logger = logging.getLogger("vhouse_ai.pipeline")

# (max_tokens, temperature) per use case.
CONVERSATION_PARAMS = (800, 0.7)
EMAIL_PARAMS = (1000, 0.5)
ORDER_PARAMS = (1200, 0.3)


def _to_request(
    label: str,
    bundle: PromptBundle,
    params: tuple[int, float],
    preferred_provider: Optional[AIProvider],
) -> GenerationRequest:
    logger.info(
        "Prompts generados uso=%s\nSYSTEM> %s\nUSER> %s",
        label,
        truncate(bundle.system_prompt, 500),
        truncate(bundle.user_prompt, 500),
    )
    max_tokens, temperature = params
    return GenerationRequest(
        prompt=bundle.user_prompt,
        system_message=bundle.system_prompt,
        max_tokens=max_tokens,
        temperature=temperature,
        preferred_provider=preferred_provider,
    )


def build_conversation_request(
    *,
    message: str,
    kind: ConversationKind,
    context: BusinessContext,
    catalog: Sequence[Product],
    freeform_context: Optional[str] = None,
    preferred_provider: Optional[AIProvider] = None,
) -> GenerationRequest:
    bundle = build_conversation_prompt(
        message=message,
        kind=kind,
        context=context,
        catalog=catalog,
        freeform_context=freeform_context,
    )
    return _to_request(f"conversacion:{kind.value}", bundle, CONVERSATION_PARAMS, preferred_provider)


def build_email_request(
    *,
    email_type: str,
    context: BusinessContext,
    catalog: Sequence[Product],
    email_data: Mapping[str, EmailDataValue],
    preferred_provider: Optional[AIProvider] = None,
) -> GenerationRequest:
    bundle = build_email_prompt(
        email_type=email_type,
        context=context,
        catalog=catalog,
        email_data=email_data,
    )
    return _to_request(f"email:{email_type}", bundle, EMAIL_PARAMS, preferred_provider)


def build_order_request(
    *,
    text: str,
    context: BusinessContext,
    catalog: Sequence[Product],
    preferred_provider: Optional[AIProvider] = None,
) -> GenerationRequest:
    bundle = build_order_prompt(text=text, context=context, catalog=catalog)
    return _to_request("pedido", bundle, ORDER_PARAMS, preferred_provider)


__all__ = [
    "CONVERSATION_PARAMS",
    "EMAIL_PARAMS",
    "ORDER_PARAMS",
    "build_conversation_request",
    "build_email_request",
    "build_order_request",
]
