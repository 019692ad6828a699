"""Conversation and order-extraction pipeline package.

Modules are organised by the order in which the `/conversations/*` use
cases execute them (see `flow` for the full map):

1. `context` – customer profile and recent orders.
2. `prompts` – system/user prompts per request kind.
3. `llm` – one call to the text generation gateway.
4. `parsing` – email sections, JSON orders, dates and payment terms.
5. `grounding` – catalog matching; nothing outside the catalog is priced.
6. `rules` – priority, urgency and alerts.
7. `summary` – subtotal, tax and total.
"""

from .context import build_business_context
from .flow import ConversationPipeline, PipelineStage
from .grounding import available_products, ground_items, recommend_products
from .llm import call_generation_gateway
from .parsing import (
    extract_business_entities,
    extract_delivery_date,
    extract_payment_terms,
    parse_email,
    parse_order,
)
from .prompts import build_conversation_request, build_email_request, build_order_request
from .rules import determine_priority, generate_alerts, identify_missing_information
from .summary import summarize_order

__all__ = [
    "ConversationPipeline",
    "PipelineStage",
    "available_products",
    "build_business_context",
    "build_conversation_request",
    "build_email_request",
    "build_order_request",
    "call_generation_gateway",
    "determine_priority",
    "extract_business_entities",
    "extract_delivery_date",
    "extract_payment_terms",
    "generate_alerts",
    "ground_items",
    "identify_missing_information",
    "parse_email",
    "parse_order",
    "recommend_products",
    "summarize_order",
]
