"""High-level orchestration map for the conversation pipeline.

The use cases in ``vhouse_ai/application/use_cases/conversation_use_cases.py``
hold the asynchronous choreography; this module documents the canonical
execution order so contributors can jump to the right stage:

1. ``context`` – load customer profile and recent orders (or short-circuit).
2. ``grounding.available_products`` – take the active, in-stock catalog excerpt.
3. ``prompts`` – render the system/user prompts for the request kind.
4. ``llm`` – call the text generation gateway once.
5. ``parsing`` – read subject/body or the JSON order, with keyword fallback.
6. ``grounding`` – bind order lines to catalog products, drop the rest.
7. ``rules`` – priority, urgency, attachments, actions and alerts.
8. ``summary`` – subtotal, tax and total in currency precision.

Stages 6 to 8 only run for the complex-order use case.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class PipelineStage:
    """Human-readable description of one stage in the conversation pipeline."""

    order: int
    name: str
    module: str
    summary: str


class ConversationPipeline:
    """Utility wrapper for documenting the `/conversations/*` flow."""

    _STAGES: List[PipelineStage] = [
        PipelineStage(
            1,
            "Business Context",
            "vhouse_ai.pipelines.conversation.context",
            "Resolve the customer, summarise recent orders, compute the typical order value.",
        ),
        PipelineStage(
            2,
            "Catalog Excerpt",
            "vhouse_ai.pipelines.conversation.grounding",
            "Keep only active, in-stock products; the same list grounds prompt and order.",
        ),
        PipelineStage(
            3,
            "Prompt Assembly",
            "vhouse_ai.pipelines.conversation.prompts",
            "Pick the template for the conversation kind or email type and fill it in.",
        ),
        PipelineStage(
            4,
            "Text Generation",
            "vhouse_ai.pipelines.conversation.llm",
            "Call the gateway (Claude on Bedrock, OpenAI fallback) without retries.",
        ),
        PipelineStage(
            5,
            "Response Parsing",
            "vhouse_ai.pipelines.conversation.parsing",
            "Extract subject/body or the JSON order; fall back to a keyword scan.",
        ),
        PipelineStage(
            6,
            "Catalog Grounding",
            "vhouse_ai.pipelines.conversation.grounding",
            "Bind order lines to catalog products and record the unmatched names.",
        ),
        PipelineStage(
            7,
            "Business Rules",
            "vhouse_ai.pipelines.conversation.rules",
            "Compute priority and raise large-order, stock, price and review alerts.",
        ),
        PipelineStage(
            8,
            "Financial Summary",
            "vhouse_ai.pipelines.conversation.summary",
            "Sum quantities and line totals, add tax at the configured rate.",
        ),
    ]

    @classmethod
    def describe(cls) -> Iterable[PipelineStage]:
        """Expose the ordered list of stages for debugging and documentation."""

        return tuple(cls._STAGES)


__all__ = ["ConversationPipeline", "PipelineStage"]
