"""Generation stage for the conversation pipeline (Stage 04)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from vhouse_ai.utils.text import truncate

from .types import GenerationRequest, GenerationResult

if TYPE_CHECKING:
    from vhouse_ai.application.interfaces import TextGenerationGateway

logger = logging.getLogger("vhouse_ai.pipeline")


async def call_generation_gateway(
    gateway: "TextGenerationGateway",
    request: GenerationRequest,
    *,
    label: str,
) -> GenerationResult:
    """Invoke the gateway once. No retries: a failure is returned as-is."""

    result = await gateway.generate(request)
    if not result.is_successful:
        logger.warning(
            "Generación fallida uso=%s proveedor=%s: %s",
            label,
            result.used_provider.value if result.used_provider else "-",
            result.error_message,
        )
        return result

    logger.info(
        "Respuesta cruda uso=%s proveedor=%s modelo=%s: %s",
        label,
        result.used_provider.value if result.used_provider else "-",
        result.used_model or "-",
        truncate(result.content, 500),
    )
    return result


__all__ = ["call_generation_gateway"]
