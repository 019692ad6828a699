"""Text generation gateway: Claude first, OpenAI as fallback.

The gateway never raises. Each provider attempt is bounded by a timeout;
a provider that fails is marked unhealthy for a cooldown period and is tried
last until the cooldown expires. When every provider fails the caller gets a
`GenerationResult` with `is_successful=False` and the joined errors.
"""

from __future__ import annotations

import asyncio
import logging
import time
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Protocol, Sequence

from vhouse_ai.application.interfaces import TextGenerationGateway
from vhouse_ai.config.settings import GenerationConfig, settings
from vhouse_ai.domain.models import AIProvider
from vhouse_ai.pipelines.conversation.types import GenerationRequest, GenerationResult
from vhouse_ai.telemetry import record_generation_failure

from .llm_client import BedrockLlmClient, LlmInvocationError, OpenAIChatClient, ProviderCompletion

logger = logging.getLogger(__name__)


class ProviderClient(Protocol):
    provider: AIProvider

    @property
    def model_id(self) -> str: ...

    @property
    def is_configured(self) -> bool: ...

    async def complete(self, request: GenerationRequest) -> ProviderCompletion: ...


class TextGenerationService(TextGenerationGateway):
    """Route generation requests across the configured providers."""

    def __init__(
        self,
        clients: Sequence[ProviderClient],
        *,
        config: GenerationConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clients = list(clients)
        self._config = config or settings.generation
        self._clock = clock
        self._unhealthy_until: dict[AIProvider, float] = {}

    # -- health -----------------------------------------------------------

    def _is_healthy(self, provider: AIProvider) -> bool:
        until = self._unhealthy_until.get(provider)
        if until is None:
            return True
        if self._clock() >= until:
            del self._unhealthy_until[provider]
            return True
        return False

    def _mark_unhealthy(self, provider: AIProvider) -> None:
        self._unhealthy_until[provider] = self._clock() + self._config.health_cooldown_seconds

    def _mark_healthy(self, provider: AIProvider) -> None:
        self._unhealthy_until.pop(provider, None)

    def _default_provider(self) -> Optional[AIProvider]:
        try:
            return AIProvider(self._config.default_provider.lower())
        except ValueError:
            return None

    def _ordered_clients(self, preferred: Optional[AIProvider]) -> list[ProviderClient]:
        preferred = preferred or self._default_provider()
        ordered = sorted(
            self._clients,
            key=lambda client: 0 if client.provider == preferred else 1,
        )
        # Stable sort: unhealthy providers go last, preference kept otherwise.
        return sorted(ordered, key=lambda client: 0 if self._is_healthy(client.provider) else 1)

    def health_status(self) -> Dict[str, Any]:
        service_status = {
            client.provider.value: client.is_configured and self._is_healthy(client.provider)
            for client in self._clients
        }
        recommended = "none"
        for client in self._ordered_clients(None):
            if service_status[client.provider.value]:
                recommended = client.provider.value
                break
        return {
            "service_status": service_status,
            "recommended_provider": recommended,
            "fallback_available": sum(service_status.values()) > 1,
        }

    # -- generation -------------------------------------------------------

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        started = time.perf_counter()
        errors: list[str] = []
        last_attempted: Optional[AIProvider] = None

        for client in self._ordered_clients(request.preferred_provider):
            provider = client.provider
            if not client.is_configured:
                errors.append(f"{provider.value}: no configurado")
                continue

            last_attempted = provider
            try:
                completion = await asyncio.wait_for(
                    client.complete(request),
                    timeout=self._config.timeout_seconds,
                )
            except asyncio.TimeoutError:
                error = f"sin respuesta tras {self._config.timeout_seconds:g}s"
            except LlmInvocationError as exc:
                error = str(exc) or exc.__class__.__name__
            except Exception as exc:
                logger.exception("Error inesperado del proveedor %s", provider.value)
                error = f"error inesperado ({exc.__class__.__name__})"
            else:
                if completion.text.strip():
                    self._mark_healthy(provider)
                    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
                    logger.info(
                        "Generación completada proveedor=%s modelo=%s tokens=%s ms=%s",
                        provider.value,
                        completion.model,
                        completion.tokens_used,
                        elapsed_ms,
                    )
                    return GenerationResult(
                        content=completion.text,
                        is_successful=True,
                        used_provider=provider,
                        used_model=completion.model,
                        tokens_used=completion.tokens_used,
                        response_time_ms=elapsed_ms,
                    )
                error = "respuesta vacía"

            self._mark_unhealthy(provider)
            record_generation_failure(provider.value)
            logger.warning("Proveedor %s falló: %s", provider.value, error)
            errors.append(f"{provider.value}: {error}")

        return GenerationResult(
            content="",
            is_successful=False,
            error_message="; ".join(errors) or "No hay proveedores de generación configurados",
            used_provider=last_attempted,
            response_time_ms=round((time.perf_counter() - started) * 1000, 2),
        )


@lru_cache(maxsize=1)
def get_generation_gateway() -> TextGenerationService:
    """Return a lazily-instantiated gateway singleton."""

    return TextGenerationService([BedrockLlmClient(), OpenAIChatClient()])


__all__ = ["ProviderClient", "TextGenerationService", "get_generation_gateway"]
