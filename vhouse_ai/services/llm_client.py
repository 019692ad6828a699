"""Provider clients behind the text generation gateway.

* `BedrockLlmClient` runs Anthropic Claude through the Amazon Bedrock
  `converse` API in a worker thread (boto3 is synchronous).
* `OpenAIChatClient` calls the OpenAI chat completions endpoint with httpx.

Both raise `LlmInvocationError` on any provider problem; deciding what to do
about it belongs to the gateway.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Optional

import boto3
import httpx
from fastapi.concurrency import run_in_threadpool

from vhouse_ai.config.settings import AwsConfig, BedrockConfig, OpenAIConfig, settings
from vhouse_ai.domain.models import AIProvider
from vhouse_ai.pipelines.conversation.types import GenerationRequest

logger = logging.getLogger(__name__)


class LlmInvocationError(RuntimeError):
    """Raised when a provider invocation fails."""


@dataclass(frozen=True)
class ProviderCompletion:
    text: str
    model: str
    tokens_used: int = 0


def _decode_bedrock_api_key(secret_value: Optional[str]) -> tuple[str, str] | None:
    """Decode the BEDROCK_API_KEY secret into access/secret key components."""

    if not secret_value:
        return None

    try:
        decoded_bytes = base64.b64decode(secret_value.strip())
    except (binascii.Error, ValueError):
        decoded_bytes = secret_value.encode("utf-8", "ignore")

    filtered = "".join(chr(b) for b in decoded_bytes if 31 < b < 127)
    if ":" not in filtered:
        return None
    access_key, secret_key = filtered.split(":", 1)
    return access_key, secret_key


def create_bedrock_client(config: BedrockConfig, aws: AwsConfig) -> Any:
    """Instantiate a bedrock-runtime client, preferring the Bedrock API key."""

    client_kwargs: dict[str, Any] = {"region_name": config.region or aws.region}
    api_key = _decode_bedrock_api_key(
        config.api_key.get_secret_value() if config.api_key else None
    )
    if api_key:
        client_kwargs["aws_access_key_id"], client_kwargs["aws_secret_access_key"] = api_key
    elif aws.access_key and aws.secret_key:
        client_kwargs["aws_access_key_id"] = aws.access_key
        client_kwargs["aws_secret_access_key"] = aws.secret_key
    return boto3.client("bedrock-runtime", **client_kwargs)


class BedrockLlmClient:
    """Invoke Claude on Amazon Bedrock."""

    provider = AIProvider.CLAUDE

    def __init__(
        self,
        config: BedrockConfig | None = None,
        *,
        client: Any = None,
    ) -> None:
        self._config = config or settings.bedrock
        self._client = client
        if self._client is None and self._config.enabled:
            try:
                self._client = create_bedrock_client(self._config, settings.aws)
            except Exception as exc:  # pragma: no cover - configuration issue
                logger.warning("No se pudo inicializar Bedrock: %s", exc)
                self._client = None

    @property
    def model_id(self) -> str:
        return self._config.model_id

    @property
    def is_configured(self) -> bool:
        return self._client is not None and bool(self._config.model_id)

    async def complete(self, request: GenerationRequest) -> ProviderCompletion:
        """Run a Bedrock `converse` call and return the aggregate text output."""

        if not self.is_configured:
            raise LlmInvocationError("Bedrock no está configurado")

        inference_cfg = {
            "maxTokens": min(request.max_tokens, self._config.max_tokens),
            "temperature": request.temperature,
            "topP": self._config.top_p,
        }
        call_kwargs: dict[str, Any] = {
            "modelId": self._config.model_id,
            "messages": [{"role": "user", "content": [{"text": request.prompt}]}],
            "inferenceConfig": inference_cfg,
        }
        if request.system_message:
            call_kwargs["system"] = [{"text": request.system_message}]

        def _call() -> ProviderCompletion:
            response = self._client.converse(**call_kwargs)
            content_blocks = (
                response.get("output", {})
                .get("message", {})
                .get("content", [])
            )
            texts = [block.get("text", "") for block in content_blocks if block.get("text")]
            usage = response.get("usage", {})
            return ProviderCompletion(
                text="\n".join(texts).strip(),
                model=self._config.model_id,
                tokens_used=int(usage.get("totalTokens") or usage.get("outputTokens") or 0),
            )

        try:
            return await run_in_threadpool(_call)
        except Exception as exc:  # pragma: no cover - external dependency
            raise LlmInvocationError(str(exc)) from exc


class OpenAIChatClient:
    """Invoke the OpenAI chat completions API."""

    provider = AIProvider.OPENAI

    def __init__(
        self,
        config: OpenAIConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or settings.openai
        self._transport = transport

    @property
    def model_id(self) -> str:
        return self._config.model

    @property
    def is_configured(self) -> bool:
        return bool(self._config.api_key and self._config.api_key.get_secret_value())

    async def complete(self, request: GenerationRequest) -> ProviderCompletion:
        if not self.is_configured:
            raise LlmInvocationError("OpenAI no está configurado")

        messages = []
        if request.system_message:
            messages.append({"role": "system", "content": request.system_message})
        messages.append({"role": "user", "content": request.prompt})
        payload = {
            "model": self._config.model,
            "messages": messages,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        headers = {"Authorization": f"Bearer {self._config.api_key.get_secret_value()}"}

        async with httpx.AsyncClient(
            base_url=self._config.base_url,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post("/chat/completions", json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                raise LlmInvocationError(
                    f"OpenAI respondió {exc.response.status_code}: {exc.response.text[:200]}"
                ) from exc
            except httpx.RequestError as exc:
                raise LlmInvocationError(f"No se pudo conectar con OpenAI: {exc}") from exc
            except ValueError as exc:
                raise LlmInvocationError(f"Respuesta inválida de OpenAI: {exc}") from exc

        try:
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise LlmInvocationError("Respuesta de OpenAI sin contenido") from exc
        if not isinstance(text, str):
            raise LlmInvocationError(
                f"Contenido de OpenAI con formato inesperado: {type(text).__name__}"
            )

        usage = data.get("usage")
        total_tokens = usage.get("total_tokens") if isinstance(usage, dict) else None
        model = data.get("model")
        return ProviderCompletion(
            text=text.strip(),
            model=model if isinstance(model, str) and model else self._config.model,
            tokens_used=total_tokens if isinstance(total_tokens, int) else 0,
        )


__all__ = [
    "BedrockLlmClient",
    "LlmInvocationError",
    "OpenAIChatClient",
    "ProviderCompletion",
    "create_bedrock_client",
]
