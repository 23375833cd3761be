"""
Upstream text-completion client.

Wraps the OpenAI SDK (Azure or OpenAI-hosted). Calls are never retried: a
paid completion that fails ambiguously is surfaced to the caller instead of
being billed twice.
"""

import time
from typing import Any, Optional

from openai import AsyncAzureOpenAI, AsyncOpenAI, OpenAIError

from idx_ai_gateway.config.settings import Settings
from idx_ai_gateway.exceptions import UpstreamGenerationFailed
from idx_ai_gateway.telemetry.logger import get_logger

logger = get_logger(__name__)


class CompletionClient:
    """Sends a system/user message pair and returns the generated text."""

    def __init__(self, client: AsyncOpenAI, model: str, provider: str = "openai"):
        self.client = client
        self.model = model
        self.provider = provider

    @classmethod
    def from_settings(cls, settings: Settings) -> "CompletionClient":
        if settings.uses_azure:
            client = AsyncAzureOpenAI(
                azure_endpoint=settings.azure_endpoint,
                api_key=settings.azure_api_key.get_secret_value() if settings.azure_api_key else None,
                api_version=settings.azure_api_version,
                timeout=settings.upstream_timeout_seconds,
                max_retries=0,
            )
            return cls(client, model=settings.azure_deployment_id, provider="azure")

        client = AsyncOpenAI(
            api_key=settings.openai_api_key.get_secret_value() if settings.openai_api_key else "not-configured",
            timeout=settings.upstream_timeout_seconds,
            max_retries=0,
        )
        return cls(client, model=settings.completion_model, provider="openai")

    async def complete(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs: Any,
    ) -> str:
        """
        Generate a completion.

        Raises:
            UpstreamGenerationFailed: on any SDK error or an empty reply
        """
        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
        }
        if max_tokens:
            create_kwargs["max_tokens"] = max_tokens
        for key in ("top_p", "frequency_penalty", "presence_penalty"):
            if key in kwargs:
                create_kwargs[key] = kwargs[key]

        start_time = time.time()
        try:
            response = await self.client.chat.completions.create(**create_kwargs)
        except OpenAIError as e:
            logger.error("completion_failed", provider=self.provider, model=self.model, error=str(e))
            raise UpstreamGenerationFailed("Upstream completion failed", provider=self.provider) from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            logger.warning("completion_empty", provider=self.provider, model=self.model)
            raise UpstreamGenerationFailed("Upstream completion returned no content", provider=self.provider)

        logger.debug(
            "completion_received",
            provider=self.provider,
            model=self.model,
            duration=round(time.time() - start_time, 3),
        )
        return content.strip()

    async def close(self) -> None:
        await self.client.close()
