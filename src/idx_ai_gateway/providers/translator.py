"""Azure Translator REST client used by basic translation."""

from typing import Optional

import httpx

from idx_ai_gateway.config.settings import Settings
from idx_ai_gateway.exceptions import UpstreamGenerationFailed
from idx_ai_gateway.telemetry.logger import get_logger

logger = get_logger(__name__)


class TextTranslator:
    """Machine translation without a language model."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        endpoint: Optional[str],
        api_key: Optional[str],
        region: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.http_client = http_client
        self.endpoint = endpoint
        self.api_key = api_key
        self.region = region
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> "TextTranslator":
        return cls(
            http_client,
            endpoint=settings.azure_translator_endpoint,
            api_key=(
                settings.azure_translator_api_key.get_secret_value()
                if settings.azure_translator_api_key
                else None
            ),
            region=settings.azure_translator_region,
            timeout=settings.upstream_timeout_seconds,
        )

    async def translate(self, text: str, base_language: str, target_language: str) -> str:
        if not self.endpoint or not self.api_key:
            raise UpstreamGenerationFailed("Translation service is not configured", provider="azure-translator")

        headers = {
            "Ocp-Apim-Subscription-Key": self.api_key,
            "Content-Type": "application/json",
        }
        if self.region:
            headers["Ocp-Apim-Subscription-Region"] = self.region

        try:
            response = await self.http_client.post(
                self.endpoint,
                params={"from": base_language, "to": target_language},
                headers=headers,
                json=[{"Text": text}],
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("translator_failed", error=str(e))
            raise UpstreamGenerationFailed("Translation service failed", provider="azure-translator") from e

        try:
            return data[0]["translations"][0]["text"]
        except (IndexError, KeyError, TypeError):
            return ""
