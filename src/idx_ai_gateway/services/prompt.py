"""Prompt AI: a single assistant completion, metered on prompt and reply."""

from typing import Any, Dict, Mapping, Optional

from idx_ai_gateway.database.models import Client
from idx_ai_gateway.exceptions import BadRequest
from idx_ai_gateway.finops.metering import UsageMeter
from idx_ai_gateway.finops.pricing import LLM_RATES
from idx_ai_gateway.providers.completion import CompletionClient
from idx_ai_gateway.schemas.enums import Capability

SYSTEM_PROMPT = "You are a helpful, professional AI assistant. Respond clearly and concisely."


class PromptService:
    def __init__(self, completion: CompletionClient, meter: UsageMeter, temperature: float = 0.7):
        self.completion = completion
        self.meter = meter
        self.temperature = temperature

    async def reply(
        self,
        client: Client,
        prompt: Optional[str],
        headers: Optional[Mapping[str, str]] = None,
        peer: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not prompt or not isinstance(prompt, str):
            raise BadRequest("Missing or invalid prompt", field="prompt")

        reply = await self.completion.complete(
            SYSTEM_PROMPT,
            prompt,
            temperature=self.temperature,
            top_p=1,
            frequency_penalty=0,
            presence_penalty=0,
        )

        usage = self.meter.measure(prompt, reply, LLM_RATES)
        await self.meter.record(
            client,
            usage,
            Capability.PROMPT,
            None,
            payload={"prompt": prompt},
            headers=headers,
            peer=peer,
        )
        return {"reply": reply, **usage.to_response()}
