"""
Translate AI in three tiers.

basic
    Machine translation through the translator REST API, metered per
    character at its own rate.
advanced
    Language-model translation tuned for fluency.
expert
    Language-model translation with a native-speaker brief; input tokens
    are counted on the full instruction rather than the raw text.
"""

from typing import Any, Dict, Mapping, Optional

from idx_ai_gateway.database.models import Client
from idx_ai_gateway.exceptions import BadRequest
from idx_ai_gateway.finops.metering import UsageMeter
from idx_ai_gateway.finops.pricing import BASIC_TRANSLATION_RATES, LLM_RATES
from idx_ai_gateway.providers.completion import CompletionClient
from idx_ai_gateway.providers.translator import TextTranslator
from idx_ai_gateway.schemas.enums import Capability, TranslationTier
from idx_ai_gateway.telemetry.logger import get_logger

logger = get_logger(__name__)

ADVANCED_SYSTEM_PROMPT = (
    "You are a professional translator. Translate the user's content accurately and fluently, "
    "keeping its meaning, tone and any HTML markup. Return only the translated content."
)

EXPERT_SYSTEM_PROMPT = (
    "You are a strict, accurate and professional translation engine. Do not explain or reformat. "
    "Only return the translated content exactly."
)

ADVANCED_INSTRUCTION = """\
Translate the following content from '{base}' to '{target}'.
Prefer natural phrasing over literal word-for-word translation.
Preserve any HTML tags exactly as provided.

Content to translate:
{text}"""

EXPERT_INSTRUCTION = """\
You are a highly experienced native-speaking professional translator.

Translate the following content from '{base}' to '{target}' with perfect fluency, clarity and cultural appropriateness.

Instructions:
- The translation must read as if originally written by a native {target} speaker.
- Improve fluency and word choice; avoid literal or awkward translations.
- Adapt idioms, expressions and tone to the target culture.
- Use precise, expert-level vocabulary suitable for UI labels, section titles, websites and digital interfaces.
- If the content includes HTML, preserve the structure and all tags exactly as provided.
- Do not include explanations, markdown, comments or formatting hints.
- Return only the translated content.

Content to translate:
{text}"""


def _require_fields(text: Optional[str], base_language: Optional[str], target_language: Optional[str]) -> None:
    if not text or not base_language or not target_language:
        raise BadRequest("Missing required fields")


class TranslationService:
    def __init__(self, translator: TextTranslator, completion: CompletionClient, meter: UsageMeter):
        self.translator = translator
        self.completion = completion
        self.meter = meter

    async def translate_basic(
        self,
        client: Client,
        text: Optional[str],
        base_language: Optional[str],
        target_language: Optional[str],
        headers: Optional[Mapping[str, str]] = None,
        peer: Optional[str] = None,
    ) -> Dict[str, Any]:
        _require_fields(text, base_language, target_language)

        translated = await self.translator.translate(text, base_language, target_language)
        usage = self.meter.measure_characters(text, BASIC_TRANSLATION_RATES)
        await self.meter.record(
            client,
            usage,
            Capability.TRANSLATE,
            TranslationTier.BASIC.value,
            payload={"baseLanguage": base_language, "targetLanguage": target_language},
            headers=headers,
            peer=peer,
        )
        return {"translatedText": translated, "tokens": usage.total_tokens, "cost": usage.cost}

    async def translate_with_model(
        self,
        client: Client,
        tier: TranslationTier,
        text: Optional[str],
        base_language: Optional[str],
        target_language: Optional[str],
        headers: Optional[Mapping[str, str]] = None,
        peer: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Advanced or expert translation through the completion model."""
        _require_fields(text, base_language, target_language)

        if tier is TranslationTier.EXPERT:
            system, template, temperature = EXPERT_SYSTEM_PROMPT, EXPERT_INSTRUCTION, 0.2
        elif tier is TranslationTier.ADVANCED:
            system, template, temperature = ADVANCED_SYSTEM_PROMPT, ADVANCED_INSTRUCTION, 0.3
        else:
            raise ValueError(f"{tier.value} translation does not use the completion model")

        instruction = template.format(base=base_language, target=target_language, text=text)
        translated = await self.completion.complete(system, instruction, temperature=temperature)

        # Expert bills the whole instruction; advanced bills the source text
        metered_input = instruction if tier is TranslationTier.EXPERT else text
        usage = self.meter.measure(metered_input, translated, LLM_RATES)
        await self.meter.record(
            client,
            usage,
            Capability.TRANSLATE,
            tier.value,
            payload={"baseLanguage": base_language, "targetLanguage": target_language},
            headers=headers,
            peer=peer,
        )
        logger.debug("translation_completed", tier=tier.value, characters=len(text))
        return {"translatedText": translated, **usage.to_response()}
