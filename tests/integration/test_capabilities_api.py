"""Integration tests for Prompt AI and Translate AI."""

import pytest
from sqlalchemy import select

from idx_ai_gateway.database.models import Client, UsageRecord

pytestmark = pytest.mark.integration

TRANSLATE_BODY = {"text": "hello world", "baseLanguage": "en", "targetLanguage": "pt"}


class TestPromptAI:
    @pytest.mark.asyncio
    async def test_prompt_reply_and_usage(self, async_client, make_client, fake_completion, session_factory):
        client = await make_client(idx_ai_type="Prompt AI", idxdb=None)
        fake_completion.queue("Paris is the capital of France.")

        response = await async_client.post(
            "/api/prompt/ai", headers={"x-api-key": client.api_key}, json={"prompt": "capital of France?"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["reply"] == "Paris is the capital of France."
        assert body["inputTokens"] == 3
        assert body["outputTokens"] == 6
        assert body["tokens"] == 9
        assert fake_completion.calls[0]["temperature"] == 0.7
        assert "helpful, professional" in fake_completion.calls[0]["system"]

        async with session_factory() as session:
            record = (await session.execute(select(UsageRecord))).scalar_one()
        assert record.idx_ai_type == "Prompt AI"
        assert record.payload == {"prompt": "capital of France?"}
        assert record.location == {"city": "Lisbon", "countryCode": "PT"}

    @pytest.mark.asyncio
    async def test_missing_prompt(self, async_client, make_client, fake_completion):
        client = await make_client(idx_ai_type="Prompt AI", idxdb=None)
        response = await async_client.post("/api/prompt/ai", headers={"x-api-key": client.api_key}, json={})
        assert response.status_code == 400
        assert fake_completion.calls == []

    @pytest.mark.asyncio
    async def test_invalid_key(self, async_client):
        response = await async_client.post("/api/prompt/ai", headers={"x-api-key": "nope"}, json={"prompt": "x"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid API key"}

    @pytest.mark.asyncio
    async def test_upstream_failure_not_metered(
        self, async_client, make_client, fake_completion, upstream_failure, session_factory
    ):
        client = await make_client(idx_ai_type="Prompt AI", idxdb=None)
        fake_completion.queue(upstream_failure)

        response = await async_client.post(
            "/api/prompt/ai", headers={"x-api-key": client.api_key}, json={"prompt": "hi"}
        )

        assert response.status_code == 502
        async with session_factory() as session:
            stored = await session.get(Client, client.id)
        assert stored.usage_tokens == 0


class TestTranslateAI:
    """Three translation tiers, each bound to its own clients."""

    @pytest.mark.asyncio
    async def test_basic_bills_characters(self, async_client, make_client, fake_translator, fake_completion):
        client = await make_client(idx_ai_type="Translate AI", translation_type="basic", idxdb=None)

        response = await async_client.post(
            "/api/translate/basic", headers={"x-api-key": client.api_key}, json=TRANSLATE_BODY
        )

        assert response.status_code == 200
        assert response.json() == {"translatedText": "[pt] hello world", "tokens": 11, "cost": 0.00011}
        assert fake_translator.calls == [("hello world", "en", "pt")]
        assert fake_completion.calls == []

    @pytest.mark.asyncio
    async def test_advanced_uses_model(self, async_client, make_client, fake_completion):
        client = await make_client(idx_ai_type="Translate AI", translation_type="advanced", idxdb=None)
        fake_completion.queue("olá mundo")

        response = await async_client.post(
            "/api/translate/advanced", headers={"x-api-key": client.api_key}, json=TRANSLATE_BODY
        )

        assert response.status_code == 200
        body = response.json()
        assert body["translatedText"] == "olá mundo"
        assert body["inputTokens"] == 2
        assert body["outputTokens"] == 2
        assert fake_completion.calls[0]["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_expert_bills_full_instruction(self, async_client, make_client, fake_completion):
        client = await make_client(idx_ai_type="Translate AI", translation_type="expert", idxdb=None)
        fake_completion.queue("olá mundo")

        response = await async_client.post(
            "/api/translate/expert", headers={"x-api-key": client.api_key}, json=TRANSLATE_BODY
        )

        assert response.status_code == 200
        body = response.json()
        call = fake_completion.calls[0]
        assert call["temperature"] == 0.2
        assert "native-speaking" in call["user"]
        assert body["inputTokens"] == len(call["user"].split())
        assert body["inputTokens"] > 2

    @pytest.mark.asyncio
    async def test_tier_mismatch(self, async_client, make_client, fake_translator):
        client = await make_client(idx_ai_type="Translate AI", translation_type="basic", idxdb=None)
        response = await async_client.post(
            "/api/translate/expert", headers={"x-api-key": client.api_key}, json=TRANSLATE_BODY
        )
        assert response.status_code == 403
        assert response.json() == {"error": "Client does not have access to expert translation"}

    @pytest.mark.asyncio
    async def test_missing_fields(self, async_client, make_client, fake_translator):
        client = await make_client(idx_ai_type="Translate AI", translation_type="basic", idxdb=None)
        response = await async_client.post(
            "/api/translate/basic", headers={"x-api-key": client.api_key}, json={"text": "hi"}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}
        assert fake_translator.calls == []
