"""Unit tests for client lifecycle management."""

import pytest
from sqlalchemy import func, select

from idx_ai_gateway.database.models import UsageRecord
from idx_ai_gateway.exceptions import BadRequest, Conflict, NotFound
from idx_ai_gateway.finops.metering import Usage
from idx_ai_gateway.schemas.enums import Capability
from idx_ai_gateway.tenancy.client_manager import ClientManager, generate_api_key


class TestApiKey:
    def test_key_is_256_bit_hex(self):
        key = generate_api_key()
        assert len(key) == 64
        int(key, 16)

    def test_keys_are_unique(self):
        assert generate_api_key() != generate_api_key()


class TestClientManager:
    """Create, update and delete rules."""

    @pytest.mark.asyncio
    async def test_create_generates_key(self, make_client):
        client = await make_client()
        assert len(client.api_key) == 64
        assert client.usage_tokens == 0

    @pytest.mark.asyncio
    async def test_create_requires_fields(self, session_factory):
        async with session_factory() as session:
            with pytest.raises(BadRequest):
                await ClientManager(session).create({"name": "x"})

    @pytest.mark.asyncio
    async def test_limited_plan_needs_limit(self, make_client):
        with pytest.raises(BadRequest, match="Token limit"):
            await make_client(plan_type="limited", token_limit=0)

    @pytest.mark.asyncio
    async def test_search_needs_dialect(self, make_client):
        with pytest.raises(BadRequest, match="database type"):
            await make_client(idxdb=None)

    @pytest.mark.asyncio
    async def test_translate_needs_tier(self, make_client):
        with pytest.raises(BadRequest, match="translation type"):
            await make_client(idx_ai_type="Translate AI", idxdb=None)

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, make_client):
        await make_client()
        with pytest.raises(Conflict):
            await make_client(name="Other", email="other@acme.test")

    @pytest.mark.asyncio
    async def test_update_and_regenerate_key(self, session_factory, make_client):
        created = await make_client()
        async with session_factory() as session:
            updated = await ClientManager(session).update(
                created.id,
                {"plan_type": "limited", "token_limit": 500, "name": "Acme Ltd"},
                regenerate_api_key=True,
            )
            await session.commit()
        assert updated.name == "Acme Ltd"
        assert updated.token_limit == 500
        assert updated.api_key != created.api_key

    @pytest.mark.asyncio
    async def test_update_email_clash(self, session_factory, make_client):
        await make_client()
        second = await make_client(name="Beta", email="ops@beta.test", domain="beta.test")
        async with session_factory() as session:
            with pytest.raises(Conflict):
                await ClientManager(session).update(second.id, {"email": "ops@acme.test"})

    @pytest.mark.asyncio
    async def test_update_name_clash(self, session_factory, make_client):
        await make_client()
        second = await make_client(name="Beta", email="ops@beta.test", domain="beta.test")
        async with session_factory() as session:
            with pytest.raises(Conflict):
                await ClientManager(session).update(second.id, {"name": "Acme"})

    @pytest.mark.asyncio
    async def test_get_missing(self, session_factory):
        async with session_factory() as session:
            with pytest.raises(NotFound):
                await ClientManager(session).get("missing")

    @pytest.mark.asyncio
    async def test_delete_cascades_usage(self, session_factory, make_client, meter):
        client = await make_client()
        await meter.record(client, Usage(3, 4, 0.1), Capability.SEARCH, "PostgreSQL", payload={})

        async with session_factory() as session:
            await ClientManager(session).delete(client.id)
            await session.commit()

        async with session_factory() as session:
            remaining = await session.scalar(select(func.count(UsageRecord.id)))
        assert remaining == 0
