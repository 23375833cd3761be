"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token")
os.environ.setdefault("GEOLOCATION_ENABLED", "false")

from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from idx_ai_gateway.config.settings import Settings
from idx_ai_gateway.database.session import create_engine_for_url, create_session_factory, create_tables
from idx_ai_gateway.exceptions import UpstreamGenerationFailed
from idx_ai_gateway.finops.metering import UsageMeter
from idx_ai_gateway.schemas.enums import Dialect
from idx_ai_gateway.search.connections import ConnectionPoolManager, TargetHandle
from idx_ai_gateway.tenancy.client_manager import ClientManager

ADMIN_TOKEN = "test-admin-token"


class FakeTokenCounter:
    """Whitespace word count; keeps tests off the tiktoken download."""

    def count(self, text: str) -> int:
        return len((text or "").split())


class FakeCompletion:
    """Completion client returning queued replies and recording every call."""

    def __init__(self, replies: Optional[List[Any]] = None):
        self.replies = list(replies or [])
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    async def complete(self, system, user, temperature=0.7, max_tokens=None, **kwargs):
        self.calls.append(
            {"system": system, "user": user, "temperature": temperature, "max_tokens": max_tokens, **kwargs}
        )
        reply = self.replies.pop(0) if self.replies else "ok"
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def close(self):
        self.closed = True


class FakeTranslator:
    def __init__(self):
        self.calls: List[tuple] = []

    async def translate(self, text, base_language, target_language):
        self.calls.append((text, base_language, target_language))
        return f"[{target_language}] {text}"


class FakeGeolocator:
    def __init__(self, location: Optional[Dict[str, Any]] = None):
        self.location = location if location is not None else {"city": "Lisbon", "countryCode": "PT"}
        self.calls = 0

    async def locate(self, headers, peer=None):
        self.calls += 1
        return "203.0.113.7", self.location


class FakeCursor:
    """Minimal async cursor over an in-memory document list."""

    def __init__(self, documents: List[Dict[str, Any]]):
        self.documents = list(documents)

    def sort(self, keys):
        for key, direction in reversed(keys):
            self.documents.sort(key=lambda doc: doc.get(key), reverse=direction == -1)
        return self

    async def to_list(self, length=None):
        return list(self.documents)


class FakeCollection:
    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None):
        self.documents = list(documents or [])
        self.find_calls: List[Dict[str, Any]] = []
        self.pipelines: List[List[Dict[str, Any]]] = []

    async def find_one(self, query_filter):
        return self.documents[0] if self.documents else None

    def find(self, query_filter, projection=None, limit=0):
        self.find_calls.append({"filter": query_filter, "projection": projection, "limit": limit})
        matched = [
            doc for doc in self.documents if all(doc.get(key) == value for key, value in query_filter.items())
        ]
        if projection:
            matched = [{key: doc[key] for key in projection if key in doc} for doc in matched]
        return FakeCursor(matched[:limit] if limit else matched)

    async def aggregate(self, pipeline):
        self.pipelines.append(pipeline)
        return FakeCursor([{"_id": None, "total": sum(doc.get("amount", 0) for doc in self.documents)}])


class FakeMongoClient:
    def __init__(self, collections: Dict[str, FakeCollection]):
        self.collections = collections
        self.closed = False

    def __getitem__(self, database):
        return self.collections

    async def close(self):
        self.closed = True


@pytest.fixture
def test_settings():
    return Settings(
        ENVIRONMENT="test",
        ADMIN_API_TOKEN=ADMIN_TOKEN,
        GEOLOCATION_ENABLED=False,
        QUERY_TIMEOUT_SECONDS=2,
    )


@pytest.fixture
def token_counter():
    return FakeTokenCounter()


@pytest.fixture
def fake_completion():
    return FakeCompletion()


@pytest.fixture
def fake_translator():
    return FakeTranslator()


@pytest.fixture
def fake_geolocator():
    return FakeGeolocator()


@pytest_asyncio.fixture
async def db_engine():
    engine = create_engine_for_url("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def meter(session_factory, token_counter, fake_geolocator):
    return UsageMeter(session_factory, token_counter, fake_geolocator)


@pytest.fixture
def make_client(session_factory):
    """Create a client row directly through the client manager."""

    async def _make(**overrides):
        data = {
            "name": "Acme",
            "email": "ops@acme.test",
            "domain": "acme.test",
            "idx_ai_type": "Search AI",
            "idxdb": "PostgreSQL",
            "plan_type": "unlimited",
        }
        data.update(overrides)
        async with session_factory() as session:
            client = await ClientManager(session).create(data)
            await session.commit()
            return client

    return _make


@pytest_asyncio.fixture
async def target_engine():
    """Stand-in SQL target with an ``orders`` table."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.exec_driver_sql("CREATE TABLE orders (id INTEGER PRIMARY KEY, customer TEXT, amount REAL)")
        await conn.exec_driver_sql(
            "INSERT INTO orders (id, customer, amount) VALUES (1, 'ana', 10.5), (2, 'bo', 20.0), (3, 'ana', 4.5)"
        )
    yield engine
    await engine.dispose()


@pytest.fixture
def mongo_collections():
    return {
        "orders": FakeCollection(
            [
                {"customer": "ana", "amount": 10, "address": {"city": "Porto", "zip": "4000"}, "tags": ["a"]},
                {"customer": "bo", "amount": 20, "address": {"city": "Faro", "zip": "8000"}, "tags": []},
            ]
        )
    }


@pytest.fixture
def pool_manager(target_engine, mongo_collections):
    """Pool manager whose handles point at the in-process targets."""
    mongo_client = FakeMongoClient(mongo_collections)

    def factory(descriptor):
        if descriptor.dialect is Dialect.MONGODB:
            return TargetHandle(
                dialect=Dialect.MONGODB,
                key=descriptor.pool_key(),
                mongo_client=mongo_client,
                database=descriptor.database_name(),
            )
        return TargetHandle(dialect=descriptor.dialect, key=descriptor.pool_key(), engine=target_engine)

    return ConnectionPoolManager(max_entries=4, factory=factory)


@pytest.fixture
def container(test_settings, db_engine, fake_completion, fake_translator, token_counter, pool_manager, fake_geolocator):
    from idx_ai_gateway.container import ServiceContainer

    return ServiceContainer.build(
        test_settings,
        engine=db_engine,
        completion=fake_completion,
        translator=fake_translator,
        token_counter=token_counter,
        pools=pool_manager,
        geolocator=fake_geolocator,
    )


@pytest_asyncio.fixture
async def async_client(container):
    """Async test client bound to an app using the test container."""
    from idx_ai_gateway.server.main import create_app

    app = create_app(container)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_headers():
    return {"X-Admin-Token": ADMIN_TOKEN}


@pytest.fixture
def upstream_failure():
    return UpstreamGenerationFailed("Upstream completion failed", provider="openai")
