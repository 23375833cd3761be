"""Application-scoped collaborators, built once and shared across requests."""

from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from idx_ai_gateway.config.settings import Settings
from idx_ai_gateway.database.session import create_engine_for_url, create_session_factory
from idx_ai_gateway.finops.geolocation import Geolocator
from idx_ai_gateway.finops.metering import UsageMeter
from idx_ai_gateway.finops.tokens import TokenCounter
from idx_ai_gateway.providers.completion import CompletionClient
from idx_ai_gateway.providers.translator import TextTranslator
from idx_ai_gateway.search.connections import ConnectionPoolManager
from idx_ai_gateway.search.executor import QueryExecutor
from idx_ai_gateway.search.schema_sampler import SchemaSampler
from idx_ai_gateway.search.service import SearchService
from idx_ai_gateway.search.synthesizer import QuerySynthesizer
from idx_ai_gateway.services.prompt import PromptService
from idx_ai_gateway.services.translation import TranslationService
from idx_ai_gateway.telemetry.logger import get_logger
from idx_ai_gateway.tenancy.gate import AuthorizationGate

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    gate: AuthorizationGate
    prompt: PromptService
    translation: TranslationService
    search: SearchService
    pools: ConnectionPoolManager
    completion: CompletionClient
    http_client: Optional[httpx.AsyncClient] = None

    @classmethod
    def build(
        cls,
        settings: Settings,
        engine: AsyncEngine,
        completion: CompletionClient,
        translator: TextTranslator,
        token_counter: TokenCounter,
        pools: ConnectionPoolManager,
        geolocator: Optional[Geolocator] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "ServiceContainer":
        """Wire services from explicit collaborators."""
        session_factory = create_session_factory(engine)
        meter = UsageMeter(session_factory, token_counter, geolocator, warning_ratio=settings.quota_warning_ratio)
        search = SearchService(
            pools=pools,
            sampler=SchemaSampler(timeout_seconds=settings.query_timeout_seconds),
            synthesizer=QuerySynthesizer(completion),
            executor=QueryExecutor(
                timeout_seconds=settings.query_timeout_seconds,
                default_limit=settings.default_find_limit,
            ),
            meter=meter,
        )
        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            gate=AuthorizationGate(session_factory),
            prompt=PromptService(completion, meter),
            translation=TranslationService(translator, completion, meter),
            search=search,
            pools=pools,
            completion=completion,
            http_client=http_client,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceContainer":
        http_client = httpx.AsyncClient()
        return cls.build(
            settings,
            engine=create_engine_for_url(settings.database_url, echo=settings.debug),
            completion=CompletionClient.from_settings(settings),
            translator=TextTranslator.from_settings(settings, http_client),
            token_counter=TokenCounter(settings.tokenizer_model),
            pools=ConnectionPoolManager.from_settings(settings),
            geolocator=Geolocator(
                http_client,
                public_ip_url=settings.public_ip_lookup_url,
                geolocation_url=settings.geolocation_url,
                timeout=settings.geolocation_timeout_seconds,
                enabled=settings.geolocation_enabled,
            ),
            http_client=http_client,
        )

    async def aclose(self) -> None:
        await self.pools.close()
        await self.completion.close()
        if self.http_client is not None:
            await self.http_client.aclose()
        await self.engine.dispose()
        logger.info("service_container_closed")
