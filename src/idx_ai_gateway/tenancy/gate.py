"""Authorization gate: API key to client, capability binding and quota checks.

The gate is read-only and must run before any upstream call so that
unauthorized traffic never incurs cost.

Quota discipline is pre-flight for every capability: a limited-plan client
is rejected once its cumulative tokens have reached ``tokenLimit``. A call
admitted one token under the limit may overshoot by at most its own size.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from idx_ai_gateway.database.models import Client
from idx_ai_gateway.exceptions import Forbidden, QuotaExceeded, Unauthenticated
from idx_ai_gateway.schemas.enums import Capability, Dialect, PlanType, TranslationTier
from idx_ai_gateway.telemetry.logger import bind_client, get_logger

from .client_manager import ClientManager

logger = get_logger(__name__)

_DIALECT_LABELS = {
    Dialect.MONGODB: "Mongo DB",
    Dialect.MYSQL: "MySQL",
    Dialect.MSSQL: "MSSQL",
    Dialect.POSTGRESQL: "Postgre",
}


def check_capability(
    client: Client,
    capability: Capability,
    translation_tier: Optional[TranslationTier] = None,
    dialect: Optional[Dialect] = None,
) -> None:
    """Raise Forbidden unless the client is bound to the requested capability."""
    if client.idx_ai_type != capability.value:
        raise Forbidden(f"Client not authorized for {capability.value}")

    if translation_tier is not None and client.translation_type != translation_tier.value:
        raise Forbidden(f"Client does not have access to {translation_tier.value} translation")

    if dialect is not None and client.idxdb != dialect.value:
        raise Forbidden(f"Client is not allowed to access {_DIALECT_LABELS[dialect]} databases")


def check_quota(client: Client) -> None:
    """Pre-flight quota check for limited plans."""
    if client.plan_type != PlanType.LIMITED.value:
        return
    used = client.usage_tokens or 0
    limit = client.token_limit or 0
    if used >= limit:
        logger.info("quota_exceeded", client_id=client.id, used=used, limit=limit)
        raise QuotaExceeded(details={"used": used, "limit": limit})


class AuthorizationGate:
    """Resolves API keys and enforces tier, dialect and quota policy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def resolve(self, api_key: Optional[str]) -> Client:
        if not api_key:
            raise Unauthenticated("API key is required")
        async with self.session_factory() as session:
            client = await ClientManager(session).get_by_api_key(api_key)
        if client is None:
            raise Unauthenticated("Invalid API key")
        return client

    async def authorize(
        self,
        api_key: Optional[str],
        capability: Capability,
        translation_tier: Optional[TranslationTier] = None,
        dialect: Optional[Dialect] = None,
    ) -> Client:
        client = await self.resolve(api_key)
        bind_client(client.id)
        check_capability(client, capability, translation_tier=translation_tier, dialect=dialect)
        check_quota(client)
        return client
