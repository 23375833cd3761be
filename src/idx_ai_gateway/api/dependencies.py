"""FastAPI dependencies: container access, API-key authorization, admin guard."""

import secrets
from typing import AsyncIterator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from idx_ai_gateway.container import ServiceContainer
from idx_ai_gateway.database.models import Client
from idx_ai_gateway.database.session import session_scope
from idx_ai_gateway.exceptions import Unauthenticated
from idx_ai_gateway.schemas.enums import Capability, SearchTarget, TranslationTier


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def caller_peer(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def require_client(capability: Capability, translation_tier: Optional[TranslationTier] = None):
    """Dependency resolving the API key to a client allowed to call ``capability``."""

    async def dependency(
        x_api_key: Optional[str] = Header(default=None, alias="x-api-key"),
        container: ServiceContainer = Depends(get_container),
    ) -> Client:
        return await container.gate.authorize(x_api_key, capability, translation_tier=translation_tier)

    return dependency


async def require_search_client(
    target: SearchTarget,
    x_api_key: Optional[str] = Header(default=None, alias="x-api-key"),
    container: ServiceContainer = Depends(get_container),
) -> Client:
    return await container.gate.authorize(x_api_key, Capability.SEARCH, dialect=target.dialect)


async def require_admin(
    x_admin_token: Optional[str] = Header(default=None, alias="x-admin-token"),
    container: ServiceContainer = Depends(get_container),
) -> None:
    expected = container.settings.admin_api_token
    if not x_admin_token or expected is None:
        raise Unauthenticated("Admin token is required")
    if not secrets.compare_digest(x_admin_token.encode(), expected.get_secret_value().encode()):
        raise Unauthenticated("Invalid admin token")


async def get_session(container: ServiceContainer = Depends(get_container)) -> AsyncIterator[AsyncSession]:
    async with session_scope(container.session_factory) as session:
        yield session
