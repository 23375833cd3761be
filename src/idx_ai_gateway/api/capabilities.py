"""Metered capability endpoints: Prompt AI, Translate AI and Search AI."""

from fastapi import APIRouter, Depends, Request

from idx_ai_gateway.api.dependencies import caller_peer, get_container, require_client, require_search_client
from idx_ai_gateway.container import ServiceContainer
from idx_ai_gateway.database.models import Client
from idx_ai_gateway.schemas.enums import Capability, SearchTarget, TranslationTier
from idx_ai_gateway.schemas.requests import PromptRequest, SearchRequest, TranslateRequest

capability_router = APIRouter()


@capability_router.post("/prompt/ai")
async def prompt_ai(
    body: PromptRequest,
    request: Request,
    client: Client = Depends(require_client(Capability.PROMPT)),
    container: ServiceContainer = Depends(get_container),
):
    """Single-turn assistant completion."""
    return await container.prompt.reply(client, body.prompt, headers=request.headers, peer=caller_peer(request))


@capability_router.post("/translate/basic")
async def translate_basic(
    body: TranslateRequest,
    request: Request,
    client: Client = Depends(require_client(Capability.TRANSLATE, TranslationTier.BASIC)),
    container: ServiceContainer = Depends(get_container),
):
    return await container.translation.translate_basic(
        client,
        body.text,
        body.base_language,
        body.target_language,
        headers=request.headers,
        peer=caller_peer(request),
    )


@capability_router.post("/translate/advanced")
async def translate_advanced(
    body: TranslateRequest,
    request: Request,
    client: Client = Depends(require_client(Capability.TRANSLATE, TranslationTier.ADVANCED)),
    container: ServiceContainer = Depends(get_container),
):
    return await container.translation.translate_with_model(
        client,
        TranslationTier.ADVANCED,
        body.text,
        body.base_language,
        body.target_language,
        headers=request.headers,
        peer=caller_peer(request),
    )


@capability_router.post("/translate/expert")
async def translate_expert(
    body: TranslateRequest,
    request: Request,
    client: Client = Depends(require_client(Capability.TRANSLATE, TranslationTier.EXPERT)),
    container: ServiceContainer = Depends(get_container),
):
    return await container.translation.translate_with_model(
        client,
        TranslationTier.EXPERT,
        body.text,
        body.base_language,
        body.target_language,
        headers=request.headers,
        peer=caller_peer(request),
    )


@capability_router.post("/search/ai/{target}")
async def search_ai(
    target: SearchTarget,
    body: SearchRequest,
    request: Request,
    client: Client = Depends(require_search_client),
    container: ServiceContainer = Depends(get_container),
):
    """Natural-language query against the caller's own database."""
    return await container.search.search(
        client,
        target.dialect,
        body.prompt,
        body.connection,
        body.table,
        headers=request.headers,
        peer=caller_peer(request),
    )
