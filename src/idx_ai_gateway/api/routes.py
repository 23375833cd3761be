"""API router aggregation."""

from fastapi import APIRouter

from idx_ai_gateway.api.capabilities import capability_router
from idx_ai_gateway.api.clients import clients_router
from idx_ai_gateway.api.usage import usage_router

api_router = APIRouter()
api_router.include_router(capability_router, tags=["capabilities"])
api_router.include_router(clients_router, prefix="/clients", tags=["clients"])
api_router.include_router(usage_router, prefix="/usage", tags=["usage"])
