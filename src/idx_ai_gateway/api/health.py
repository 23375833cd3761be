"""Health and metrics endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from idx_ai_gateway import __version__
from idx_ai_gateway.api.dependencies import get_container
from idx_ai_gateway.container import ServiceContainer
from idx_ai_gateway.telemetry.metrics import metrics

health_router = APIRouter()


@health_router.get("/health")
async def health_check(container: ServiceContainer = Depends(get_container)):
    settings = container.settings
    return {
        "status": "healthy",
        "version": __version__,
        "environment": settings.environment,
        "services": {
            "completion": settings.has_completion_credentials,
            "translator": settings.has_translator,
            "targetPools": len(container.pools),
        },
    }


@health_router.get("/metrics")
async def prometheus_metrics():
    return Response(content=metrics.export(), media_type=CONTENT_TYPE_LATEST)
