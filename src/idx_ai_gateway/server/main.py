"""FastAPI application factory and server entry point."""

import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from idx_ai_gateway import __version__
from idx_ai_gateway.api.health import health_router
from idx_ai_gateway.api.routes import api_router
from idx_ai_gateway.config.settings import settings
from idx_ai_gateway.container import ServiceContainer
from idx_ai_gateway.database.session import create_tables
from idx_ai_gateway.exceptions import GatewayException, InternalError
from idx_ai_gateway.telemetry.logger import RequestContext, get_logger, setup_logging
from idx_ai_gateway.telemetry.metrics import metrics
from idx_ai_gateway.telemetry.tracing import tracing

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to the log context and count the request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        with RequestContext(request_id=request_id):
            start_time = time.time()
            response = await call_next(request)
            process_time = time.time() - start_time

            route = request.scope.get("route")
            endpoint = getattr(route, "path", request.url.path)
            metrics.record_request(request.method, endpoint, response.status_code)

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = str(process_time)
            logger.info(
                "request_processed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                process_time=round(process_time, 4),
            )
        return response


def _error_response(exc: GatewayException) -> JSONResponse:
    content = {"error": exc.message}
    raw = exc.details.get("raw")
    if raw is not None:
        content["raw"] = raw
    return JSONResponse(status_code=exc.status_code, content=content)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    A prebuilt ``container`` is used as-is and left open on shutdown; without
    one, the container is built from settings and owned by the app.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("gateway_starting", version=__version__, environment=settings.environment)
        owned = container is None
        if owned:
            app.state.container = ServiceContainer.from_settings(settings)
            await create_tables(app.state.container.engine)
        if settings.tracing_enabled:
            tracing.setup(version=__version__)

        yield

        logger.info("gateway_stopping")
        if owned:
            await app.state.container.aclose()

    app = FastAPI(
        title="IDX AI Gateway",
        description="Multi-tenant AI gateway with usage metering and natural-language database search",
        version=__version__,
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(GatewayException)
    async def gateway_exception_handler(request: Request, exc: GatewayException):
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "request_failed",
            error_code=exc.error_code,
            status_code=exc.status_code,
            message=exc.message,
            path=request.url.path,
        )
        return _error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("request_validation_failed", path=request.url.path, errors=len(exc.errors()))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Missing required parameters"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error("unexpected_error", path=request.url.path, error=str(exc), exc_info=True)
        return _error_response(InternalError())

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router, prefix="/api")

    return app


setup_logging()
app = create_app()


def run() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "idx_ai_gateway.server.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
