"""Tracing support built on OpenTelemetry."""

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, Status, StatusCode

from idx_ai_gateway.telemetry.logger import get_logger

logger = get_logger(__name__)


class TracingManager:
    """Wraps an OpenTelemetry tracer.

    Until ``setup`` installs a provider the global proxy tracer is used,
    which records nothing.
    """

    def __init__(self, service_name: str = "idx-ai-gateway"):
        self.service_name = service_name
        self.enabled = False
        self.tracer = trace.get_tracer(__name__)

    def setup(self, version: str = "1.0.0", provider: Optional[TracerProvider] = None) -> None:
        if self.enabled:
            return
        if provider is None:
            resource = Resource.create({"service.name": self.service_name, "service.version": version})
            provider = TracerProvider(resource=resource)
            provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        trace.set_tracer_provider(provider)
        self.tracer = provider.get_tracer(__name__)
        self.enabled = True
        logger.info("tracing_initialized", service=self.service_name)

    @contextmanager
    def span(self, operation: str, **attributes: Any) -> Iterator[Span]:
        """Run the block inside a span; errors mark the span and propagate."""
        with self.tracer.start_as_current_span(operation, record_exception=False) as span:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, str(value))
            try:
                yield span
            except Exception as exc:
                span.set_status(Status(StatusCode.ERROR, type(exc).__name__))
                span.record_exception(exc)
                raise


tracing = TracingManager()
