"""Unit tests for the tracing wrapper."""

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from idx_ai_gateway.exceptions import QueryTimeout
from idx_ai_gateway.telemetry.tracing import TracingManager


@pytest.fixture
def recorded():
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    manager = TracingManager()
    manager.tracer = provider.get_tracer("test")
    return manager, exporter


class TestTracingManager:
    def test_span_attributes(self, recorded):
        manager, exporter = recorded
        with manager.span("search.execute", dialect="mysql", table=None):
            pass

        (span,) = exporter.get_finished_spans()
        assert span.name == "search.execute"
        assert dict(span.attributes) == {"dialect": "mysql"}

    def test_error_marks_span_and_propagates(self, recorded):
        manager, exporter = recorded
        with pytest.raises(QueryTimeout):
            with manager.span("search.execute"):
                raise QueryTimeout(2.0)

        (span,) = exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR
        assert span.events[0].name == "exception"

    def test_disabled_manager_is_noop(self):
        manager = TracingManager()
        with manager.span("search.synthesize", dialect="postgres") as span:
            assert not span.is_recording()
