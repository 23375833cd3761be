"""Logging, metrics and tracing."""
from .logger import RequestContext, bind_client, get_logger, setup_logging
from .metrics import MetricsCollector, metrics
from .tracing import TracingManager, tracing

__all__ = [
    "RequestContext",
    "bind_client",
    "get_logger",
    "setup_logging",
    "MetricsCollector",
    "metrics",
    "TracingManager",
    "tracing",
]
