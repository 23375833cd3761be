"""Structured logging configuration with request correlation and secret redaction."""

import logging
import re
import sys
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

import orjson
import structlog

from idx_ai_gateway.config import settings

# Context variables for request tracking
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
client_id_var: ContextVar[str] = ContextVar("client_id", default="")


class SecretRedactor:
    """Redact credentials from log values."""

    API_KEY_PATTERN = re.compile(r"\b[0-9a-f]{64}\b", re.IGNORECASE)
    URI_PASSWORD_PATTERN = re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://[^:/@\s]+:)[^@\s]+@", re.IGNORECASE)
    SENSITIVE_KEYS = frozenset({"password", "api_key", "apikey", "x-api-key", "connectionstring", "uri"})

    @classmethod
    def redact(cls, value: Any) -> Any:
        """Redact secrets from value."""
        if not isinstance(value, str):
            return value

        value = cls.API_KEY_PATTERN.sub("[API_KEY_REDACTED]", value)
        value = cls.URI_PASSWORD_PATTERN.sub(r"\g<scheme>[REDACTED]@", value)
        return value

    @classmethod
    def redact_mapping(cls, mapping: dict) -> dict:
        return {
            k: "[REDACTED]" if str(k).lower() in cls.SENSITIVE_KEYS else cls.redact(v)
            for k, v in mapping.items()
        }


def add_context_vars(logger, method_name, event_dict):
    """Add context variables to log events."""
    if request_id := request_id_var.get():
        event_dict["request_id"] = request_id
    if client_id := client_id_var.get():
        event_dict["client_id"] = client_id
    return event_dict


def redact_sensitive_data(logger, method_name, event_dict):
    """Redact sensitive data from logs."""
    for key, value in event_dict.items():
        if key in ("timestamp", "level", "logger", "request_id"):
            continue
        if isinstance(value, str):
            event_dict[key] = SecretRedactor.redact(value)
        elif isinstance(value, dict):
            event_dict[key] = SecretRedactor.redact_mapping(value)
    return event_dict


def setup_logging(level: str | None = None, format: str | None = None) -> None:
    """Configure structlog and the standard library root logger."""
    log_level = level or settings.log_level
    renderer_format = format or ("console" if settings.is_development else "json")

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_context_vars,
        redact_sensitive_data,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if renderer_format == "json":
        processors.append(
            structlog.processors.JSONRenderer(serializer=lambda obj, **kw: orjson.dumps(obj, default=str).decode())
        )
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Suppress noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class RequestContext:
    """Context manager for request-scoped logging."""

    def __init__(self, request_id: str | None = None, client_id: str | None = None):
        self.request_id = request_id or str(uuid4())
        self.client_id = client_id
        self._tokens = []

    def __enter__(self):
        self._tokens.append((request_id_var, request_id_var.set(self.request_id)))
        if self.client_id:
            self._tokens.append((client_id_var, client_id_var.set(self.client_id)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for var, token in reversed(self._tokens):
            var.reset(token)
        return False


def bind_client(client_id: str) -> None:
    """Attach the authorized client to the current request's log context."""
    client_id_var.set(client_id)
