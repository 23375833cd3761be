"""Database module for the system store."""

from .models import Base, Client, UsageRecord, utcnow
from .session import create_engine_for_url, create_session_factory, create_tables, session_scope

__all__ = [
    "Base",
    "Client",
    "UsageRecord",
    "utcnow",
    "create_engine_for_url",
    "create_session_factory",
    "create_tables",
    "session_scope",
]
