"""Best-effort discovery of field names for grounding the synthesizer."""

import asyncio
from typing import Any, Dict, Set

from sqlalchemy import inspect

from idx_ai_gateway.schemas.enums import Dialect
from idx_ai_gateway.search.connections import TargetHandle
from idx_ai_gateway.telemetry.logger import get_logger
from idx_ai_gateway.telemetry.metrics import metrics

logger = get_logger(__name__)


def flatten_fields(document: Dict[str, Any], prefix: str = "") -> Set[str]:
    """Dot paths for nested objects; arrays are leaves."""
    fields: Set[str] = set()
    for key, value in document.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict) and value:
            fields |= flatten_fields(value, path)
        else:
            fields.add(path)
    return fields


class SchemaSampler:
    """Returns the field set of a table or collection, or an empty set."""

    def __init__(self, timeout_seconds: float = 10.0):
        self.timeout_seconds = timeout_seconds

    async def sample(self, handle: TargetHandle, table: str) -> Set[str]:
        try:
            return await asyncio.wait_for(self._sample(handle, table), timeout=self.timeout_seconds)
        except Exception as e:
            # Grounding is optional; the synthesizer runs without it
            metrics.enrichment_failures.labels(stage="schema_sample").inc()
            logger.warning(
                "schema_sample_failed",
                dialect=handle.dialect.value,
                table=table,
                error_type=type(e).__name__,
                error=str(e),
            )
            return set()

    async def _sample(self, handle: TargetHandle, table: str) -> Set[str]:
        if handle.dialect is Dialect.MONGODB:
            document = await handle.mongo_database()[table].find_one({})
            return flatten_fields(document) if document else set()

        async with handle.engine.connect() as conn:
            columns = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_columns(table))
        return {column["name"] for column in columns}
