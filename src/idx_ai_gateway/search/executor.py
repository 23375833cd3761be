"""Runs a validated query against a pooled target under a wall-clock bound.

Rows are returned already reduced to JSON-safe values so that a result the
response cannot carry fails here, before anything is metered.
"""

import asyncio
import base64
import uuid
from typing import Any, Dict, List

from bson import Binary, Decimal128, ObjectId
from fastapi.encoders import jsonable_encoder
from pymongo.errors import PyMongoError
from sqlalchemy.exc import SQLAlchemyError

from idx_ai_gateway.exceptions import ExecutionFailed, QueryTimeout
from idx_ai_gateway.search.connections import TargetHandle
from idx_ai_gateway.search.queries import AggregationQuery, FilterQuery, SqlQuery, ValidatedQuery
from idx_ai_gateway.telemetry.logger import get_logger
from idx_ai_gateway.telemetry.metrics import metrics

logger = get_logger(__name__)

Record = Dict[str, Any]


def _base64(value: bytes) -> str:
    return base64.b64encode(bytes(value)).decode("ascii")


RESULT_ENCODERS = {
    ObjectId: str,
    Decimal128: lambda d: str(d.to_decimal()),
    Binary: _base64,
    bytes: _base64,
    uuid.UUID: str,
}


def encode_rows(rows: List[Record]) -> List[Any]:
    """Convert driver values (ObjectId, Decimal128, binary, UUID) to JSON-safe ones."""
    return jsonable_encoder(rows, custom_encoder=RESULT_ENCODERS)


class QueryExecutor:
    """Executes one query; cancels it when the timeout elapses."""

    def __init__(self, timeout_seconds: float = 10.0, default_limit: int = 100):
        self.timeout_seconds = timeout_seconds
        self.default_limit = default_limit

    async def execute(self, handle: TargetHandle, query: ValidatedQuery, table: str) -> List[Any]:
        dialect = handle.dialect.value
        with metrics.time_query(dialect):
            try:
                rows = await asyncio.wait_for(self._dispatch(handle, query, table), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                metrics.query_timeouts.labels(dialect=dialect).inc()
                logger.warning("query_timeout", dialect=dialect, table=table, timeout=self.timeout_seconds)
                raise QueryTimeout(self.timeout_seconds) from None
            except (SQLAlchemyError, PyMongoError, OSError) as e:
                logger.error("query_execution_failed", dialect=dialect, table=table, error=str(e))
                raise ExecutionFailed(details={"detail": str(e)}) from e

        try:
            return encode_rows(rows)
        except (ValueError, TypeError) as e:
            logger.error("result_encoding_failed", dialect=dialect, table=table, error=str(e))
            raise ExecutionFailed("Query results could not be serialized", details={"detail": str(e)}) from e

    async def _dispatch(self, handle: TargetHandle, query: ValidatedQuery, table: str) -> List[Record]:
        if isinstance(query, AggregationQuery):
            cursor = await handle.mongo_database()[table].aggregate(query.pipeline)
            return await cursor.to_list(length=None)

        if isinstance(query, FilterQuery):
            cursor = handle.mongo_database()[table].find(
                query.filter,
                projection=query.projection or None,
                limit=query.limit or self.default_limit,
            )
            if query.sort:
                cursor = cursor.sort(list(query.sort.items()))
            return await cursor.to_list(length=None)

        if isinstance(query, SqlQuery):
            async with handle.engine.connect() as conn:
                # Generated SQL carries no bind parameters; pass it through untouched
                result = await conn.exec_driver_sql(query.text, execution_options={"no_parameters": True})
                return [dict(row) for row in result.mappings().all()]

        raise TypeError(f"Unsupported query type: {type(query).__name__}")
