"""Turns untrusted generated text into a dialect-typed query or rejects it.

SQL is only checked for a leading SELECT; no deeper injection analysis is
attempted.
"""

import json
import re
from typing import Any, Dict, Optional

from idx_ai_gateway.exceptions import InvalidGeneratedQuery, PlaceholderIdentifierDetected
from idx_ai_gateway.schemas.enums import Dialect
from idx_ai_gateway.search.queries import AggregationQuery, FilterQuery, SqlQuery, ValidatedQuery
from idx_ai_gateway.telemetry.metrics import metrics

PLACEHOLDER_TOKENS = ("your_table_name", "table_name_here", "<table_name>", "<table>")

_FENCE_RE = re.compile(r"```[a-zA-Z]*")
_SELECT_RE = re.compile(r"^select\b", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def _reject(dialect: Dialect, reason: str, error: InvalidGeneratedQuery) -> InvalidGeneratedQuery:
    metrics.rejected_queries.labels(dialect=dialect.value, reason=reason).inc()
    return error


def _optional_mapping(parsed: Dict[str, Any], key: str, raw: str) -> Optional[Dict[str, Any]]:
    value = parsed.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise _reject(
            Dialect.MONGODB, "shape", InvalidGeneratedQuery(f"Generated query field '{key}' must be an object", raw=raw)
        )
    return value


def validate_document_query(raw: str, default_limit: int = 100) -> ValidatedQuery:
    """Parse a document-store query into ``FilterQuery`` or ``AggregationQuery``."""
    text = strip_code_fences(raw)
    try:
        parsed = json.loads(text)
    except ValueError:
        raise _reject(
            Dialect.MONGODB, "parse", InvalidGeneratedQuery("Failed to parse generated MongoDB query", raw=text)
        ) from None

    if not isinstance(parsed, dict):
        raise _reject(
            Dialect.MONGODB, "shape", InvalidGeneratedQuery("Generated MongoDB query must be a JSON object", raw=text)
        )

    if "aggregate" in parsed:
        pipeline = parsed["aggregate"]
        if "filter" in parsed:
            raise _reject(
                Dialect.MONGODB,
                "shape",
                InvalidGeneratedQuery("Generated query must be either a filter or an aggregation", raw=text),
            )
        if not isinstance(pipeline, list) or not all(isinstance(stage, dict) for stage in pipeline):
            raise _reject(
                Dialect.MONGODB,
                "shape",
                InvalidGeneratedQuery("Aggregation pipeline must be a list of stage objects", raw=text),
            )
        return AggregationQuery(pipeline=pipeline)

    query_filter = parsed.get("filter")
    if query_filter is None:
        query_filter = {}
    if not isinstance(query_filter, dict):
        raise _reject(
            Dialect.MONGODB, "shape", InvalidGeneratedQuery("Generated query field 'filter' must be an object", raw=text)
        )

    limit = parsed.get("limit")
    if limit is None or limit == 0:
        limit = default_limit
    elif isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise _reject(
            Dialect.MONGODB, "shape", InvalidGeneratedQuery("Generated query limit must be a positive integer", raw=text)
        )

    return FilterQuery(
        filter=query_filter,
        projection=_optional_mapping(parsed, "projection", text),
        sort=_optional_mapping(parsed, "sort", text),
        limit=limit,
    )


def validate_sql_query(raw: str, dialect: Dialect) -> SqlQuery:
    text = strip_code_fences(raw)
    # Placeholder check comes first so an ungrounded SELECT gets the clearer error
    lowered = text.lower()
    if any(token in lowered for token in PLACEHOLDER_TOKENS):
        raise _reject(dialect, "placeholder", PlaceholderIdentifierDetected(raw=text))
    if not _SELECT_RE.match(text):
        raise _reject(dialect, "not_select", InvalidGeneratedQuery("Invalid SQL response", raw=text))
    return SqlQuery(text=text)


def validate(raw: str, dialect: Dialect, default_limit: int = 100) -> ValidatedQuery:
    if dialect is Dialect.MONGODB:
        return validate_document_query(raw, default_limit=default_limit)
    return validate_sql_query(raw, dialect)
