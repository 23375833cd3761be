"""Natural-language search over MongoDB, MySQL, MSSQL and PostgreSQL targets."""

from .connections import ConnectionPoolManager, TargetHandle
from .descriptors import ConnectionDescriptor, parse_descriptor
from .executor import QueryExecutor
from .queries import AggregationQuery, FilterQuery, SqlQuery, ValidatedQuery
from .schema_sampler import SchemaSampler, flatten_fields
from .service import SearchService
from .synthesizer import QueryInstruction, QuerySynthesizer, build_instruction
from .validator import strip_code_fences, validate, validate_document_query, validate_sql_query

__all__ = [
    "ConnectionPoolManager",
    "TargetHandle",
    "ConnectionDescriptor",
    "parse_descriptor",
    "QueryExecutor",
    "AggregationQuery",
    "FilterQuery",
    "SqlQuery",
    "ValidatedQuery",
    "SchemaSampler",
    "flatten_fields",
    "SearchService",
    "QueryInstruction",
    "QuerySynthesizer",
    "build_instruction",
    "strip_code_fences",
    "validate",
    "validate_document_query",
    "validate_sql_query",
]
