"""Search AI pipeline: descriptor, pool, sample, synthesize, validate, execute, meter."""

import dataclasses
import re
from typing import Any, Dict, Mapping, Optional

from idx_ai_gateway.database.models import Client
from idx_ai_gateway.exceptions import BadRequest
from idx_ai_gateway.finops.metering import UsageMeter
from idx_ai_gateway.finops.pricing import LLM_RATES
from idx_ai_gateway.schemas.enums import Capability, Dialect
from idx_ai_gateway.telemetry.logger import get_logger
from idx_ai_gateway.telemetry.tracing import tracing

from .connections import ConnectionPoolManager
from .descriptors import parse_descriptor
from .executor import QueryExecutor
from .queries import FilterQuery
from .schema_sampler import SchemaSampler
from .synthesizer import QuerySynthesizer
from .validator import validate

logger = get_logger(__name__)

_LIMITED_FIELDS_RE = re.compile(r"only|just|specific fields|select", re.IGNORECASE)


def wants_limited_fields(prompt: str) -> bool:
    return bool(_LIMITED_FIELDS_RE.search(prompt))


class SearchService:
    """
    Natural-language search over a caller-described database.

    Usage is written only after the rows are fetched and encoded. A call
    that fails after the completion step is not metered.
    """

    def __init__(
        self,
        pools: ConnectionPoolManager,
        sampler: SchemaSampler,
        synthesizer: QuerySynthesizer,
        executor: QueryExecutor,
        meter: UsageMeter,
    ):
        self.pools = pools
        self.sampler = sampler
        self.synthesizer = synthesizer
        self.executor = executor
        self.meter = meter

    async def search(
        self,
        client: Client,
        dialect: Dialect,
        prompt: Optional[str],
        connection: Any,
        table: Optional[str],
        headers: Optional[Mapping[str, str]] = None,
        peer: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not prompt or not connection or not table:
            raise BadRequest("Missing required parameters")

        descriptor = parse_descriptor(dialect, connection)
        async with self.pools.lease(descriptor) as handle:
            with tracing.span("search.sample_schema", dialect=dialect.value, table=table):
                fields = await self.sampler.sample(handle, table)
            with tracing.span("search.synthesize", dialect=dialect.value):
                generated = await self.synthesizer.synthesize(dialect, table, fields, prompt)

            query = validate(generated, dialect, default_limit=self.executor.default_limit)
            if isinstance(query, FilterQuery) and query.projection and not wants_limited_fields(prompt):
                query = dataclasses.replace(query, projection=None)

            logger.info(
                "search_query_validated", dialect=dialect.value, table=table, shape=type(query).__name__
            )
            with tracing.span("search.execute", dialect=dialect.value, shape=type(query).__name__):
                rows = await self.executor.execute(handle, query, table)

        usage = self.meter.measure(prompt, generated, LLM_RATES)
        await self.meter.record(
            client,
            usage,
            Capability.SEARCH,
            dialect.value,
            payload={"prompt": prompt, "generatedQuery": generated, "table": table, "idxdb": dialect.value},
            headers=headers,
            peer=peer,
        )

        return {
            "query": generated,
            "result": rows,
            **usage.to_response(),
        }
