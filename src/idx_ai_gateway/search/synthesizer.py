"""Builds the per-dialect instruction and asks the completion model for a query."""

from dataclasses import dataclass
from typing import Iterable

from idx_ai_gateway.providers.completion import CompletionClient
from idx_ai_gateway.schemas.enums import Dialect
from idx_ai_gateway.telemetry.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class QueryInstruction:
    system: str
    user: str


_INTENT_RULES = """\
Interpret the request:
   - If it asks for a total, sum, average or count (e.g. "total cost", "average tokens"), return a single summary value using {aggregates}.
   - If it implies a single result (e.g. "the top", "highest", "most used", "top 1"), return exactly one {row}.
   - Otherwise return a bounded list of {rows}."""

_CORRECTION_RULES = """\
Auto-correct spelling and grammar mistakes in the request and make a best guess when it is ambiguous.
Never use placeholder identifiers such as your_table_name; always use the exact name given above."""

_DOCUMENT_TEMPLATE = """\
You convert natural language requests, even badly worded ones, into a single MongoDB query for the collection "{table}".

1. Always query the collection "{table}". Never invent another collection name.

2. {intent}

3. Output contract. Return exactly one JSON object in one of these two shapes:
   {{"filter": {{...}}, "projection": {{...}}, "sort": {{...}}, "limit": N}}
   {{"aggregate": [ ...pipeline stages... ]}}
   Use the aggregate shape for grouping, totals or transformations. Prefer it when unsure.

4. Formatting:
   - Return only the JSON object. No markdown, no db.collection syntax, no comments or explanations.
   - Use "$regex" with "$options": "i" for case-insensitive text matches.
   - Use dot notation for nested fields (e.g. "usage.tokens").

5. {correction}
{fields}"""

_SQL_TEMPLATE = """\
You convert natural language requests, even badly worded ones, into a single {engine} SELECT statement.

1. Always use the table {quoted_table}. Never invent another table name.

2. {intent}
   - Use WHERE for filters and ORDER BY for sorting.
   - {limit_rule}

3. Output contract:
   - Return only one raw SQL SELECT statement. No markdown, JSON, code blocks, comments or explanations.
   - {quoting_rule}
   - Alias computed columns (e.g. {alias_example}).

4. {correction}
{fields}"""

_SQL_DIALECTS = {
    Dialect.POSTGRESQL: {
        "engine": "PostgreSQL",
        "quote": '"{}"',
        "limit_rule": "Use LIMIT for a specific number of rows (e.g. top 10) and LIMIT 1 for a single row.",
        "quoting_rule": 'Quote identifiers with double quotes (e.g. "created_at") where needed.',
        "alias_example": "SUM(cost) AS total_cost",
    },
    Dialect.MYSQL: {
        "engine": "MySQL",
        "quote": "`{}`",
        "limit_rule": "Use LIMIT for a specific number of rows (e.g. top 10) and LIMIT 1 for a single row.",
        "quoting_rule": "Quote identifiers with backticks (e.g. `created_at`).",
        "alias_example": "SUM(cost) AS total_cost",
    },
    Dialect.MSSQL: {
        "engine": "Microsoft SQL Server (T-SQL)",
        "quote": "[{}]",
        "limit_rule": "Use TOP or OFFSET-FETCH for a specific number of rows (e.g. TOP 10) and TOP 1 for a single row. Never use LIMIT.",
        "quoting_rule": "Quote identifiers with square brackets (e.g. [created_at]).",
        "alias_example": "SUM([cost]) AS [total_cost]",
    },
}


def _field_hint(fields: Iterable[str], noun: str) -> str:
    names = sorted(fields)
    if not names:
        return ""
    return f"\nAvailable fields in this {noun} are: {', '.join(names)}"


def build_instruction(dialect: Dialect, table: str, fields: Iterable[str], prompt: str) -> QueryInstruction:
    """Compose the system/user message pair for ``dialect``."""
    if dialect is Dialect.MONGODB:
        system = _DOCUMENT_TEMPLATE.format(
            table=table,
            intent=_INTENT_RULES.format(aggregates="an aggregation with $sum, $avg or $count", row="document", rows="documents"),
            correction=_CORRECTION_RULES,
            fields=_field_hint(fields, "collection"),
        )
    else:
        options = _SQL_DIALECTS[dialect]
        system = _SQL_TEMPLATE.format(
            engine=options["engine"],
            quoted_table=options["quote"].format(table),
            intent=_INTENT_RULES.format(aggregates="SUM, AVG or COUNT", row="row", rows="rows"),
            limit_rule=options["limit_rule"],
            quoting_rule=options["quoting_rule"],
            alias_example=options["alias_example"],
            correction=_CORRECTION_RULES,
            fields=_field_hint(fields, "table"),
        )
    return QueryInstruction(system=system.strip(), user=prompt)


class QuerySynthesizer:
    """Single completion call per request; failures surface, never retry."""

    def __init__(self, completion: CompletionClient, temperature: float = 0.2, max_tokens: int = 1000):
        self.completion = completion
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def synthesize(self, dialect: Dialect, table: str, fields: Iterable[str], prompt: str) -> str:
        instruction = build_instruction(dialect, table, fields, prompt)
        generated = await self.completion.complete(
            instruction.system,
            instruction.user,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        logger.debug("query_synthesized", dialect=dialect.value, table=table, length=len(generated))
        return generated
