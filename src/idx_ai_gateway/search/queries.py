"""Validated query shapes produced by the Search AI pipeline.

The executor switches on these types; nothing downstream of the validator
inspects raw generated text.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class FilterQuery:
    """Document find: filter, optional projection and sort, bounded limit."""

    filter: Dict[str, Any] = field(default_factory=dict)
    projection: Optional[Dict[str, Any]] = None
    sort: Optional[Dict[str, Any]] = None
    limit: int = 100


@dataclass
class AggregationQuery:
    pipeline: List[Dict[str, Any]]


@dataclass
class SqlQuery:
    """A single read-only SELECT statement."""

    text: str


ValidatedQuery = Union[FilterQuery, AggregationQuery, SqlQuery]
