"""Usage metering: token/cost computation and the atomic usage write.

A metered call changes two things, the client's running usage counters and
one new usage record. Both happen in a single transaction, and the counters
are incremented in SQL so concurrent calls from the same client never lose
an update.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from idx_ai_gateway.database.models import Client, UsageRecord, utcnow
from idx_ai_gateway.schemas.enums import Capability, PlanType
from idx_ai_gateway.telemetry.logger import get_logger
from idx_ai_gateway.telemetry.metrics import metrics

from .geolocation import Geolocator
from .pricing import RatePair, compute_cost
from .tokens import CharacterCounter, TokenCounter

logger = get_logger(__name__)


@dataclass(frozen=True)
class Usage:
    """Figures for one metered call."""

    input_tokens: int
    output_tokens: int
    cost: float

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_response(self) -> Dict[str, Any]:
        return {
            "tokens": self.total_tokens,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cost": self.cost,
        }


class UsageMeter:
    """Computes usage and writes it against a client."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        token_counter: TokenCounter,
        geolocator: Optional[Geolocator] = None,
        warning_ratio: float = 0.8,
    ):
        self.session_factory = session_factory
        self.token_counter = token_counter
        self.character_counter = CharacterCounter()
        self.geolocator = geolocator
        self.warning_ratio = warning_ratio

    def measure(self, input_text: str, output_text: str, rates: RatePair) -> Usage:
        input_tokens = self.token_counter.count(input_text)
        output_tokens = self.token_counter.count(output_text)
        return Usage(input_tokens, output_tokens, compute_cost(input_tokens, output_tokens, rates))

    def measure_characters(self, text: str, rates: RatePair) -> Usage:
        characters = self.character_counter.count(text)
        return Usage(characters, 0, compute_cost(characters, 0, rates))

    async def record(
        self,
        client: Client,
        usage: Usage,
        capability: Capability,
        sub_type: Optional[str],
        payload: Dict[str, Any],
        headers: Optional[Mapping[str, str]] = None,
        peer: Optional[str] = None,
    ) -> UsageRecord:
        """Increment the client's counters and append one usage record."""
        ip, location = None, None
        if self.geolocator is not None and headers is not None:
            ip, location = await self.geolocator.locate(headers, peer)

        now = utcnow()
        record = UsageRecord(
            client_id=client.id,
            client_name=client.name,
            idx_ai_type=capability.value,
            sub_type=sub_type,
            tokens=usage.total_tokens,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cost=usage.cost,
            payload=payload,
            ip=ip,
            location=location,
            user_agent=(headers or {}).get("user-agent"),
            timestamp=now,
        )

        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(Client)
                    .where(Client.id == client.id)
                    .values(
                        usage_tokens=Client.usage_tokens + usage.total_tokens,
                        usage_cost=Client.usage_cost + usage.cost,
                        usage_last_used=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                session.add(record)
                used = await session.scalar(select(Client.usage_tokens).where(Client.id == client.id))

        metrics.record_usage(capability.value, sub_type, usage.total_tokens, usage.cost)
        self._check_warning(client, capability, used, usage.total_tokens)
        logger.info(
            "usage_metered",
            capability=capability.value,
            sub_type=sub_type,
            tokens=usage.total_tokens,
            cost=usage.cost,
        )
        return record

    def _check_warning(self, client: Client, capability: Capability, used: Optional[int], added: int) -> None:
        """Flag the call that takes a limited client across the warning threshold."""
        if client.plan_type != PlanType.LIMITED.value or not client.token_limit or used is None:
            return
        threshold = client.token_limit * self.warning_ratio
        if used - added < threshold <= used:
            metrics.quota_warnings.labels(capability=capability.value).inc()
            logger.warning(
                "quota_warning_threshold_crossed",
                client_id=client.id,
                used=used,
                limit=client.token_limit,
            )
