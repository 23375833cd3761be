"""Usage reporting over the usage record table."""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from idx_ai_gateway.database.models import UsageRecord, utcnow
from idx_ai_gateway.schemas.enums import Capability

PERIODS = {
    "7days": timedelta(days=7),
    "30days": timedelta(days=30),
    "90days": timedelta(days=90),
    "year": timedelta(days=365),
}


def period_filter(
    period: str = "30days",
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> List:
    """Timestamp conditions; an explicit range wins and includes its whole end day."""
    if start_date and end_date:
        end = end_date.replace(hour=23, minute=59, second=59, microsecond=999999)
        return [UsageRecord.timestamp >= start_date, UsageRecord.timestamp <= end]
    since = (now or utcnow()) - PERIODS.get(period, PERIODS["30days"])
    return [UsageRecord.timestamp >= since]


def type_label(record: UsageRecord) -> str:
    if record.idx_ai_type == Capability.PROMPT.value:
        return "Prompt AI"
    if record.idx_ai_type == Capability.TRANSLATE.value:
        tier = (record.sub_type or "").lower()
        return f"TAI: {tier.capitalize()}" if tier in {"basic", "advanced", "expert"} else "TAI: Unknown"
    if record.idx_ai_type == Capability.SEARCH.value:
        return f"SAI: {record.sub_type or 'Unknown'}"
    return "Unknown"


class UsageReporter:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _by_day(self, conditions: List) -> List[Dict[str, Any]]:
        day = func.date(UsageRecord.timestamp).label("day")
        result = await self.session.execute(
            select(
                day,
                func.sum(UsageRecord.tokens).label("tokens"),
                func.sum(UsageRecord.cost).label("cost"),
                func.count(UsageRecord.id).label("count"),
            )
            .where(*conditions)
            .group_by(day)
            .order_by(day)
        )
        return [
            {"date": str(row.day), "tokens": int(row.tokens or 0), "cost": float(row.cost or 0), "count": row.count}
            for row in result
        ]

    async def build(
        self,
        client_id: Optional[str] = None,
        period: str = "30days",
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 500,
    ) -> Dict[str, Any]:
        conditions = period_filter(period, start_date, end_date)
        if client_id:
            conditions.append(UsageRecord.client_id == client_id)

        records_result = await self.session.execute(
            select(UsageRecord).where(*conditions).order_by(desc(UsageRecord.timestamp)).limit(limit)
        )
        records = list(records_result.scalars().all())

        by_types: Dict[str, int] = {}
        for record in records:
            label = type_label(record)
            by_types[label] = by_types.get(label, 0) + (record.tokens or 0)

        summary_row = (
            await self.session.execute(
                select(
                    func.coalesce(func.sum(UsageRecord.tokens), 0),
                    func.coalesce(func.sum(UsageRecord.cost), 0.0),
                    func.avg(UsageRecord.tokens),
                    func.count(UsageRecord.id),
                ).where(*conditions)
            )
        ).one()

        top_clients: List[Dict[str, Any]] = []
        if not client_id:
            total_tokens = func.sum(UsageRecord.tokens).label("total_tokens")
            top_result = await self.session.execute(
                select(
                    UsageRecord.client_id,
                    func.max(UsageRecord.client_name).label("client_name"),
                    total_tokens,
                    func.sum(UsageRecord.cost).label("total_cost"),
                    func.avg(UsageRecord.tokens).label("avg_tokens"),
                    func.count(UsageRecord.id).label("count"),
                )
                .where(*conditions)
                .group_by(UsageRecord.client_id)
                .order_by(desc(total_tokens))
                .limit(10)
            )
            for row in top_result:
                top_clients.append(
                    {
                        "clientId": row.client_id,
                        "clientName": row.client_name,
                        "totalTokens": int(row.total_tokens or 0),
                        "totalCost": float(row.total_cost or 0),
                        "avgTokensPerRequest": float(row.avg_tokens or 0),
                        "totalRequests": row.count,
                        "byDay": await self._by_day(conditions + [UsageRecord.client_id == row.client_id]),
                    }
                )

        return {
            "records": [record.to_dict() for record in records],
            "summary": {
                "totalTokens": int(summary_row[0] or 0),
                "totalCost": round(float(summary_row[1] or 0), 6),
                "avgTokensPerRequest": float(summary_row[2] or 0),
                "count": summary_row[3],
            },
            "byDay": await self._by_day(conditions),
            "topClients": top_clients,
            "byTypes": [{"label": label, "tokens": tokens} for label, tokens in by_types.items()],
        }
