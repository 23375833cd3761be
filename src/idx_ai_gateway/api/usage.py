"""Usage analytics for the admin dashboard."""

from datetime import date, datetime, time
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from idx_ai_gateway.api.dependencies import get_session, require_admin
from idx_ai_gateway.finops.usage_report import UsageReporter

usage_router = APIRouter(dependencies=[Depends(require_admin)])


def _start_of(day: Optional[date]) -> Optional[datetime]:
    return datetime.combine(day, time.min) if day else None


@usage_router.get("")
async def usage_report(
    client_id: Optional[str] = Query(default=None, alias="clientId"),
    period: str = Query(default="30days", pattern="^(7days|30days|90days|year)$"),
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    session: AsyncSession = Depends(get_session),
):
    return await UsageReporter(session).build(
        client_id=client_id,
        period=period,
        start_date=_start_of(start_date),
        end_date=_start_of(end_date),
    )
