"""Unit tests for usage reporting."""

from datetime import datetime, timedelta

import pytest

from idx_ai_gateway.database.models import UsageRecord, utcnow
from idx_ai_gateway.finops.metering import Usage
from idx_ai_gateway.finops.usage_report import UsageReporter, period_filter, type_label
from idx_ai_gateway.schemas.enums import Capability


class TestTypeLabel:
    @pytest.mark.parametrize(
        "idx_ai_type,sub_type,label",
        [
            ("Prompt AI", None, "Prompt AI"),
            ("Translate AI", "basic", "TAI: Basic"),
            ("Translate AI", "expert", "TAI: Expert"),
            ("Translate AI", None, "TAI: Unknown"),
            ("Search AI", "MySQL", "SAI: MySQL"),
        ],
    )
    def test_labels(self, idx_ai_type, sub_type, label):
        assert type_label(UsageRecord(idx_ai_type=idx_ai_type, sub_type=sub_type)) == label


class TestPeriodFilter:
    def test_default_period(self):
        assert len(period_filter("30days", now=datetime(2024, 1, 31))) == 1

    def test_explicit_range(self):
        conditions = period_filter(start_date=datetime(2024, 1, 1), end_date=datetime(2024, 1, 2))
        assert len(conditions) == 2


class TestUsageReporter:
    """Aggregates over metered calls."""

    @pytest.mark.asyncio
    async def test_build_report(self, session_factory, make_client, meter):
        acme = await make_client()
        beta = await make_client(
            name="Beta", email="ops@beta.test", domain="beta.test", idx_ai_type="Prompt AI", idxdb=None
        )
        await meter.record(acme, Usage(10, 10, 0.5), Capability.SEARCH, "PostgreSQL", payload={"table": "orders"})
        await meter.record(acme, Usage(5, 5, 0.25), Capability.SEARCH, "PostgreSQL", payload={})
        await meter.record(beta, Usage(1, 1, 0.1), Capability.PROMPT, None, payload={"prompt": "hi"})

        async with session_factory() as session:
            report = await UsageReporter(session).build()

        assert report["summary"]["totalTokens"] == 32
        assert report["summary"]["count"] == 3
        assert report["summary"]["totalCost"] == pytest.approx(0.85)
        assert [c["clientName"] for c in report["topClients"]] == ["Acme", "Beta"]
        assert report["topClients"][0]["totalTokens"] == 30
        assert sum(day["tokens"] for day in report["byDay"]) == 32
        labels = {entry["label"]: entry["tokens"] for entry in report["byTypes"]}
        assert labels == {"SAI: PostgreSQL": 30, "Prompt AI": 2}

    @pytest.mark.asyncio
    async def test_filtered_by_client(self, session_factory, make_client, meter):
        acme = await make_client()
        await meter.record(acme, Usage(1, 1, 0.01), Capability.SEARCH, "PostgreSQL", payload={})

        async with session_factory() as session:
            report = await UsageReporter(session).build(client_id=acme.id)

        assert report["summary"]["count"] == 1
        assert report["topClients"] == []

    @pytest.mark.asyncio
    async def test_old_records_outside_period(self, session_factory, make_client):
        acme = await make_client()
        async with session_factory() as session:
            session.add(
                UsageRecord(
                    client_id=acme.id,
                    client_name=acme.name,
                    idx_ai_type="Search AI",
                    sub_type="PostgreSQL",
                    tokens=9,
                    cost=0.1,
                    payload={},
                    timestamp=utcnow() - timedelta(days=40),
                )
            )
            await session.commit()
            report = await UsageReporter(session).build(period="30days")
        assert report["summary"]["count"] == 0
