"""Client lifecycle: creation with a fresh API key, edits, key rotation and deletion."""

import secrets
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from idx_ai_gateway.database.models import Client, UsageRecord, utcnow
from idx_ai_gateway.exceptions import BadRequest, Conflict, NotFound
from idx_ai_gateway.schemas.enums import Capability, Dialect, PlanType, TranslationTier
from idx_ai_gateway.telemetry.logger import get_logger

logger = get_logger(__name__)


def generate_api_key() -> str:
    """256-bit random key rendered as 64 hex characters."""
    return secrets.token_hex(32)


def validate_client_fields(data: Dict[str, Any]) -> None:
    """Check tier, plan and binding rules shared by create and update."""
    plan_type = data.get("plan_type")
    if plan_type not in {p.value for p in PlanType}:
        raise BadRequest("Invalid plan type", field="planType")

    if plan_type == PlanType.LIMITED.value:
        token_limit = data.get("token_limit")
        if not token_limit or token_limit <= 0:
            raise BadRequest("Token limit is required for limited plan", field="tokenLimit")

    idx_ai_type = data.get("idx_ai_type")
    if idx_ai_type not in {c.value for c in Capability}:
        raise BadRequest("Invalid IDX AI Type", field="idxAiType")

    if idx_ai_type == Capability.TRANSLATE.value:
        if data.get("translation_type") not in {t.value for t in TranslationTier}:
            raise BadRequest("Invalid or missing translation type for Translate AI", field="translationType")

    if idx_ai_type == Capability.SEARCH.value:
        if data.get("idxdb") not in {d.value for d in Dialect}:
            raise BadRequest("Invalid or missing database type for Search AI", field="idxdb")


class ClientManager:
    """Administrative operations on the client table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_api_key(self, api_key: str) -> Optional[Client]:
        result = await self.session.execute(select(Client).where(Client.api_key == api_key))
        return result.scalar_one_or_none()

    async def get(self, client_id: str) -> Client:
        client = await self.session.get(Client, client_id)
        if client is None:
            raise NotFound("Client not found")
        return client

    async def list_all(self) -> List[Client]:
        result = await self.session.execute(select(Client).order_by(Client.created_at))
        return list(result.scalars().all())

    async def create(self, data: Dict[str, Any]) -> Client:
        for required in ("name", "email", "domain", "plan_type", "idx_ai_type"):
            if not data.get(required):
                raise BadRequest("Missing required fields", field=required)
        validate_client_fields(data)

        existing = await self.session.execute(
            select(Client.id).where(
                or_(Client.name == data["name"], Client.email == data["email"], Client.domain == data["domain"])
            )
        )
        if existing.first() is not None:
            raise Conflict("Client with same name, email or domain already exists")

        idx_ai_type = data["idx_ai_type"]
        limited = data["plan_type"] == PlanType.LIMITED.value
        client = Client(
            name=data["name"],
            email=data["email"],
            domain=data["domain"],
            api_key=generate_api_key(),
            idx_ai_type=idx_ai_type,
            translation_type=data.get("translation_type") if idx_ai_type == Capability.TRANSLATE.value else None,
            idxdb=data.get("idxdb") if idx_ai_type == Capability.SEARCH.value else None,
            ai_model=data.get("ai_model"),
            plan_type=data["plan_type"],
            token_limit=data.get("token_limit") if limited else None,
            usage_tokens=0,
            usage_cost=0.0,
        )
        self.session.add(client)
        await self.session.flush()

        logger.info("client_created", client_id=client.id, idx_ai_type=idx_ai_type, plan_type=client.plan_type)
        return client

    async def update(self, client_id: str, data: Dict[str, Any], regenerate_api_key: bool = False) -> Client:
        client = await self.get(client_id)

        merged = {
            "plan_type": data.get("plan_type") or client.plan_type,
            "token_limit": data.get("token_limit", client.token_limit),
            "idx_ai_type": data.get("idx_ai_type") or client.idx_ai_type,
            "translation_type": data.get("translation_type", client.translation_type),
            "idxdb": data.get("idxdb", client.idxdb),
        }
        validate_client_fields(merged)

        name = data.get("name") or client.name
        email = data.get("email") or client.email
        domain = data.get("domain") or client.domain
        clash = await self.session.execute(
            select(Client.id).where(
                Client.id != client_id,
                or_(Client.name == name, Client.email == email, Client.domain == domain),
            )
        )
        if clash.first() is not None:
            raise Conflict("Name, email or domain is already in use by another client")

        client.name = name
        client.email = email
        client.domain = domain
        client.idx_ai_type = merged["idx_ai_type"]
        client.translation_type = (
            merged["translation_type"] if merged["idx_ai_type"] == Capability.TRANSLATE.value else None
        )
        client.idxdb = merged["idxdb"] if merged["idx_ai_type"] == Capability.SEARCH.value else None
        client.plan_type = merged["plan_type"]
        client.token_limit = merged["token_limit"] if merged["plan_type"] == PlanType.LIMITED.value else None
        client.updated_at = utcnow()

        if regenerate_api_key:
            client.api_key = generate_api_key()
            logger.info("client_api_key_regenerated", client_id=client.id)

        await self.session.flush()
        return client

    async def delete(self, client_id: str) -> None:
        """Remove a client together with its whole usage history."""
        client = await self.get(client_id)
        await self.session.execute(delete(UsageRecord).where(UsageRecord.client_id == client_id))
        await self.session.delete(client)
        await self.session.flush()
        logger.info("client_deleted", client_id=client_id)
