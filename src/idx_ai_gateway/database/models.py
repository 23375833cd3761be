"""Database models for clients and their metered usage."""

from datetime import datetime, timezone
import uuid

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the storage convention for every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


class Client(Base):
    """Tenant account bound to one capability tier and one API key."""

    __tablename__ = "clients"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    domain = Column(String(255), unique=True, nullable=False)
    api_key = Column(String(64), unique=True, nullable=False, index=True)

    # Capability binding
    idx_ai_type = Column(String(32), nullable=False)
    translation_type = Column(String(16), nullable=True)
    idxdb = Column(String(16), nullable=True)
    ai_model = Column(String(64), nullable=True)

    # Plan
    plan_type = Column(String(16), nullable=False, default="unlimited")
    token_limit = Column(Integer, nullable=True)

    # Running usage aggregate, only ever changed by atomic increments
    usage_tokens = Column(Integer, nullable=False, default=0)
    usage_cost = Column(Float, nullable=False, default=0.0)
    usage_last_used = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    usage_records = relationship(
        "UsageRecord", back_populates="client", cascade="all, delete-orphan", passive_deletes=True
    )

    def to_dict(self, include_api_key: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "domain": self.domain,
            "idxAiType": self.idx_ai_type,
            "translationType": self.translation_type,
            "idxdb": self.idxdb,
            "aiModel": self.ai_model,
            "planType": self.plan_type,
            "tokenLimit": self.token_limit,
            "usage": {
                "tokens": self.usage_tokens or 0,
                "cost": self.usage_cost or 0.0,
                "lastUsed": self.usage_last_used.isoformat() if self.usage_last_used else None,
            },
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_api_key:
            data["apiKey"] = self.api_key
        return data


class UsageRecord(Base):
    """Immutable per-call billing fact. Deleted only together with its client."""

    __tablename__ = "usage_records"

    id = Column(String(32), primary_key=True, default=new_id)
    client_id = Column(
        String(32), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_name = Column(String(255), nullable=False)

    idx_ai_type = Column(String(32), nullable=False)
    sub_type = Column(String(32), nullable=True)

    tokens = Column(Integer, nullable=False)
    input_tokens = Column(Integer, nullable=False, default=0)
    output_tokens = Column(Integer, nullable=False, default=0)
    cost = Column(Float, nullable=False)

    # prompt text, language pair, or prompt + generated query + table
    payload = Column(JSON, nullable=False, default=dict)

    ip = Column(String(64), nullable=True)
    location = Column(JSON, nullable=True)
    user_agent = Column(Text, nullable=True)

    timestamp = Column(DateTime, default=utcnow, nullable=False, index=True)

    client = relationship("Client", back_populates="usage_records")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "clientId": self.client_id,
            "clientName": self.client_name,
            "idxAiType": self.idx_ai_type,
            "subType": self.sub_type,
            "tokens": self.tokens,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cost": self.cost,
            **(self.payload or {}),
            "ip": self.ip,
            "location": self.location,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
