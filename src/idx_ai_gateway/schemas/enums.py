"""Enumerations shared by the client model, the gate and the search pipeline."""

from enum import Enum


class Capability(str, Enum):
    """Capability tier a client is bound to."""

    PROMPT = "Prompt AI"
    TRANSLATE = "Translate AI"
    SEARCH = "Search AI"


class TranslationTier(str, Enum):
    BASIC = "basic"
    ADVANCED = "advanced"
    EXPERT = "expert"


class Dialect(str, Enum):
    """Target database technology bound to a Search AI client."""

    MONGODB = "MongoDB"
    MYSQL = "MySQL"
    MSSQL = "MSSQL"
    POSTGRESQL = "PostgreSQL"

    @property
    def is_sql(self) -> bool:
        return self is not Dialect.MONGODB


class SearchTarget(str, Enum):
    """Route slug for each Search AI dialect."""

    MONGO = "mongo"
    MYSQL = "mysql"
    MSSQL = "mssql"
    POSTGRES = "postgres"

    @property
    def dialect(self) -> Dialect:
        return _TARGET_DIALECTS[self]


_TARGET_DIALECTS = {
    SearchTarget.MONGO: Dialect.MONGODB,
    SearchTarget.MYSQL: Dialect.MYSQL,
    SearchTarget.MSSQL: Dialect.MSSQL,
    SearchTarget.POSTGRES: Dialect.POSTGRESQL,
}


class PlanType(str, Enum):
    LIMITED = "limited"
    UNLIMITED = "unlimited"
