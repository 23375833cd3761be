"""Caller-supplied connection descriptors for Search AI target databases.

Descriptors are ephemeral: they are parsed per request, used to look up or
build a pooled handle and never persisted. ``pool_key`` identifies the target
without the password.
"""

import hashlib
import ssl
from typing import Any, Dict, Optional, Union
from urllib.parse import quote_plus, urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from idx_ai_gateway.exceptions import BadRequest
from idx_ai_gateway.schemas.enums import Dialect


def _ssl_context(ca_path: Optional[str]) -> ssl.SSLContext:
    try:
        return ssl.create_default_context(cafile=ca_path)
    except (OSError, ssl.SSLError) as e:
        raise BadRequest(f"Unable to load CA certificate: {ca_path}", field="caPath") from e


def _secret_digest(secret: Optional[str]) -> str:
    """Short digest so a rotated password gets a fresh pool."""
    return hashlib.sha256((secret or "").encode()).hexdigest()[:12]


class _Descriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    dialect: Dialect = Dialect.MONGODB

    def pool_key(self) -> str:
        raise NotImplementedError


class MongoDescriptor(_Descriptor):
    dialect: Dialect = Dialect.MONGODB
    uri: Optional[str] = None
    host: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    ca_path: Optional[str] = Field(default=None, alias="caPath")

    @model_validator(mode="after")
    def _require_target(self):
        if not self.uri and not self.host:
            raise ValueError("connection requires either uri or host")
        return self

    def connection_uri(self) -> str:
        if self.uri:
            return self.uri
        credentials = ""
        if self.user:
            credentials = f"{quote_plus(self.user)}:{quote_plus(self.password or '')}@"
        return f"mongodb://{credentials}{self.host}/{self.database or ''}?authSource=admin"

    def database_name(self) -> str:
        """Explicit database, else the path component of the URI."""
        if self.database:
            return self.database
        if self.uri:
            name = urlsplit(self.uri).path.lstrip("/").split("?")[0]
            if name:
                return name
        raise BadRequest("Database name is required", field="connection.database")

    def client_options(self) -> Dict[str, Any]:
        if self.ca_path:
            return {"tls": True, "tlsCAFile": self.ca_path}
        return {}

    def pool_key(self) -> str:
        if self.uri:
            return f"mongodb:{_secret_digest(self.uri)}"
        return f"mongodb:{self.user}@{self.host}/{self.database}:{_secret_digest(self.password)}"


class PostgresDescriptor(_Descriptor):
    dialect: Dialect = Dialect.POSTGRESQL
    connection_string: Optional[str] = Field(default=None, alias="connectionString")
    user: Optional[str] = None
    host: Optional[str] = None
    database: Optional[str] = None
    password: Optional[str] = None
    port: int = 5432
    ca_path: Optional[str] = Field(default=None, alias="caPath")

    @model_validator(mode="after")
    def _require_target(self):
        if not self.connection_string and not (self.host and self.database):
            raise ValueError("connection requires either connectionString or host and database")
        return self

    def url(self) -> URL:
        if self.connection_string:
            try:
                url = make_url(self.connection_string)
            except ArgumentError as e:
                raise BadRequest("Invalid PostgreSQL connection string", field="connectionString") from e
            return url.set(drivername="postgresql+asyncpg")
        return URL.create(
            "postgresql+asyncpg",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
        )

    def connect_args(self, statement_timeout_ms: int) -> Dict[str, Any]:
        args: Dict[str, Any] = {"server_settings": {"statement_timeout": str(statement_timeout_ms)}}
        if self.ca_path:
            args["ssl"] = _ssl_context(self.ca_path)
        return args

    def pool_key(self) -> str:
        if self.connection_string:
            return f"postgresql:{_secret_digest(self.connection_string)}"
        return f"postgresql:{self.user}@{self.host}:{self.port}/{self.database}:{_secret_digest(self.password)}"


class MySQLDescriptor(_Descriptor):
    dialect: Dialect = Dialect.MYSQL
    host: str
    user: str
    password: Optional[str] = None
    database: str
    port: int = 3306
    use_ssl: bool = Field(default=False, alias="useSsl")
    ssl_ca_path: Optional[str] = Field(default=None, alias="sslCaPath")

    def url(self) -> URL:
        return URL.create(
            "mysql+aiomysql",
            username=self.user,
            password=self.password or "",
            host=self.host,
            port=self.port,
            database=self.database,
        )

    def connect_args(self) -> Dict[str, Any]:
        if self.use_ssl or self.ssl_ca_path:
            return {"ssl": _ssl_context(self.ssl_ca_path)}
        return {}

    def pool_key(self) -> str:
        return f"mysql:{self.user}@{self.host}:{self.port}/{self.database}:{_secret_digest(self.password)}"


class MSSQLDescriptor(_Descriptor):
    dialect: Dialect = Dialect.MSSQL
    user: str
    password: str
    server: str
    database: str
    port: int = 1433
    encrypt: bool = False
    trust_server_certificate: bool = Field(default=True, alias="trustServerCertificate")

    def url(self, odbc_driver: str) -> URL:
        return URL.create(
            "mssql+aioodbc",
            username=self.user,
            password=self.password,
            host=self.server,
            port=self.port,
            database=self.database,
            query={
                "driver": odbc_driver,
                "Encrypt": "yes" if self.encrypt else "no",
                "TrustServerCertificate": "yes" if self.trust_server_certificate else "no",
            },
        )

    def pool_key(self) -> str:
        return f"mssql:{self.user}@{self.server}:{self.port}/{self.database}:{_secret_digest(self.password)}"


SqlDescriptor = Union[PostgresDescriptor, MySQLDescriptor, MSSQLDescriptor]
ConnectionDescriptor = Union[MongoDescriptor, PostgresDescriptor, MySQLDescriptor, MSSQLDescriptor]

_DESCRIPTORS = {
    Dialect.MONGODB: MongoDescriptor,
    Dialect.POSTGRESQL: PostgresDescriptor,
    Dialect.MYSQL: MySQLDescriptor,
    Dialect.MSSQL: MSSQLDescriptor,
}


def parse_descriptor(dialect: Dialect, raw: Any) -> ConnectionDescriptor:
    """Validate a raw ``connection`` object for the given dialect."""
    if isinstance(raw, str) and dialect is Dialect.MONGODB:
        raw = {"uri": raw}
    elif isinstance(raw, str) and dialect is Dialect.POSTGRESQL:
        raw = {"connectionString": raw}
    if not isinstance(raw, dict):
        raise BadRequest("Invalid connection descriptor", field="connection")

    try:
        return _DESCRIPTORS[dialect].model_validate({k: v for k, v in raw.items() if k != "dialect"})
    except ValidationError as e:
        # Only field locations, the input may hold credentials
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise BadRequest(
            f"Invalid {dialect.value} connection descriptor", field="connection", details={"fields": fields}
        ) from e
