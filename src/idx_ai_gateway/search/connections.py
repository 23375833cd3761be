"""Bounded cache of pooled handles to caller-described target databases.

Each distinct descriptor (keyed without its password) gets one pool. The
cache is LRU-bounded. An evicted pool is disposed outside the cache lock,
immediately when no request holds a lease on it, otherwise by the request
releasing the last lease.
"""

import asyncio
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, List, Optional

from pymongo import AsyncMongoClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from idx_ai_gateway.schemas.enums import Dialect
from idx_ai_gateway.search.descriptors import (
    ConnectionDescriptor,
    MongoDescriptor,
    MSSQLDescriptor,
    MySQLDescriptor,
    PostgresDescriptor,
)
from idx_ai_gateway.telemetry.logger import get_logger
from idx_ai_gateway.telemetry.metrics import metrics

logger = get_logger(__name__)


@dataclass
class TargetHandle:
    """A pooled connection to one target database."""

    dialect: Dialect
    key: str
    engine: Optional[AsyncEngine] = None
    mongo_client: Optional[Any] = None
    database: Optional[str] = None
    leases: int = 0
    retired: bool = False

    def mongo_database(self):
        return self.mongo_client[self.database]

    async def dispose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
        if self.mongo_client is not None:
            await self.mongo_client.close()


HandleFactory = Callable[[ConnectionDescriptor], TargetHandle]


class ConnectionPoolManager:
    """LRU cache of target pools shared across requests."""

    def __init__(
        self,
        pool_size: int = 5,
        idle_seconds: int = 10,
        max_entries: int = 32,
        query_timeout_seconds: float = 10.0,
        odbc_driver: str = "ODBC Driver 18 for SQL Server",
        factory: Optional[HandleFactory] = None,
    ):
        self.pool_size = pool_size
        self.idle_seconds = idle_seconds
        self.max_entries = max_entries
        self.query_timeout_seconds = query_timeout_seconds
        self.odbc_driver = odbc_driver
        self._factory = factory or self._build
        self._handles: "OrderedDict[str, TargetHandle]" = OrderedDict()
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings) -> "ConnectionPoolManager":
        return cls(
            pool_size=settings.target_pool_size,
            idle_seconds=settings.target_pool_idle_seconds,
            max_entries=settings.target_pool_cache_size,
            query_timeout_seconds=settings.query_timeout_seconds,
            odbc_driver=settings.mssql_odbc_driver,
        )

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, key: str) -> bool:
        return key in self._handles

    async def acquire(self, descriptor: ConnectionDescriptor) -> TargetHandle:
        """Return the pool for ``descriptor``, creating it on first use.

        The handle is not leased, so an eviction may close it at any time.
        Request paths use ``lease`` instead.
        """
        return await self._checkout(descriptor, leased=False)

    @asynccontextmanager
    async def lease(self, descriptor: ConnectionDescriptor) -> AsyncIterator[TargetHandle]:
        """Hold the pool for ``descriptor`` for the duration of the block.

        A leased handle evicted meanwhile stays open until its last lease
        is released.
        """
        handle = await self._checkout(descriptor, leased=True)
        try:
            yield handle
        finally:
            await self._release(handle)

    async def _checkout(self, descriptor: ConnectionDescriptor, leased: bool) -> TargetHandle:
        key = descriptor.pool_key()
        evicted: List[TargetHandle] = []

        async with self._lock:
            handle = self._handles.get(key)
            if handle is not None:
                self._handles.move_to_end(key)
            else:
                handle = self._factory(descriptor)
                self._handles[key] = handle
                logger.info("target_pool_created", dialect=handle.dialect.value, pool_size=self.pool_size)

                while len(self._handles) > self.max_entries:
                    _, old = self._handles.popitem(last=False)
                    old.retired = True
                    metrics.pool_evictions.labels(dialect=old.dialect.value).inc()
                    logger.info("target_pool_evicted", dialect=old.dialect.value, leases=old.leases)
                    if old.leases == 0:
                        evicted.append(old)

            if leased:
                handle.leases += 1

        for old in evicted:
            await self._dispose(old)

        return handle

    async def _release(self, handle: TargetHandle) -> None:
        async with self._lock:
            handle.leases -= 1
            dispose_now = handle.retired and handle.leases == 0
        if dispose_now:
            await self._dispose(handle)

    async def close(self) -> None:
        async with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            await self._dispose(handle)

    async def _dispose(self, handle: TargetHandle) -> None:
        try:
            await handle.dispose()
        except Exception as e:
            logger.warning("target_pool_dispose_failed", dialect=handle.dialect.value, error=str(e))

    def _build(self, descriptor: ConnectionDescriptor) -> TargetHandle:
        key = descriptor.pool_key()

        if isinstance(descriptor, MongoDescriptor):
            client = AsyncMongoClient(
                descriptor.connection_uri(),
                maxPoolSize=self.pool_size,
                maxIdleTimeMS=self.idle_seconds * 1000,
                serverSelectionTimeoutMS=int(self.query_timeout_seconds * 1000),
                **descriptor.client_options(),
            )
            return TargetHandle(
                dialect=Dialect.MONGODB,
                key=key,
                mongo_client=client,
                database=descriptor.database_name(),
            )

        engine_options = {
            "pool_size": self.pool_size,
            "max_overflow": 0,
            "pool_recycle": self.idle_seconds,
            "pool_pre_ping": True,
        }
        if isinstance(descriptor, PostgresDescriptor):
            engine = create_async_engine(
                descriptor.url(),
                connect_args=descriptor.connect_args(int(self.query_timeout_seconds * 1000)),
                **engine_options,
            )
        elif isinstance(descriptor, MySQLDescriptor):
            engine = create_async_engine(descriptor.url(), connect_args=descriptor.connect_args(), **engine_options)
        elif isinstance(descriptor, MSSQLDescriptor):
            engine = create_async_engine(descriptor.url(self.odbc_driver), **engine_options)
        else:
            raise TypeError(f"Unsupported descriptor: {type(descriptor).__name__}")

        return TargetHandle(dialect=descriptor.dialect, key=key, engine=engine)
