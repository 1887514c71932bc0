"""
PostgreSQL Client Wrapper

asyncpg connection pool shared by the repositories of one service.

Usage:
    from core.postgres_client import PostgresClient

    db = PostgresClient("order_service")
    await db.initialize()

    rows = await db.query("SELECT * FROM orders.orders WHERE user_id = $1", [user_id])

    async with db.transaction() as conn:
        await conn.execute(...)
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import asyncpg

from core.config import InfraConfig

logger = logging.getLogger(__name__)


class PostgresClient:
    """
    asyncpg pool with the service's configuration.

    One instance per process; repositories receive it from the factory.
    """

    def __init__(
        self,
        service_name: str,
        infra: Optional[InfraConfig] = None,
        dsn: Optional[str] = None,
    ):
        """
        Args:
            service_name: Name of the service using this client
            infra: Infrastructure config (read from env when omitted)
            dsn: Explicit connection string, overrides infra host/port/db
        """
        self.service_name = service_name
        self.infra = infra or InfraConfig.from_env()
        self.dsn = dsn or self.infra.postgres_dsn
        self._pool: Optional[asyncpg.Pool] = None

    async def initialize(self):
        """Create the pool (idempotent)"""
        if self._pool is not None:
            return
        self._pool = await asyncpg.create_pool(
            dsn=self.dsn,
            min_size=self.infra.postgres_pool_min_size,
            max_size=self.infra.postgres_pool_max_size,
            command_timeout=self.infra.postgres_command_timeout,
        )
        logger.info(
            f"PostgreSQL pool ready for {self.service_name} "
            f"({self.infra.postgres_host}:{self.infra.postgres_port}/{self.infra.postgres_db})"
        )

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("PostgresClient is not initialized")
        return self._pool

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Connection inside a transaction; rolled back on any exception"""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def query(self, sql: str, params: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        rows = await self.pool.fetch(sql, *(params or []))
        return [dict(row) for row in rows]

    async def query_row(self, sql: str, params: Optional[List[Any]] = None) -> Optional[Dict[str, Any]]:
        row = await self.pool.fetchrow(sql, *(params or []))
        return dict(row) if row else None

    async def execute(self, sql: str, params: Optional[List[Any]] = None) -> str:
        return await self.pool.execute(sql, *(params or []))

    async def health_check(self) -> bool:
        try:
            return await self.pool.fetchval("SELECT 1") == 1
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            logger.warning(f"PostgreSQL health check failed: {e}")
            return False

    async def close(self):
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info(f"PostgreSQL pool closed for {self.service_name}")


__all__ = ["PostgresClient"]
