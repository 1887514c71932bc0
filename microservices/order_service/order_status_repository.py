"""
Order Status Repository

Localized names of the order statuses (orders.order_statuses). The set of
statuses itself is closed (OrderStatusCode); this table only names them.
"""

from typing import List, Optional
import logging

import asyncpg

from core.postgres_client import PostgresClient
from .models import OrderStatusName
from .protocols import OrderPersistenceError

logger = logging.getLogger(__name__)


class OrderStatusRepository:

    def __init__(self, db: PostgresClient):
        self.db = db
        self.table = "orders.order_statuses"

    async def find_by_status_code(self, status_code: str) -> Optional[OrderStatusName]:
        row = await self._fetch_row(
            f"SELECT id, status_code, name_en, name_fr FROM {self.table} WHERE status_code = $1",
            status_code,
        )
        return OrderStatusName.model_validate(row) if row else None

    async def get_by_id(self, status_id: int) -> Optional[OrderStatusName]:
        row = await self._fetch_row(
            f"SELECT id, status_code, name_en, name_fr FROM {self.table} WHERE id = $1",
            status_id,
        )
        return OrderStatusName.model_validate(row) if row else None

    async def list_statuses(self) -> List[OrderStatusName]:
        try:
            rows = await self.db.pool.fetch(
                f"SELECT id, status_code, name_en, name_fr FROM {self.table} ORDER BY id"
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Failed to list order statuses: {e}")
            raise OrderPersistenceError(f"Failed to list order statuses: {e}") from e
        return [OrderStatusName.model_validate(dict(row)) for row in rows]

    async def _fetch_row(self, query: str, *params) -> Optional[dict]:
        try:
            row = await self.db.pool.fetchrow(query, *params)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Order status query failed: {e}")
            raise OrderPersistenceError(f"Order status query failed: {e}") from e
        return dict(row) if row else None
