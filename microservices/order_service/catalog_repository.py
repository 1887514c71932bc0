"""
Catalog Repository

Read-only access to catalog items and variants in the shared marketplace
database. Soft-deleted rows are returned with ``deleted=True`` so callers
can tell them apart from missing ones.
"""

from typing import Optional
import logging

import asyncpg

from core.postgres_client import PostgresClient
from .models import CatalogItem, CatalogItemVariant
from .protocols import OrderPersistenceError

logger = logging.getLogger(__name__)


class CatalogRepository:
    """Catalog reads over the order service's pool"""

    def __init__(self, db: PostgresClient):
        self.db = db
        self.items_table = "catalog.items"
        self.variants_table = "catalog.item_variants"

    async def get_item(self, item_id: str) -> Optional[CatalogItem]:
        """Get item with all of its variants"""
        try:
            item_row = await self.db.pool.fetchrow(
                f"SELECT item_id, name_en, name_fr, deleted FROM {self.items_table} WHERE item_id = $1",
                item_id,
            )
            if item_row is None:
                return None

            variant_rows = await self.db.pool.fetch(
                f'''
                SELECT item_variant_id, item_id, name_en, name_fr, price, stock_quantity, deleted
                FROM {self.variants_table}
                WHERE item_id = $1
                ''',
                item_id,
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Failed to read catalog item {item_id}: {e}")
            raise OrderPersistenceError(f"Failed to read catalog: {e}") from e

        return CatalogItem(
            **dict(item_row),
            variants=[CatalogItemVariant(**dict(row)) for row in variant_rows],
        )
