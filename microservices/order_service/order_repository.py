"""
Order Repository

Data access layer for orders using an asyncpg pool. Every write that touches
more than one table (create, update, delete) runs inside a single
transaction together with its catalog stock adjustments.
"""

from typing import Optional, List
import logging

import asyncpg

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClient
from .models import (
    Order, OrderAddress, OrderItem, OrderPayment, OrderStatusCode,
)
from .protocols import (
    CatalogItemNotFoundError,
    InsufficientStockError,
    OrderConflictError,
    OrderNotFoundError,
    OrderPersistenceError,
    StockChange,
)

logger = logging.getLogger(__name__)

DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class OrderRepository:
    """
    Repository for order data operations

    Tables live in the "orders" schema; stock is kept in
    catalog.item_variants, owned by the catalog service.
    """

    def __init__(self, config: Optional[ConfigManager] = None, db: Optional[PostgresClient] = None):
        """Initialize Order Repository with a shared PostgresClient"""
        if db is None:
            if config is None:
                config = ConfigManager("order_service")
            db = PostgresClient("order_service", infra=config.get_service_config().infra)
        self.db = db

        self.schema = "orders"
        self.orders_table = f"{self.schema}.orders"
        self.items_table = f"{self.schema}.order_items"
        self.addresses_table = f"{self.schema}.order_addresses"
        self.payments_table = f"{self.schema}.order_payments"
        self.variants_table = "catalog.item_variants"

        logger.info("OrderRepository initialized")

    async def initialize(self):
        await self.db.initialize()

    async def close(self):
        await self.db.close()

    async def check_connection(self) -> bool:
        return await self.db.health_check()

    # ====================
    # Writes
    # ====================

    async def create_order(
        self,
        order: Order,
        items: List[OrderItem],
        addresses: List[OrderAddress],
        payment: OrderPayment,
    ) -> Order:
        """
        Insert the order, its lines, both addresses and the payment, and
        take the stock of every line, in one transaction.

        Raises:
            InsufficientStockError: a conditional stock decrement matched no row
            OrderPersistenceError: any database failure; nothing is persisted
        """
        stock_changes = [
            StockChange(item.item_id, item.item_variant_id, item.quantity, item.name_en)
            for item in items
        ]
        try:
            async with self.db.transaction() as conn:
                row = await conn.fetchrow(
                    f'''
                    INSERT INTO {self.orders_table} (
                        order_id, user_id, order_date, status, subtotal, tax_total,
                        shipping_total, grand_total, tax_rate, notes
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                    RETURNING order_number, created_at, updated_at
                    ''',
                    order.order_id, order.user_id, order.order_date, order.status.value,
                    order.subtotal, order.tax_total, order.shipping_total,
                    order.grand_total, order.tax_rate, order.notes,
                )

                await conn.executemany(
                    f'''
                    INSERT INTO {self.items_table} (
                        order_item_id, order_id, item_id, item_variant_id, name_en, name_fr,
                        variant_name_en, variant_name_fr, quantity, unit_price, total_price,
                        status, line_number
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
                    ''',
                    [
                        (
                            i.order_item_id, i.order_id, i.item_id, i.item_variant_id,
                            i.name_en, i.name_fr, i.variant_name_en, i.variant_name_fr,
                            i.quantity, i.unit_price, i.total_price, i.status.value,
                            line_number,
                        )
                        for line_number, i in enumerate(items, start=1)
                    ],
                )

                await conn.executemany(
                    f'''
                    INSERT INTO {self.addresses_table} (
                        address_id, order_id, address_type, full_name, address_line1,
                        address_line2, address_line3, city, province_state, postal_code, country
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                    ''',
                    [
                        (
                            a.address_id, a.order_id, a.address_type.value, a.full_name,
                            a.address_line1, a.address_line2, a.address_line3, a.city,
                            a.province_state, a.postal_code, a.country,
                        )
                        for a in addresses
                    ],
                )

                await conn.execute(
                    f'''
                    INSERT INTO {self.payments_table} (
                        payment_id, order_id, payment_method_id, amount, provider,
                        provider_reference, paid_at
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                    ''',
                    payment.payment_id, payment.order_id, payment.payment_method_id,
                    payment.amount, payment.provider, payment.provider_reference, payment.paid_at,
                )

                await self._apply_stock_changes(conn, stock_changes)

            created = order.model_copy(update=dict(row))
            logger.info(f"Order {created.order_id} persisted as #{created.order_number}")
            return created

        except DB_ERRORS as e:
            logger.error(f"Failed to create order {order.order_id}: {e}")
            raise OrderPersistenceError(f"Failed to create order: {e}") from e

    async def update_order(
        self,
        order: Order,
        items: Optional[List[OrderItem]] = None,
        stock_changes: Optional[List[StockChange]] = None,
        expected: Optional[Order] = None,
    ) -> Order:
        """
        Write the order header, the given lines and stock adjustments in one transaction

        Raises:
            OrderNotFoundError: the order row is gone
            OrderConflictError: the row no longer matches ``expected``
            OrderPersistenceError: any database failure
        """
        try:
            async with self.db.transaction() as conn:
                await self._lock_order(conn, order.order_id, expected)
                await self._apply_stock_changes(conn, stock_changes or [])

                row = await conn.fetchrow(
                    f'''
                    UPDATE {self.orders_table}
                    SET status = $2, notes = $3, subtotal = $4, tax_total = $5,
                        shipping_total = $6, grand_total = $7, updated_at = NOW()
                    WHERE order_id = $1
                    RETURNING *
                    ''',
                    order.order_id, order.status.value, order.notes, order.subtotal,
                    order.tax_total, order.shipping_total, order.grand_total,
                )

                if items:
                    await conn.executemany(
                        f'''
                        UPDATE {self.items_table}
                        SET quantity = $3, total_price = $4, status = $5,
                            delivered_at = $6, on_hold_reason = $7
                        WHERE order_item_id = $1 AND order_id = $2
                        ''',
                        [
                            (
                                i.order_item_id, i.order_id, i.quantity, i.total_price,
                                i.status.value, i.delivered_at, i.on_hold_reason,
                            )
                            for i in items
                        ],
                    )

            return Order.model_validate(dict(row))

        except DB_ERRORS as e:
            logger.error(f"Failed to update order {order.order_id}: {e}")
            raise OrderPersistenceError(f"Failed to update order: {e}") from e

    async def delete_order(
        self,
        order_id: str,
        stock_changes: Optional[List[StockChange]] = None,
        expected: Optional[Order] = None,
    ) -> None:
        """Delete items, addresses, payment, then the order, returning stock, in one transaction"""
        try:
            async with self.db.transaction() as conn:
                await self._lock_order(conn, order_id, expected)
                await self._apply_stock_changes(conn, stock_changes or [])
                await conn.execute(f"DELETE FROM {self.items_table} WHERE order_id = $1", order_id)
                await conn.execute(f"DELETE FROM {self.addresses_table} WHERE order_id = $1", order_id)
                await conn.execute(f"DELETE FROM {self.payments_table} WHERE order_id = $1", order_id)
                await conn.execute(f"DELETE FROM {self.orders_table} WHERE order_id = $1", order_id)

        except DB_ERRORS as e:
            logger.error(f"Failed to delete order {order_id}: {e}")
            raise OrderPersistenceError(f"Failed to delete order: {e}") from e

    async def _lock_order(self, conn: asyncpg.Connection, order_id: str, expected: Optional[Order]):
        """
        Lock the order row for the rest of the transaction.

        Concurrent writers on the same order are serialized on this lock.
        """
        row = await conn.fetchrow(
            f"SELECT status, updated_at FROM {self.orders_table} WHERE order_id = $1 FOR UPDATE",
            order_id,
        )
        if row is None:
            raise OrderNotFoundError(f"Order with ID {order_id} not found.")
        if expected is not None and (
            row["status"] != expected.status.value or row["updated_at"] != expected.updated_at
        ):
            logger.warning(
                f"Order {order_id} changed concurrently: {expected.status.value} -> {row['status']}"
            )
            raise OrderConflictError(
                f"Order {order_id} was modified by another request. Reload it and try again."
            )

    async def _apply_stock_changes(self, conn: asyncpg.Connection, changes: List[StockChange]):
        """
        Take or return variant stock on the caller's transaction.

        A take only succeeds while enough stock is left, so two concurrent
        orders can never drive a variant below zero.
        """
        # Lock variant rows in a stable order
        for change in sorted(changes, key=lambda c: c.item_variant_id):
            if change.delta > 0:
                result = await conn.execute(
                    f'''
                    UPDATE {self.variants_table}
                    SET stock_quantity = stock_quantity - $1
                    WHERE item_variant_id = $2 AND stock_quantity >= $1 AND NOT deleted
                    ''',
                    change.delta, change.item_variant_id,
                )
                if result == "UPDATE 0":
                    variant = await conn.fetchrow(
                        f"SELECT stock_quantity, deleted FROM {self.variants_table} WHERE item_variant_id = $1",
                        change.item_variant_id,
                    )
                    if variant is None or variant["deleted"]:
                        raise CatalogItemNotFoundError(
                            f"Item variant with ID {change.item_variant_id} not found."
                        )
                    raise InsufficientStockError(
                        item_id=change.item_id,
                        item_variant_id=change.item_variant_id,
                        available=variant["stock_quantity"],
                        requested=change.delta,
                        item_name=change.item_name,
                    )
            elif change.delta < 0:
                await conn.execute(
                    f'''
                    UPDATE {self.variants_table}
                    SET stock_quantity = stock_quantity + $1
                    WHERE item_variant_id = $2
                    ''',
                    -change.delta, change.item_variant_id,
                )

    # ====================
    # Reads
    # ====================

    async def get_order(self, order_id: str) -> Optional[Order]:
        """Get order by ID"""
        row = await self._fetch_row(
            f"SELECT * FROM {self.orders_table} WHERE order_id = $1", order_id
        )
        return Order.model_validate(row) if row else None

    async def get_order_by_number(self, order_number: int) -> Optional[Order]:
        """Get order by order number"""
        row = await self._fetch_row(
            f"SELECT * FROM {self.orders_table} WHERE order_number = $1", order_number
        )
        return Order.model_validate(row) if row else None

    async def list_user_orders(
        self,
        user_id: str,
        status: Optional[OrderStatusCode] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Order]:
        """List orders of a user, newest first"""
        conditions = ["user_id = $1"]
        params = [user_id]

        if status:
            params.append(status.value)
            conditions.append(f"status = ${len(params)}")

        query = (
            f"SELECT * FROM {self.orders_table} WHERE {' AND '.join(conditions)} "
            f"ORDER BY order_date DESC, order_number DESC"
        )
        if limit is not None:
            params.append(limit)
            query += f" LIMIT ${len(params)}"
        if offset:
            params.append(offset)
            query += f" OFFSET ${len(params)}"

        rows = await self._fetch(query, *params)
        return [Order.model_validate(row) for row in rows]

    async def get_order_items(self, order_id: str) -> List[OrderItem]:
        rows = await self._fetch(
            f"SELECT * FROM {self.items_table} WHERE order_id = $1 ORDER BY line_number",
            order_id,
        )
        return [OrderItem.model_validate(row) for row in rows]

    async def get_order_addresses(self, order_id: str) -> List[OrderAddress]:
        rows = await self._fetch(
            f"SELECT * FROM {self.addresses_table} WHERE order_id = $1 ORDER BY address_type DESC",
            order_id,
        )
        return [OrderAddress.model_validate(row) for row in rows]

    async def get_order_payment(self, order_id: str) -> Optional[OrderPayment]:
        row = await self._fetch_row(
            f"SELECT * FROM {self.payments_table} WHERE order_id = $1", order_id
        )
        return OrderPayment.model_validate(row) if row else None

    async def _fetch(self, query: str, *params) -> List[dict]:
        try:
            rows = await self.db.pool.fetch(query, *params)
            return [dict(row) for row in rows]
        except DB_ERRORS as e:
            logger.error(f"Order query failed: {e}")
            raise OrderPersistenceError(f"Order query failed: {e}") from e

    async def _fetch_row(self, query: str, *params) -> Optional[dict]:
        try:
            row = await self.db.pool.fetchrow(query, *params)
            return dict(row) if row else None
        except DB_ERRORS as e:
            logger.error(f"Order query failed: {e}")
            raise OrderPersistenceError(f"Order query failed: {e}") from e
