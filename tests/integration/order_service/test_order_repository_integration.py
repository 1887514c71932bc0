"""
Order Repository Integration Tests

The five-table write, conditional stock decrement and rollback behaviour
against a real PostgreSQL.
"""

import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from microservices.order_service.models import AddressType, OrderItemStatusCode, OrderStatusCode
from microservices.order_service.protocols import (
    CatalogItemNotFoundError,
    InsufficientStockError,
    OrderConflictError,
    OrderNotFoundError,
    OrderPersistenceError,
    StockChange,
)

pytestmark = [pytest.mark.integration, pytest.mark.requires_db, pytest.mark.asyncio]


async def _stock(catalog_repo, item_id: str, variant_id: str) -> int:
    item = await catalog_repo.get_item(item_id)
    return item.find_variant(variant_id).stock_quantity


class TestCreateOrder:

    async def test_round_trip(self, order_repo, seed_variant, build_order, user_id):
        # Given
        item_id, variant_id = await seed_variant(price=Decimal("10.00"), stock=10)
        order, items, addresses, payment = build_order(user_id, [(item_id, variant_id, 4, Decimal("10.00"))])

        # When
        created = await order_repo.create_order(order, items, addresses, payment)

        # Then
        assert created.order_number is not None
        loaded = await order_repo.get_order(order.order_id)
        assert loaded.order_number == created.order_number
        assert loaded.grand_total == Decimal("55.20")
        assert loaded.tax_rate == Decimal("0.13")
        assert (await order_repo.get_order_by_number(created.order_number)).order_id == order.order_id

        lines = await order_repo.get_order_items(order.order_id)
        assert [(line.quantity, line.total_price) for line in lines] == [(4, Decimal("40.00"))]
        assert lines[0].status == OrderItemStatusCode.PENDING

        stored_addresses = await order_repo.get_order_addresses(order.order_id)
        assert [a.address_type for a in stored_addresses] == [AddressType.SHIPPING, AddressType.BILLING]
        assert (await order_repo.get_order_payment(order.order_id)).amount == Decimal("55.20")

    async def test_round_trip_keeps_line_order(self, order_repo, seed_variant, build_order, user_id):
        # Given: request order differs from alphabetical order
        first_item, first_variant = await seed_variant(stock=5)
        second_item, second_variant = await seed_variant(stock=5)
        third_item, third_variant = await seed_variant(stock=5)
        order, items, addresses, payment = build_order(user_id, [
            (first_item, first_variant, 1, Decimal("10.00"), "Wool Scarf"),
            (second_item, second_variant, 2, Decimal("30.00"), "Beanie"),
            (third_item, third_variant, 3, Decimal("5.00"), "Mittens"),
        ])

        # When
        await order_repo.create_order(order, items, addresses, payment)
        lines = await order_repo.get_order_items(order.order_id)

        # Then
        assert [line.order_item_id for line in lines] == [i.order_item_id for i in items]
        assert [line.name_en for line in lines] == ["Wool Scarf", "Beanie", "Mittens"]

    async def test_stock_taken(self, order_repo, catalog_repo, seed_variant, build_order, user_id):
        item_id, variant_id = await seed_variant(stock=5)

        await order_repo.create_order(*build_order(user_id, [(item_id, variant_id, 2, Decimal("10.00"))]))

        assert await _stock(catalog_repo, item_id, variant_id) == 3

    async def test_insufficient_stock_rolls_back(
        self, order_repo, catalog_repo, seed_variant, build_order, user_id
    ):
        # Given: the second line cannot be served
        first_item, first_variant = await seed_variant(stock=5)
        second_item, second_variant = await seed_variant(stock=1)
        order, items, addresses, payment = build_order(user_id, [
            (first_item, first_variant, 2, Decimal("10.00")),
            (second_item, second_variant, 2, Decimal("10.00")),
        ])

        # When
        with pytest.raises(InsufficientStockError) as exc_info:
            await order_repo.create_order(order, items, addresses, payment)

        # Then
        assert exc_info.value.available == 1
        assert await order_repo.get_order(order.order_id) is None
        assert await order_repo.get_order_items(order.order_id) == []
        assert await order_repo.get_order_payment(order.order_id) is None
        assert await _stock(catalog_repo, first_item, first_variant) == 5
        assert await _stock(catalog_repo, second_item, second_variant) == 1

    async def test_constraint_violation_leaves_no_rows(
        self, order_repo, catalog_repo, seed_variant, build_order, user_id
    ):
        # Given: two shipping addresses violate UNIQUE (order_id, address_type)
        item_id, variant_id = await seed_variant(stock=5)
        order, items, addresses, payment = build_order(user_id, [(item_id, variant_id, 1, Decimal("10.00"))])
        addresses[1] = addresses[1].model_copy(update={"address_type": AddressType.SHIPPING})

        # When
        with pytest.raises(OrderPersistenceError):
            await order_repo.create_order(order, items, addresses, payment)

        # Then
        assert await order_repo.get_order(order.order_id) is None
        assert await order_repo.get_order_addresses(order.order_id) == []
        assert await _stock(catalog_repo, item_id, variant_id) == 5

    async def test_concurrent_orders_never_oversell(
        self, order_repo, catalog_repo, seed_variant, build_order, user_id
    ):
        item_id, variant_id = await seed_variant(stock=3)
        first = build_order(user_id, [(item_id, variant_id, 2, Decimal("10.00"))])
        second = build_order(user_id, [(item_id, variant_id, 2, Decimal("10.00"))])

        results = await asyncio.gather(
            order_repo.create_order(*first),
            order_repo.create_order(*second),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientStockError)
        assert await _stock(catalog_repo, item_id, variant_id) == 1


class TestUpdateAndDelete:

    async def test_update_applies_line_changes_and_stock(
        self, order_repo, catalog_repo, seed_variant, build_order, user_id
    ):
        item_id, variant_id = await seed_variant(stock=10)
        order, items, addresses, payment = build_order(user_id, [(item_id, variant_id, 2, Decimal("10.00"))])
        await order_repo.create_order(order, items, addresses, payment)

        line = items[0].model_copy(update={"quantity": 5, "total_price": Decimal("50.00")})
        updated = await order_repo.update_order(
            order.model_copy(update={
                "subtotal": Decimal("50.00"), "tax_total": Decimal("6.50"),
                "grand_total": Decimal("66.50"), "notes": "bigger",
            }),
            [line],
            [StockChange(item_id, variant_id, 3)],
        )

        assert updated.grand_total == Decimal("66.50")
        assert updated.notes == "bigger"
        assert (await order_repo.get_order_items(order.order_id))[0].quantity == 5
        assert await _stock(catalog_repo, item_id, variant_id) == 5

    async def test_failed_update_keeps_previous_state(
        self, order_repo, catalog_repo, seed_variant, build_order, user_id
    ):
        item_id, variant_id = await seed_variant(stock=8)
        order, items, addresses, payment = build_order(user_id, [(item_id, variant_id, 2, Decimal("10.00"))])
        await order_repo.create_order(order, items, addresses, payment)

        with pytest.raises(InsufficientStockError):
            await order_repo.update_order(
                order.model_copy(update={"status": OrderStatusCode.PAID}),
                [items[0].model_copy(update={"quantity": 20})],
                [StockChange(item_id, variant_id, 18)],
            )

        assert (await order_repo.get_order(order.order_id)).status == OrderStatusCode.PENDING
        assert await _stock(catalog_repo, item_id, variant_id) == 6

    async def test_delete_removes_rows_and_restocks(
        self, order_repo, catalog_repo, seed_variant, build_order, user_id
    ):
        item_id, variant_id = await seed_variant(stock=10)
        order, items, addresses, payment = build_order(user_id, [(item_id, variant_id, 4, Decimal("10.00"))])
        await order_repo.create_order(order, items, addresses, payment)

        await order_repo.delete_order(order.order_id, [StockChange(item_id, variant_id, -4)])

        assert await order_repo.get_order(order.order_id) is None
        assert await order_repo.get_order_items(order.order_id) == []
        assert await order_repo.get_order_addresses(order.order_id) == []
        assert await order_repo.get_order_payment(order.order_id) is None
        assert await _stock(catalog_repo, item_id, variant_id) == 10

    async def test_delete_missing_order(self, order_repo, catalog_repo, seed_variant):
        item_id, variant_id = await seed_variant(stock=10)

        with pytest.raises(OrderNotFoundError):
            await order_repo.delete_order(
                "00000000-0000-0000-0000-000000000000", [StockChange(item_id, variant_id, -4)]
            )

        assert await _stock(catalog_repo, item_id, variant_id) == 10

    async def test_concurrent_cancels_restock_once(
        self, order_repo, catalog_repo, seed_variant, build_order, user_id
    ):
        # Given: both writers read the same Pending order
        item_id, variant_id = await seed_variant(stock=10)
        order, items, addresses, payment = build_order(user_id, [(item_id, variant_id, 4, Decimal("10.00"))])
        await order_repo.create_order(order, items, addresses, payment)
        snapshot = await order_repo.get_order(order.order_id)
        cancelled = snapshot.model_copy(update={"status": OrderStatusCode.CANCELLED})
        restock = [StockChange(item_id, variant_id, -4)]

        # When
        results = await asyncio.gather(
            order_repo.update_order(cancelled, None, restock, expected=snapshot),
            order_repo.update_order(cancelled, None, restock, expected=snapshot),
            return_exceptions=True,
        )

        # Then
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], OrderConflictError)
        assert await _stock(catalog_repo, item_id, variant_id) == 10
        assert (await order_repo.get_order(snapshot.order_id)).status == OrderStatusCode.CANCELLED

    async def test_concurrent_deletes_restock_once(
        self, order_repo, catalog_repo, seed_variant, build_order, user_id
    ):
        item_id, variant_id = await seed_variant(stock=10)
        order, items, addresses, payment = build_order(user_id, [(item_id, variant_id, 4, Decimal("10.00"))])
        await order_repo.create_order(order, items, addresses, payment)
        snapshot = await order_repo.get_order(order.order_id)
        restock = [StockChange(item_id, variant_id, -4)]

        results = await asyncio.gather(
            order_repo.delete_order(order.order_id, restock, expected=snapshot),
            order_repo.delete_order(order.order_id, restock, expected=snapshot),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], OrderNotFoundError)
        assert await _stock(catalog_repo, item_id, variant_id) == 10

    async def test_stale_snapshot_is_rejected(
        self, order_repo, catalog_repo, seed_variant, build_order, user_id
    ):
        item_id, variant_id = await seed_variant(stock=10)
        order, items, addresses, payment = build_order(user_id, [(item_id, variant_id, 2, Decimal("10.00"))])
        await order_repo.create_order(order, items, addresses, payment)
        snapshot = await order_repo.get_order(order.order_id)
        await order_repo.update_order(snapshot.model_copy(update={"notes": "first"}), expected=snapshot)

        with pytest.raises(OrderConflictError):
            await order_repo.update_order(
                snapshot.model_copy(update={"notes": "second"}),
                None,
                [StockChange(item_id, variant_id, 1)],
                expected=snapshot,
            )

        assert (await order_repo.get_order(order.order_id)).notes == "first"
        assert await _stock(catalog_repo, item_id, variant_id) == 8

    async def test_withdrawn_variant_is_not_found(
        self, db, order_repo, catalog_repo, seed_variant, build_order, user_id
    ):
        # Given: the variant is soft-deleted after the order was placed
        item_id, variant_id = await seed_variant(stock=10)
        order, items, addresses, payment = build_order(user_id, [(item_id, variant_id, 2, Decimal("10.00"))])
        await order_repo.create_order(order, items, addresses, payment)
        await db.execute(
            "UPDATE catalog.item_variants SET deleted = TRUE WHERE item_variant_id = $1", [variant_id]
        )

        # When
        with pytest.raises(CatalogItemNotFoundError, match=variant_id):
            await order_repo.update_order(
                await order_repo.get_order(order.order_id),
                [items[0].model_copy(update={"quantity": 3})],
                [StockChange(item_id, variant_id, 1)],
            )

        # Then
        assert (await order_repo.get_order_items(order.order_id))[0].quantity == 2
        assert await _stock(catalog_repo, item_id, variant_id) == 8


class TestQueries:

    async def test_list_newest_first_with_filter(
        self, order_repo, seed_variant, build_order, user_id
    ):
        item_id, variant_id = await seed_variant(stock=10)
        base = datetime(2026, 2, 1, tzinfo=timezone.utc)
        orders = []
        for days in range(3):
            parts = build_order(user_id, [(item_id, variant_id, 1, Decimal("10.00"))], order_date=base + timedelta(days=days))
            orders.append(await order_repo.create_order(*parts))
        await order_repo.update_order(orders[0].model_copy(update={"status": OrderStatusCode.PAID}))

        listed = await order_repo.list_user_orders(user_id)
        paid = await order_repo.list_user_orders(user_id, status=OrderStatusCode.PAID)
        page = await order_repo.list_user_orders(user_id, limit=1, offset=1)

        assert [o.order_id for o in listed] == [o.order_id for o in reversed(orders)]
        assert [o.order_id for o in paid] == [orders[0].order_id]
        assert [o.order_id for o in page] == [orders[1].order_id]

    async def test_deleted_catalog_variant_is_flagged(self, db, catalog_repo, seed_variant):
        item_id, variant_id = await seed_variant()
        await db.execute(
            "UPDATE catalog.item_variants SET deleted = TRUE WHERE item_variant_id = $1", [variant_id]
        )

        item = await catalog_repo.get_item(item_id)

        assert item.find_variant(variant_id).deleted is True

    async def test_status_names(self, status_repo):
        statuses = await status_repo.list_statuses()
        shipped = await status_repo.find_by_status_code("Shipped")

        assert [s.status_code for s in statuses][:2] == ["Pending", "Paid"]
        assert shipped.name_fr == "Expédiée"
        assert await status_repo.find_by_status_code("Lost") is None

    async def test_health_check(self, order_repo):
        assert await order_repo.check_connection() is True
