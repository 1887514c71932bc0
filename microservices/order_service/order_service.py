"""
Order Service Business Logic

Orchestrates validation, catalog snapshots, pricing, persistence, the status
machine and event publishing for marketplace orders.
"""

from typing import Optional, List, Dict
from datetime import datetime, timezone
import logging
import uuid

from .models import (
    AddressRequest, AddressType, CreateOrderRequest, Order, OrderAddress,
    OrderDeleteResponse, OrderDetail, OrderItem, OrderItemStatusCode,
    OrderPayment, OrderStatusCode, OrderStatusName, UpdateOrderRequest,
)
from .protocols import (
    AccountClientProtocol,
    CatalogRepositoryProtocol,
    EventBusProtocol,
    OrderNotFoundError,
    OrderPersistenceError,
    OrderRepositoryProtocol,
    OrderServiceError,
    OrderStatusNotFoundError,
    OrderStatusRepositoryProtocol,
    OrderValidationError,
    StockChange,
    TaxRateProviderProtocol,
    UserNotFoundError,
)
from .order_validator import OrderValidator
from .catalog_snapshot import CatalogSnapshotReader
from .pricing import PricingEngine
from .order_assembler import OrderAssembler
from . import status_machine
from .events.publishers import (
    publish_order_created,
    publish_order_updated,
    publish_order_status_changed,
    publish_order_item_status_changed,
    publish_order_deleted,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class OrderService:
    """
    Order management business logic service

    Every read and write is scoped to the calling user. Typed
    OrderServiceError subclasses propagate unchanged; anything else is
    logged and raised as OrderPersistenceError.
    """

    def __init__(
        self,
        repository: OrderRepositoryProtocol,
        status_repository: OrderStatusRepositoryProtocol,
        catalog_repository: CatalogRepositoryProtocol,
        tax_provider: TaxRateProviderProtocol,
        event_bus: Optional[EventBusProtocol] = None,
        account_client: Optional[AccountClientProtocol] = None,
        pricing: Optional[PricingEngine] = None,
        currency: str = "CAD",
    ):
        """
        Initialize Order Service

        Args:
            repository: Order persistence
            status_repository: Localized status names
            catalog_repository: Catalog items and variants
            tax_provider: Tax rate source for the billing location
            event_bus: NATS event bus instance (optional)
            account_client: Account service client used to check the user exists
            pricing: Pricing engine (default policy when omitted)
            currency: Currency of all amounts
        """
        self.repository = repository
        self.status_repository = status_repository
        self.catalog_repository = catalog_repository
        self.tax_provider = tax_provider
        self.event_bus = event_bus
        self.account_client = account_client
        self.pricing = pricing or PricingEngine()
        self.currency = currency

        self.validator = OrderValidator()
        self.snapshot_reader = CatalogSnapshotReader(catalog_repository)
        self.assembler = OrderAssembler()
        self._status_names: Optional[Dict[str, OrderStatusName]] = None

    # ====================
    # Create
    # ====================

    async def create_order(self, user_id: str, request: CreateOrderRequest) -> OrderDetail:
        """
        Create a new order

        Validation, user check, catalog snapshots and pricing all happen
        before the single write transaction, so any failure leaves no rows.

        Raises:
            OrderValidationError: malformed request
            UserNotFoundError: unknown user
            CatalogItemNotFoundError: unknown or deleted item/variant
            InsufficientStockError: not enough stock for a line
            OrderPersistenceError: storage failure
        """
        try:
            self.validator.validate_create_request(request)

            if self.account_client is not None:
                if not await self.account_client.user_exists(user_id):
                    raise UserNotFoundError(f"User with ID {user_id} not found.")

            snapshots = await self.snapshot_reader.snapshot_lines(request.items)

            billing = request.billing_address
            tax_rate = await self.tax_provider.get_tax_rate(billing.country, billing.province_state)
            totals = self.pricing.price_lines(snapshots, tax_rate)

            now = _now()
            order_id = _new_id()
            order = Order(
                order_id=order_id,
                user_id=user_id,
                order_date=now,
                status=OrderStatusCode.PENDING,
                subtotal=totals.subtotal,
                tax_total=totals.tax_total,
                shipping_total=totals.shipping_total,
                grand_total=totals.grand_total,
                tax_rate=totals.tax_rate,
                notes=request.notes,
            )
            items = [
                OrderItem(
                    order_item_id=_new_id(),
                    order_id=order_id,
                    item_id=snap.item_id,
                    item_variant_id=snap.item_variant_id,
                    name_en=snap.name_en,
                    name_fr=snap.name_fr,
                    variant_name_en=snap.variant_name_en,
                    variant_name_fr=snap.variant_name_fr,
                    quantity=snap.quantity,
                    unit_price=snap.unit_price,
                    total_price=line_total,
                )
                for snap, line_total in zip(snapshots, totals.line_totals)
            ]
            addresses = [
                self._to_order_address(order_id, AddressType.SHIPPING, request.shipping_address),
                self._to_order_address(order_id, AddressType.BILLING, request.billing_address),
            ]
            payment = OrderPayment(
                payment_id=_new_id(),
                order_id=order_id,
                payment_method_id=request.payment.payment_method_id,
                amount=totals.grand_total,
                provider=request.payment.provider.strip(),
                provider_reference=request.payment.provider_reference,
                paid_at=now if request.payment.provider_reference else None,
            )

            created = await self.repository.create_order(order, items, addresses, payment)
            detail = self.assembler.assemble(
                created, items, addresses, payment, await self._get_status_names()
            )

            logger.info(
                f"Order {detail.order_id} (#{detail.order_number}) created for user {user_id}: "
                f"{len(items)} lines, grand total {detail.grand_total} {self.currency}"
            )
            await publish_order_created(self.event_bus, detail, currency=self.currency)
            return detail

        except OrderServiceError as e:
            logger.warning(f"Order creation rejected for user {user_id}: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to create order for user {user_id}: {e}", exc_info=True)
            raise OrderPersistenceError(f"Failed to create order: {e}") from e

    # ====================
    # Queries
    # ====================

    async def get_order(self, user_id: str, order_id: str) -> OrderDetail:
        """Get one of the caller's orders by ID"""
        try:
            order = await self.repository.get_order(order_id)
            if order is None or order.user_id != user_id:
                raise OrderNotFoundError(f"Order with ID {order_id} not found.")
            return await self._load_detail(order)
        except OrderServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to get order {order_id}: {e}", exc_info=True)
            raise OrderPersistenceError(f"Failed to get order: {e}") from e

    async def get_order_by_number(self, user_id: str, order_number: int) -> OrderDetail:
        """Get one of the caller's orders by order number"""
        try:
            order = await self.repository.get_order_by_number(order_number)
            if order is None or order.user_id != user_id:
                raise OrderNotFoundError(f"Order #{order_number} not found.")
            return await self._load_detail(order)
        except OrderServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to get order #{order_number}: {e}", exc_info=True)
            raise OrderPersistenceError(f"Failed to get order: {e}") from e

    async def list_orders(
        self,
        user_id: str,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[OrderDetail]:
        """List the caller's orders, newest first, optionally by status code"""
        try:
            status_code = status_machine.parse_order_status(status) if status else None
            if limit is not None and limit <= 0:
                raise OrderValidationError("Limit must be greater than zero.")
            if offset < 0:
                raise OrderValidationError("Offset cannot be negative.")

            orders = await self.repository.list_user_orders(
                user_id, status=status_code, limit=limit, offset=offset
            )
            return [await self._load_detail(order) for order in orders]
        except OrderServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to list orders for user {user_id}: {e}", exc_info=True)
            raise OrderPersistenceError(f"Failed to list orders: {e}") from e

    async def list_order_statuses(self) -> List[OrderStatusName]:
        """Localized names of every order status"""
        try:
            return await self.status_repository.list_statuses()
        except OrderServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to list order statuses: {e}", exc_info=True)
            raise OrderPersistenceError(f"Failed to list order statuses: {e}") from e

    async def get_order_status(self, status_code: str) -> OrderStatusName:
        """Localized names of one order status"""
        try:
            status = await self.status_repository.find_by_status_code(status_code)
            if status is None:
                raise OrderStatusNotFoundError(f"Order status '{status_code}' not found.")
            return status
        except OrderServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to get order status {status_code}: {e}", exc_info=True)
            raise OrderPersistenceError(f"Failed to get order status: {e}") from e

    # ====================
    # Updates
    # ====================

    async def update_order(
        self,
        user_id: str,
        order_id: str,
        request: UpdateOrderRequest,
    ) -> OrderDetail:
        """
        Update status, notes and lines of a modifiable order

        A quantity change recomputes the line total and the order totals
        with the tax rate frozen at creation, and takes or returns the
        stock difference in the same transaction.
        """
        try:
            order = status_machine.ensure_can_modify(
                await self.repository.get_order(order_id), user_id
            )
            self.validator.validate_update_request(request)

            old_status = order.status
            changes: Dict = {}
            updated_fields: List[str] = []
            stock_changes: List[StockChange] = []

            if request.status is not None:
                target = status_machine.parse_order_status(request.status)
                if target != order.status:
                    status_machine.ensure_transition(order.status, target)
                    changes["status"] = target
                    updated_fields.append("status")

            if request.notes is not None and request.notes != order.notes:
                changes["notes"] = request.notes
                updated_fields.append("notes")

            items = await self.repository.get_order_items(order_id)
            changed_items: Dict[str, OrderItem] = {}
            quantity_changed = False

            if request.items:
                by_id = {item.order_item_id: item for item in items}
                for update in request.items:
                    item = changed_items.get(update.order_item_id) or by_id.get(update.order_item_id)
                    if item is None:
                        raise OrderNotFoundError(f"Order item with ID {update.order_item_id} not found.")

                    if update.quantity is not None and update.quantity != item.quantity:
                        if item.status in status_machine.SHIPPED_ITEM_STATUSES:
                            raise OrderValidationError(
                                f"Cannot change the quantity of {item.status.value} item {item.order_item_id}."
                            )
                        stock_changes.append(StockChange(
                            item.item_id, item.item_variant_id,
                            update.quantity - item.quantity, item.name_en,
                        ))
                        item = item.model_copy(update={
                            "quantity": update.quantity,
                            "total_price": self.pricing.line_total(item.unit_price, update.quantity),
                        })
                        quantity_changed = True

                    if update.status is not None:
                        item = self._apply_item_status(
                            item,
                            status_machine.parse_item_status(update.status),
                            update.on_hold_reason,
                        )
                    elif update.on_hold_reason is not None and item.status == OrderItemStatusCode.ON_HOLD:
                        item = self._apply_item_status(item, OrderItemStatusCode.ON_HOLD, update.on_hold_reason)

                    changed_items[item.order_item_id] = item

                if changed_items:
                    updated_fields.append("items")

            if quantity_changed:
                current = [changed_items.get(i.order_item_id, i) for i in items]
                totals = self.pricing.price_lines(
                    current, order.tax_rate, shipping_total=order.shipping_total
                )
                changes.update(
                    subtotal=totals.subtotal,
                    tax_total=totals.tax_total,
                    grand_total=totals.grand_total,
                )
                updated_fields.append("totals")

            if changes.get("status") == OrderStatusCode.CANCELLED:
                final_items = [changed_items.get(i.order_item_id, i) for i in items]
                stock_changes = self._merge_stock_changes(
                    stock_changes, self._restock_changes(final_items)
                )

            if not updated_fields:
                logger.info(f"Order {order_id} update had no changes")
                return await self._load_detail(order)

            updated = await self.repository.update_order(
                order.model_copy(update=changes),
                list(changed_items.values()),
                stock_changes,
                expected=order,
            )
            detail = await self._load_detail(updated)

            logger.info(f"Order {order_id} updated by user {user_id}: {', '.join(updated_fields)}")
            await publish_order_updated(self.event_bus, detail, updated_fields)
            if "status" in changes:
                await publish_order_status_changed(self.event_bus, detail, old_status.value)
            return detail

        except OrderServiceError as e:
            logger.warning(f"Order {order_id} update rejected: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to update order {order_id}: {e}", exc_info=True)
            raise OrderPersistenceError(f"Failed to update order: {e}") from e

    async def update_order_status(self, user_id: str, order_id: str, status_code: str) -> OrderDetail:
        """
        Move the order to a new status

        Line statuses are left as they are. Cancelling returns the stock of
        every line that has not shipped.
        """
        try:
            order = status_machine.ensure_can_modify(
                await self.repository.get_order(order_id), user_id, status_change=True
            )
            target = status_machine.parse_order_status(status_code)
            status_machine.ensure_transition(order.status, target)

            stock_changes: List[StockChange] = []
            if target == OrderStatusCode.CANCELLED:
                stock_changes = self._restock_changes(await self.repository.get_order_items(order_id))

            updated = await self.repository.update_order(
                order.model_copy(update={"status": target}), None, stock_changes, expected=order
            )
            detail = await self._load_detail(updated)

            logger.info(f"Order {order_id} status {order.status.value} -> {target.value}")
            await publish_order_status_changed(self.event_bus, detail, order.status.value)
            return detail

        except OrderServiceError as e:
            logger.warning(f"Order {order_id} status change rejected: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to update status of order {order_id}: {e}", exc_info=True)
            raise OrderPersistenceError(f"Failed to update order status: {e}") from e

    async def update_order_item_status(
        self,
        user_id: str,
        order_id: str,
        order_item_id: str,
        status: str,
        on_hold_reason: Optional[str] = None,
    ) -> OrderDetail:
        """Set the status of one order line; the order status is not recomputed"""
        try:
            order = status_machine.ensure_can_modify(
                await self.repository.get_order(order_id), user_id, status_change=True
            )
            target = status_machine.parse_item_status(status)

            items = await self.repository.get_order_items(order_id)
            item = next((i for i in items if i.order_item_id == order_item_id), None)
            if item is None:
                raise OrderNotFoundError(f"Order item with ID {order_item_id} not found.")

            updated_item = self._apply_item_status(item, target, on_hold_reason)
            updated = await self.repository.update_order(order, [updated_item], None, expected=order)
            detail = await self._load_detail(updated)

            logger.info(
                f"Order {order_id} item {order_item_id} status "
                f"{item.status.value} -> {updated_item.status.value}"
            )
            await publish_order_item_status_changed(
                self.event_bus, user_id, updated_item, item.status.value
            )
            return detail

        except OrderServiceError as e:
            logger.warning(f"Order {order_id} item {order_item_id} status change rejected: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to update item {order_item_id} of order {order_id}: {e}", exc_info=True)
            raise OrderPersistenceError(f"Failed to update order item status: {e}") from e

    # ====================
    # Delete
    # ====================

    async def delete_order(self, user_id: str, order_id: str) -> OrderDeleteResponse:
        """Delete a modifiable order with its lines, addresses and payment"""
        try:
            order = status_machine.ensure_can_modify(
                await self.repository.get_order(order_id), user_id
            )
            items = await self.repository.get_order_items(order_id)

            await self.repository.delete_order(
                order_id, self._restock_changes(items), expected=order
            )

            logger.info(f"Order {order_id} (#{order.order_number}) deleted by user {user_id}")
            await publish_order_deleted(self.event_bus, order_id, order.order_number, user_id)
            return OrderDeleteResponse(
                order_id=order_id,
                order_number=order.order_number,
                message=f"Order #{order.order_number} deleted successfully.",
            )

        except OrderServiceError as e:
            logger.warning(f"Order {order_id} deletion rejected: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to delete order {order_id}: {e}", exc_info=True)
            raise OrderPersistenceError(f"Failed to delete order: {e}") from e

    async def health_check(self) -> bool:
        return await self.repository.check_connection()

    # ====================
    # Helpers
    # ====================

    async def _get_status_names(self) -> Dict[str, OrderStatusName]:
        if self._status_names is None:
            statuses = await self.status_repository.list_statuses()
            self._status_names = {s.status_code: s for s in statuses}
        return self._status_names

    async def _load_detail(self, order: Order) -> OrderDetail:
        items = await self.repository.get_order_items(order.order_id)
        addresses = await self.repository.get_order_addresses(order.order_id)
        payment = await self.repository.get_order_payment(order.order_id)
        return self.assembler.assemble(
            order, items, addresses, payment, await self._get_status_names()
        )

    def _apply_item_status(
        self,
        item: OrderItem,
        target: OrderItemStatusCode,
        on_hold_reason: Optional[str],
    ) -> OrderItem:
        status_machine.ensure_item_transition(item.status, target)

        changes = {"status": target}
        if target == OrderItemStatusCode.ON_HOLD:
            if on_hold_reason is None or not on_hold_reason.strip():
                raise OrderValidationError("An on-hold reason is required.")
            changes["on_hold_reason"] = on_hold_reason.strip()
        else:
            changes["on_hold_reason"] = None

        if target == OrderItemStatusCode.DELIVERED:
            changes["delivered_at"] = _now()

        return item.model_copy(update=changes)

    @staticmethod
    def _restock_changes(items: List[OrderItem]) -> List[StockChange]:
        """Stock returned for every line that has not shipped"""
        return [
            StockChange(item.item_id, item.item_variant_id, -item.quantity, item.name_en)
            for item in items
            if item.status not in status_machine.SHIPPED_ITEM_STATUSES
        ]

    @staticmethod
    def _merge_stock_changes(*groups: List[StockChange]) -> List[StockChange]:
        totals: Dict[str, StockChange] = {}
        for group in groups:
            for change in group:
                previous = totals.get(change.item_variant_id)
                delta = change.delta + (previous.delta if previous else 0)
                totals[change.item_variant_id] = StockChange(
                    change.item_id, change.item_variant_id, delta, change.item_name
                )
        return [c for c in totals.values() if c.delta != 0]

    @staticmethod
    def _to_order_address(order_id: str, address_type: AddressType, address: AddressRequest) -> OrderAddress:
        return OrderAddress(
            address_id=_new_id(),
            order_id=order_id,
            address_type=address_type,
            full_name=address.full_name.strip(),
            address_line1=address.address_line1.strip(),
            address_line2=address.address_line2,
            address_line3=address.address_line3,
            city=address.city.strip(),
            province_state=address.province_state.strip(),
            postal_code=address.postal_code.strip(),
            country=address.country.strip(),
        )
