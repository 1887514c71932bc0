"""
Order Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, List, Optional, Protocol, runtime_checkable
from dataclasses import dataclass
from decimal import Decimal

# Import only models (no I/O dependencies)
from .models import (
    CatalogItem, Order, OrderAddress, OrderItem, OrderPayment,
    OrderStatusCode, OrderStatusName,
)


# ============================================================================
# Custom Exceptions - defined here to avoid importing repository
# ============================================================================

class OrderServiceError(Exception):
    """Base exception for order service errors"""
    error_code = "ORDER_SERVICE_ERROR"


class OrderValidationError(OrderServiceError):
    """Order validation error"""
    error_code = "VALIDATION_ERROR"


class InvalidStatusTransitionError(OrderValidationError):
    """Status change not allowed from the current status"""
    error_code = "INVALID_STATUS_TRANSITION"


class OrderNotFoundError(OrderServiceError):
    """Order not found (or not owned by the caller)"""
    error_code = "ORDER_NOT_FOUND"


class UserNotFoundError(OrderServiceError):
    """Ordering user does not exist"""
    error_code = "USER_NOT_FOUND"


class CatalogItemNotFoundError(OrderServiceError):
    """Catalog item or variant missing or soft-deleted"""
    error_code = "ITEM_NOT_FOUND"


class OrderStatusNotFoundError(OrderServiceError):
    """Status code missing from the status lookup"""
    error_code = "ORDER_STATUS_NOT_FOUND"


class OrderAuthorizationError(OrderServiceError):
    """Caller may not modify the order in its current state"""
    error_code = "ORDER_FORBIDDEN"


class OrderConflictError(OrderAuthorizationError):
    """Order changed or vanished between the read and the locked write"""
    error_code = "ORDER_CONFLICT"


class InsufficientStockError(OrderServiceError):
    """Requested quantity exceeds the variant stock"""
    error_code = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        item_id: str,
        item_variant_id: str,
        available: int,
        requested: int,
        item_name: Optional[str] = None,
    ):
        self.item_id = item_id
        self.item_variant_id = item_variant_id
        self.available = available
        self.requested = requested
        label = item_name or item_id
        super().__init__(
            f"Insufficient stock for item '{label}'. "
            f"Available: {available}, Requested: {requested}"
        )


class OrderPersistenceError(OrderServiceError):
    """Storage fault; nothing of the operation was persisted"""
    error_code = "PERSISTENCE_ERROR"


# ============================================================================
# Value objects shared with the repository
# ============================================================================

@dataclass(frozen=True)
class StockChange:
    """
    Stock adjustment of one variant.

    Positive delta takes stock (conditional decrement), negative returns it.
    """
    item_id: str
    item_variant_id: str
    delta: int
    item_name: Optional[str] = None


# ============================================================================
# Repository Protocols
# ============================================================================

@runtime_checkable
class OrderRepositoryProtocol(Protocol):
    """
    Interface for Order Repository.

    Implementations must provide these methods.
    Used for dependency injection to enable testing.
    """

    async def create_order(
        self,
        order: Order,
        items: List[OrderItem],
        addresses: List[OrderAddress],
        payment: OrderPayment,
    ) -> Order:
        """
        Persist order, items, addresses and payment and take the stock,
        all in one transaction. Returns the order with its order_number.
        """
        ...

    async def get_order(self, order_id: str) -> Optional[Order]:
        """Get order by ID"""
        ...

    async def get_order_by_number(self, order_number: int) -> Optional[Order]:
        """Get order by order number"""
        ...

    async def list_user_orders(
        self,
        user_id: str,
        status: Optional[OrderStatusCode] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Order]:
        """List orders of a user, newest first"""
        ...

    async def get_order_items(self, order_id: str) -> List[OrderItem]:
        """Get order lines"""
        ...

    async def get_order_addresses(self, order_id: str) -> List[OrderAddress]:
        """Get shipping and billing addresses"""
        ...

    async def get_order_payment(self, order_id: str) -> Optional[OrderPayment]:
        """Get payment record"""
        ...

    async def update_order(
        self,
        order: Order,
        items: Optional[List[OrderItem]] = None,
        stock_changes: Optional[List[StockChange]] = None,
        expected: Optional[Order] = None,
    ) -> Order:
        """
        Write header, changed lines and stock adjustments in one transaction.

        The order row is locked first; when ``expected`` is given and the
        stored status or updated_at differ from it, OrderConflictError is
        raised and nothing is written.
        """
        ...

    async def delete_order(
        self,
        order_id: str,
        stock_changes: Optional[List[StockChange]] = None,
        expected: Optional[Order] = None,
    ) -> None:
        """Delete items, addresses, payment and order in one transaction, same lock and check as update"""
        ...

    async def check_connection(self) -> bool:
        """Database connectivity probe"""
        ...


@runtime_checkable
class OrderStatusRepositoryProtocol(Protocol):
    """Interface for the localized status lookup"""

    async def find_by_status_code(self, status_code: str) -> Optional[OrderStatusName]:
        ...

    async def get_by_id(self, status_id: int) -> Optional[OrderStatusName]:
        ...

    async def list_statuses(self) -> List[OrderStatusName]:
        ...


@runtime_checkable
class CatalogRepositoryProtocol(Protocol):
    """Interface for the catalog (items and variants)"""

    async def get_item(self, item_id: str) -> Optional[CatalogItem]:
        """Get item with all of its variants, deleted ones included"""
        ...


# ============================================================================
# Event Bus Protocol
# ============================================================================

@runtime_checkable
class EventBusProtocol(Protocol):
    """Interface for Event Bus - no I/O imports"""

    async def publish_event(self, event: Any) -> bool:
        """Publish an event"""
        ...


# ============================================================================
# Client Protocols
# ============================================================================

@runtime_checkable
class AccountClientProtocol(Protocol):
    """Interface for Account Service Client"""

    async def user_exists(self, user_id: str) -> bool:
        """Check that the user account exists"""
        ...


@runtime_checkable
class TaxRateProviderProtocol(Protocol):
    """Interface for the tax rate source"""

    async def get_tax_rate(
        self,
        country: str,
        province_state: str,
    ) -> Decimal:
        """Combined rate for a billing location, e.g. Decimal('0.13')"""
        ...
