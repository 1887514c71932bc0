"""
Order Status Machine

Closed order and order-line status sets, their allowed transitions and the
modify gate applied before any update or delete.

Order status and line status are independent: changing one never changes
the other.
"""

import logging
from typing import Dict, FrozenSet, Optional

from .models import Order, OrderItemStatusCode, OrderStatusCode
from .protocols import (
    InvalidStatusTransitionError,
    OrderAuthorizationError,
    OrderValidationError,
)

logger = logging.getLogger(__name__)


ORDER_TRANSITIONS: Dict[OrderStatusCode, FrozenSet[OrderStatusCode]] = {
    OrderStatusCode.PENDING: frozenset({
        OrderStatusCode.PAID, OrderStatusCode.PROCESSING, OrderStatusCode.CANCELLED,
    }),
    OrderStatusCode.PAID: frozenset({OrderStatusCode.PROCESSING, OrderStatusCode.CANCELLED}),
    OrderStatusCode.PROCESSING: frozenset({OrderStatusCode.SHIPPED, OrderStatusCode.CANCELLED}),
    OrderStatusCode.SHIPPED: frozenset({OrderStatusCode.DELIVERED}),
    OrderStatusCode.DELIVERED: frozenset(),
    OrderStatusCode.CANCELLED: frozenset(),
}

ITEM_TRANSITIONS: Dict[OrderItemStatusCode, FrozenSet[OrderItemStatusCode]] = {
    OrderItemStatusCode.PENDING: frozenset({
        OrderItemStatusCode.ON_HOLD, OrderItemStatusCode.SHIPPED,
    }),
    # OnHold -> OnHold replaces the reason
    OrderItemStatusCode.ON_HOLD: frozenset({
        OrderItemStatusCode.PENDING, OrderItemStatusCode.ON_HOLD, OrderItemStatusCode.SHIPPED,
    }),
    OrderItemStatusCode.SHIPPED: frozenset({OrderItemStatusCode.DELIVERED}),
    OrderItemStatusCode.DELIVERED: frozenset(),
}

MODIFIABLE_STATUSES = frozenset({
    OrderStatusCode.PENDING, OrderStatusCode.PAID, OrderStatusCode.PROCESSING,
})

TERMINAL_STATUSES = frozenset({OrderStatusCode.DELIVERED, OrderStatusCode.CANCELLED})

# Lines in these states have left the warehouse; cancelling does not restock them
SHIPPED_ITEM_STATUSES = frozenset({OrderItemStatusCode.SHIPPED, OrderItemStatusCode.DELIVERED})


def parse_order_status(code: Optional[str]) -> OrderStatusCode:
    """Parse a status code string; unknown codes are a validation error"""
    try:
        return OrderStatusCode((code or "").strip())
    except ValueError:
        raise OrderValidationError(f"Unknown order status '{code}'.")


def parse_item_status(code: Optional[str]) -> OrderItemStatusCode:
    """Parse an order line status code string"""
    try:
        return OrderItemStatusCode((code or "").strip())
    except ValueError:
        raise OrderValidationError(f"Unknown order item status '{code}'.")


def is_modifiable(status: OrderStatusCode) -> bool:
    return status in MODIFIABLE_STATUSES


def is_terminal(status: OrderStatusCode) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: OrderStatusCode, target: OrderStatusCode) -> bool:
    return target in ORDER_TRANSITIONS[current]


def ensure_transition(current: OrderStatusCode, target: OrderStatusCode) -> None:
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(
            f"Cannot change order status from {current.value} to {target.value}."
        )


def ensure_item_transition(current: OrderItemStatusCode, target: OrderItemStatusCode) -> None:
    if target not in ITEM_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(
            f"Cannot change order item status from {current.value} to {target.value}."
        )


def ensure_can_modify(order: Optional[Order], user_id: str, status_change: bool = False) -> Order:
    """
    Modify gate.

    Args:
        order: Order as loaded, or None when it does not exist
        user_id: Caller
        status_change: True for order/line status updates, which only need
            a non-terminal order; content updates and delete need a
            modifiable status

    Returns:
        The order, for chaining

    Raises:
        OrderAuthorizationError: missing, not owned, or locked
    """
    if order is None or order.user_id != user_id:
        logger.warning(f"User {user_id} may not modify order {order.order_id if order else '<missing>'}")
        raise OrderAuthorizationError("You are not allowed to modify this order.")

    if status_change:
        allowed = not is_terminal(order.status)
    else:
        allowed = is_modifiable(order.status)

    if not allowed:
        logger.warning(f"Order {order.order_id} is {order.status.value} and cannot be modified")
        raise OrderAuthorizationError(
            f"Order cannot be modified in status {order.status.value}."
        )
    return order
