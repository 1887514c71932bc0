"""
Order Service Events Module

Exports all event-related functionality for order service
"""

from .models import (
    OrderCreatedEvent,
    OrderUpdatedEvent,
    OrderStatusChangedEvent,
    OrderItemStatusChangedEvent,
    OrderDeletedEvent,
)

from .publishers import (
    publish_order_created,
    publish_order_updated,
    publish_order_status_changed,
    publish_order_item_status_changed,
    publish_order_deleted,
)

__all__ = [
    # Event Models
    "OrderCreatedEvent",
    "OrderUpdatedEvent",
    "OrderStatusChangedEvent",
    "OrderItemStatusChangedEvent",
    "OrderDeletedEvent",
    # Publishers
    "publish_order_created",
    "publish_order_updated",
    "publish_order_status_changed",
    "publish_order_item_status_changed",
    "publish_order_deleted",
]
