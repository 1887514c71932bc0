"""
Order Service Event Publishers

Functions to publish events from order service. Publishing is best effort:
a failure is logged and reported as False, never raised.
"""

import logging
from typing import Optional, List

from pydantic import BaseModel

from core.nats_client import Event, EventType, ServiceSource
from ..models import OrderDetail, OrderItem
from .models import (
    OrderCreatedEvent,
    OrderUpdatedEvent,
    OrderStatusChangedEvent,
    OrderItemStatusChangedEvent,
    OrderDeletedEvent,
)

logger = logging.getLogger(__name__)


async def _publish(event_bus, event_type: EventType, payload: BaseModel, order_id: str) -> bool:
    if not event_bus:
        logger.warning(f"Event bus not available, skipping {event_type.value} event")
        return False

    try:
        event = Event(
            event_type=event_type,
            source=ServiceSource.ORDER_SERVICE,
            data=payload.model_dump(mode='json'),
            subject=order_id,
        )

        published = await event_bus.publish_event(event)
        if published is False:
            logger.error(f"❌ Event bus rejected {event_type.value} event for order {order_id}")
            return False
        logger.info(f"✅ Published {event_type.value} event for order {order_id}")
        return True

    except Exception as e:
        logger.error(f"❌ Failed to publish {event_type.value} event: {e}")
        return False


async def publish_order_created(event_bus, order: OrderDetail, currency: str = "CAD") -> bool:
    """Publish order.created event"""
    payload = OrderCreatedEvent(
        order_id=order.order_id,
        order_number=order.order_number,
        user_id=order.user_id,
        status=order.status_code.value,
        subtotal=order.subtotal,
        tax_total=order.tax_total,
        shipping_total=order.shipping_total,
        grand_total=order.grand_total,
        currency=currency,
        items=[
            {
                "item_id": item.item_id,
                "item_variant_id": item.item_variant_id,
                "quantity": item.quantity,
                "total_price": str(item.total_price),
            }
            for item in order.items
        ],
    )
    return await _publish(event_bus, EventType.ORDER_CREATED, payload, order.order_id)


async def publish_order_updated(
    event_bus,
    order: OrderDetail,
    updated_fields: List[str],
) -> bool:
    """Publish order.updated event"""
    payload = OrderUpdatedEvent(
        order_id=order.order_id,
        order_number=order.order_number,
        user_id=order.user_id,
        updated_fields=updated_fields,
        grand_total=order.grand_total,
    )
    return await _publish(event_bus, EventType.ORDER_UPDATED, payload, order.order_id)


async def publish_order_status_changed(
    event_bus,
    order: OrderDetail,
    old_status: str,
) -> bool:
    """Publish order.status_changed event"""
    payload = OrderStatusChangedEvent(
        order_id=order.order_id,
        order_number=order.order_number,
        user_id=order.user_id,
        old_status=old_status,
        new_status=order.status_code.value,
    )
    return await _publish(event_bus, EventType.ORDER_STATUS_CHANGED, payload, order.order_id)


async def publish_order_item_status_changed(
    event_bus,
    user_id: str,
    item: OrderItem,
    old_status: str,
) -> bool:
    """Publish order.item_status_changed event"""
    payload = OrderItemStatusChangedEvent(
        order_id=item.order_id,
        order_item_id=item.order_item_id,
        user_id=user_id,
        old_status=old_status,
        new_status=item.status.value,
        on_hold_reason=item.on_hold_reason,
        delivered_at=item.delivered_at,
    )
    return await _publish(event_bus, EventType.ORDER_ITEM_STATUS_CHANGED, payload, item.order_id)


async def publish_order_deleted(
    event_bus,
    order_id: str,
    order_number: int,
    user_id: str,
) -> bool:
    """Publish order.deleted event"""
    payload = OrderDeletedEvent(order_id=order_id, order_number=order_number, user_id=user_id)
    return await _publish(event_bus, EventType.ORDER_DELETED, payload, order_id)
