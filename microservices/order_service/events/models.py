"""
Order Service Event Models

Pydantic models for events published by order service
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from decimal import Decimal


def _now() -> datetime:
    return datetime.now(timezone.utc)


class OrderCreatedEvent(BaseModel):
    """Event published when order is created"""
    order_id: str
    order_number: int
    user_id: str
    status: str
    subtotal: Decimal
    tax_total: Decimal
    shipping_total: Decimal
    grand_total: Decimal
    currency: str = "CAD"
    items: List[Dict[str, Any]] = []
    timestamp: datetime = Field(default_factory=_now)


class OrderUpdatedEvent(BaseModel):
    """Event published when order content is updated"""
    order_id: str
    order_number: int
    user_id: str
    updated_fields: List[str]
    grand_total: Optional[Decimal] = None
    timestamp: datetime = Field(default_factory=_now)


class OrderStatusChangedEvent(BaseModel):
    """Event published when the order status changes"""
    order_id: str
    order_number: int
    user_id: str
    old_status: str
    new_status: str
    timestamp: datetime = Field(default_factory=_now)


class OrderItemStatusChangedEvent(BaseModel):
    """Event published when one order line changes status"""
    order_id: str
    order_item_id: str
    user_id: str
    old_status: str
    new_status: str
    on_hold_reason: Optional[str] = None
    delivered_at: Optional[datetime] = None
    timestamp: datetime = Field(default_factory=_now)


class OrderDeletedEvent(BaseModel):
    """Event published when an order is deleted"""
    order_id: str
    order_number: int
    user_id: str
    timestamp: datetime = Field(default_factory=_now)
