"""
Order Service Data Models

Pydantic models for marketplace orders: persisted rows, catalog snapshots,
request payloads and the assembled read model.
"""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum


class OrderStatusCode(str, Enum):
    """Order status enumeration"""
    PENDING = "Pending"
    PAID = "Paid"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class OrderItemStatusCode(str, Enum):
    """Order line status enumeration"""
    PENDING = "Pending"
    ON_HOLD = "OnHold"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"


class AddressType(str, Enum):
    """Order address role"""
    SHIPPING = "Shipping"
    BILLING = "Billing"


# Core Order Models

class Order(BaseModel):
    """Order header row"""
    model_config = ConfigDict(from_attributes=True)

    order_id: str
    user_id: str
    order_number: Optional[int] = None  # assigned by the database
    order_date: datetime
    status: OrderStatusCode = OrderStatusCode.PENDING
    subtotal: Decimal
    tax_total: Decimal
    shipping_total: Decimal
    grand_total: Decimal
    tax_rate: Decimal
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderItem(BaseModel):
    """Order line with the catalog snapshot frozen at creation"""
    model_config = ConfigDict(from_attributes=True)

    order_item_id: str
    order_id: str
    item_id: str
    item_variant_id: str
    name_en: str
    name_fr: Optional[str] = None
    variant_name_en: Optional[str] = None
    variant_name_fr: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    status: OrderItemStatusCode = OrderItemStatusCode.PENDING
    delivered_at: Optional[datetime] = None
    on_hold_reason: Optional[str] = None


class OrderAddress(BaseModel):
    """Shipping or billing address copied onto the order"""
    model_config = ConfigDict(from_attributes=True)

    address_id: str
    order_id: str
    address_type: AddressType
    full_name: str
    address_line1: str
    address_line2: Optional[str] = None
    address_line3: Optional[str] = None
    city: str
    province_state: str
    postal_code: str
    country: str


class OrderPayment(BaseModel):
    """Payment record of an order"""
    model_config = ConfigDict(from_attributes=True)

    payment_id: str
    order_id: str
    payment_method_id: Optional[str] = None
    amount: Decimal
    provider: str
    provider_reference: Optional[str] = None
    paid_at: Optional[datetime] = None


class OrderStatusName(BaseModel):
    """Localized names of an order status"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    status_code: str
    name_en: str
    name_fr: str


# Catalog Models (read-only view of the shared catalog)

class CatalogItemVariant(BaseModel):
    """Sellable variant of a catalog item"""
    item_variant_id: str
    item_id: str
    name_en: Optional[str] = None
    name_fr: Optional[str] = None
    price: Decimal
    stock_quantity: int = 0
    deleted: bool = False


class CatalogItem(BaseModel):
    """Catalog item with its variants"""
    item_id: str
    name_en: str
    name_fr: Optional[str] = None
    deleted: bool = False
    variants: List[CatalogItemVariant] = []

    def find_variant(self, item_variant_id: str) -> Optional[CatalogItemVariant]:
        for variant in self.variants:
            if variant.item_variant_id == item_variant_id:
                return variant
        return None


class LineSnapshot(BaseModel):
    """Immutable catalog state of one requested line"""
    model_config = ConfigDict(frozen=True)

    item_id: str
    item_variant_id: str
    quantity: int
    unit_price: Decimal
    name_en: str
    name_fr: Optional[str] = None
    variant_name_en: Optional[str] = None
    variant_name_fr: Optional[str] = None


# Request Models
#
# Field rules (required values, positive quantities) are enforced by
# OrderValidator so that they surface as OrderValidationError (400).

class OrderItemRequest(BaseModel):
    """One requested line"""
    item_id: str = Field(default="", description="Catalog item ID")
    item_variant_id: str = Field(default="", description="Catalog item variant ID")
    quantity: int = Field(default=0, description="Requested quantity")


class AddressRequest(BaseModel):
    """Address payload"""
    full_name: str = ""
    address_line1: str = ""
    address_line2: Optional[str] = None
    address_line3: Optional[str] = None
    city: str = ""
    province_state: str = ""
    postal_code: str = ""
    country: str = ""


class PaymentRequest(BaseModel):
    """Payment selector"""
    provider: str = Field(default="", description="Payment provider, e.g. stripe")
    payment_method_id: Optional[str] = Field(None, description="Stored payment method of the user")
    provider_reference: Optional[str] = Field(None, description="Provider transaction reference")


class CreateOrderRequest(BaseModel):
    """Create order request"""
    items: List[OrderItemRequest] = Field(default_factory=list)
    shipping_address: Optional[AddressRequest] = None
    billing_address: Optional[AddressRequest] = None
    payment: Optional[PaymentRequest] = None
    notes: Optional[str] = Field(None, max_length=2000)


class UpdateOrderItemRequest(BaseModel):
    """Per-line update"""
    order_item_id: str = ""
    quantity: Optional[int] = None
    status: Optional[str] = None
    on_hold_reason: Optional[str] = None


class UpdateOrderRequest(BaseModel):
    """Update order request"""
    status: Optional[str] = Field(None, description="New order status code")
    notes: Optional[str] = Field(None, max_length=2000)
    items: List[UpdateOrderItemRequest] = Field(default_factory=list)


class OrderStatusUpdateRequest(BaseModel):
    """Update order status request"""
    status_code: str

    @field_validator('status_code')
    @classmethod
    def strip_code(cls, v):
        return v.strip()


class OrderItemStatusUpdateRequest(BaseModel):
    """Update order line status request"""
    status: str
    on_hold_reason: Optional[str] = None


# Response Models

class OrderDetail(BaseModel):
    """Assembled order read model"""
    order_id: str
    user_id: str
    order_number: int
    order_date: datetime
    status_code: OrderStatusCode
    status_name_en: str
    status_name_fr: str
    subtotal: Decimal
    tax_total: Decimal
    shipping_total: Decimal
    grand_total: Decimal
    tax_rate: Decimal
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItem] = []
    shipping_address: Optional[OrderAddress] = None
    billing_address: Optional[OrderAddress] = None
    payment: Optional[OrderPayment] = None


class OrderListResponse(BaseModel):
    """Order list response"""
    orders: List[OrderDetail]
    count: int
    limit: Optional[int] = None
    offset: int = 0


class OrderDeleteResponse(BaseModel):
    """Delete order response"""
    order_id: str
    order_number: int
    message: str


class OrderServiceStatus(BaseModel):
    """Order service status response"""
    service: str = "order_service"
    status: str = "operational"
    port: int = 8210
    version: str = "1.0.0"
    database_connected: bool
    timestamp: Optional[datetime] = None
