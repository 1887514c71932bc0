"""
Order Validator

Field-level checks of create and update requests. No I/O; the first
failing rule raises OrderValidationError.
"""

from typing import Optional

from .models import (
    AddressRequest, CreateOrderRequest, OrderItemStatusCode,
    PaymentRequest, UpdateOrderRequest,
)
from .protocols import OrderValidationError


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class OrderValidator:
    """Validates order requests in a fixed order: items, shipping, billing, payment"""

    MAX_ITEMS_PER_ORDER = 100

    def validate_create_request(self, request: CreateOrderRequest) -> None:
        """Validate create order request"""
        self._validate_items(request)
        self._validate_address(request.shipping_address, "Shipping")
        self._validate_address(request.billing_address, "Billing")
        self._validate_payment(request.payment)

    def validate_update_request(self, request: UpdateOrderRequest) -> None:
        """Validate update order request"""
        for item in request.items:
            if _blank(item.order_item_id):
                raise OrderValidationError("Order item ID is required.")
            if item.quantity is not None and item.quantity <= 0:
                raise OrderValidationError(
                    f"Quantity for order item {item.order_item_id} must be greater than zero."
                )
            if item.status == OrderItemStatusCode.ON_HOLD.value and _blank(item.on_hold_reason):
                raise OrderValidationError("An on-hold reason is required.")

    def _validate_items(self, request: CreateOrderRequest) -> None:
        if not request.items:
            raise OrderValidationError("Order must contain at least one item.")
        if len(request.items) > self.MAX_ITEMS_PER_ORDER:
            raise OrderValidationError(
                f"Order cannot contain more than {self.MAX_ITEMS_PER_ORDER} items."
            )

        for line in request.items:
            if _blank(line.item_id):
                raise OrderValidationError("Item ID is required.")
            if _blank(line.item_variant_id):
                raise OrderValidationError("Item variant ID is required.")
            if line.quantity <= 0:
                raise OrderValidationError(
                    f"Quantity for item {line.item_id} must be greater than zero."
                )

    def _validate_address(self, address: Optional[AddressRequest], label: str) -> None:
        if address is None:
            raise OrderValidationError(f"{label} address is required.")

        required = (
            ("full_name", "Full name"),
            ("address_line1", "Address line 1"),
            ("city", "City"),
            ("province_state", "Province/State"),
            ("postal_code", "Postal code"),
            ("country", "Country"),
        )
        for field_name, display in required:
            if _blank(getattr(address, field_name)):
                raise OrderValidationError(f"{label} address: {display} is required.")

    def _validate_payment(self, payment: Optional[PaymentRequest]) -> None:
        if payment is None:
            raise OrderValidationError("Payment information is required.")
        if _blank(payment.provider):
            raise OrderValidationError("Payment provider is required.")
