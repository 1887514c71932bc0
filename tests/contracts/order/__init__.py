"""
Order Service Contracts

Data contracts for order_service testing.
"""

from .data_contract import (
    # Response Contracts
    OrderItemContract,
    OrderAddressContract,
    OrderPaymentContract,
    OrderDetailContract,
    ErrorResponseContract,
    # Test Data Factory
    OrderTestDataFactory,
    # Builders
    CreateOrderRequestBuilder,
)

__all__ = [
    "OrderItemContract",
    "OrderAddressContract",
    "OrderPaymentContract",
    "OrderDetailContract",
    "ErrorResponseContract",
    "OrderTestDataFactory",
    "CreateOrderRequestBuilder",
]
