#!/usr/bin/env python3
"""Order pricing configuration

Knobs of the pricing engine. Values are read once at startup and the
results they produce are frozen onto each order, so changing them never
alters historical orders.
"""
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

def _decimal(val: str, default: str) -> Decimal:
    try:
        return Decimal(val) if val else Decimal(default)
    except InvalidOperation:
        return Decimal(default)

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class OrderPricingConfig:
    """Pricing policy for new orders"""
    tax_rate: Decimal = Decimal("0.13")
    free_shipping_threshold: Decimal = Decimal("50.00")
    flat_shipping_fee: Decimal = Decimal("10.00")
    currency: str = "CAD"
    currency_minor_units: int = 2

    # "flat" uses tax_rate, "service" asks the tax service by billing location
    tax_source: str = "flat"

    @classmethod
    def from_env(cls) -> 'OrderPricingConfig':
        """Load pricing config from environment variables"""
        return cls(
            tax_rate=_decimal(os.getenv("ORDER_TAX_RATE", ""), "0.13"),
            free_shipping_threshold=_decimal(os.getenv("ORDER_FREE_SHIPPING_THRESHOLD", ""), "50.00"),
            flat_shipping_fee=_decimal(os.getenv("ORDER_FLAT_SHIPPING_FEE", ""), "10.00"),
            currency=os.getenv("ORDER_CURRENCY", "CAD").upper(),
            currency_minor_units=_int(os.getenv("ORDER_CURRENCY_MINOR_UNITS", "2"), 2),
            tax_source=os.getenv("ORDER_TAX_SOURCE", "flat").lower(),
        )
