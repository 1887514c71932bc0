"""
Pricing Engine

Pure money arithmetic on Decimal values. Every amount is quantized to the
currency minor unit with ROUND_HALF_UP before it is summed or stored.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from core.config import OrderPricingConfig


@dataclass(frozen=True)
class PricingPolicy:
    """Shipping rule and rounding, independent of tax"""
    free_shipping_threshold: Decimal = Decimal("50.00")
    flat_shipping_fee: Decimal = Decimal("10.00")
    minor_units: int = 2

    @classmethod
    def from_config(cls, config: OrderPricingConfig) -> 'PricingPolicy':
        return cls(
            free_shipping_threshold=config.free_shipping_threshold,
            flat_shipping_fee=config.flat_shipping_fee,
            minor_units=config.currency_minor_units,
        )

    @property
    def quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.minor_units)


@dataclass(frozen=True)
class OrderTotals:
    """Computed totals of an order"""
    line_totals: List[Decimal]
    subtotal: Decimal
    tax_total: Decimal
    shipping_total: Decimal
    grand_total: Decimal
    tax_rate: Decimal


class PricingEngine:
    """Computes line totals, subtotal, tax, shipping and grand total"""

    def __init__(self, policy: Optional[PricingPolicy] = None):
        self.policy = policy or PricingPolicy()

    def round_money(self, amount: Decimal) -> Decimal:
        return Decimal(amount).quantize(self.policy.quantum, rounding=ROUND_HALF_UP)

    def line_total(self, unit_price: Decimal, quantity: int) -> Decimal:
        return self.round_money(Decimal(unit_price) * quantity)

    def shipping_for(self, subtotal: Decimal) -> Decimal:
        """Flat fee unless the subtotal is strictly above the threshold"""
        if subtotal > self.policy.free_shipping_threshold:
            return self.round_money(Decimal(0))
        return self.round_money(self.policy.flat_shipping_fee)

    def tax_for(self, subtotal: Decimal, tax_rate: Decimal) -> Decimal:
        return self.round_money(subtotal * Decimal(tax_rate))

    def price_lines(
        self,
        lines: Iterable,
        tax_rate: Decimal,
        shipping_total: Optional[Decimal] = None,
    ) -> OrderTotals:
        """
        Price a set of lines.

        Args:
            lines: Objects with ``unit_price`` and ``quantity``
                (LineSnapshot or OrderItem)
            tax_rate: Effective tax rate, e.g. Decimal('0.13')
            shipping_total: Keep an already frozen shipping amount instead
                of applying the shipping rule

        Returns:
            OrderTotals with one line total per input line, in order
        """
        line_totals = [self.line_total(line.unit_price, line.quantity) for line in lines]
        subtotal = self.round_money(sum(line_totals, Decimal(0)))
        tax_total = self.tax_for(subtotal, tax_rate)
        if shipping_total is None:
            shipping_total = self.shipping_for(subtotal)
        else:
            shipping_total = self.round_money(shipping_total)
        grand_total = subtotal + tax_total + shipping_total

        return OrderTotals(
            line_totals=line_totals,
            subtotal=subtotal,
            tax_total=tax_total,
            shipping_total=shipping_total,
            grand_total=grand_total,
            tax_rate=Decimal(tax_rate),
        )
