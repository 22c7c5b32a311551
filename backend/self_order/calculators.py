"""
Self-order cart totals.

Pure functions over resolved cart lines and the outlet's pricing configuration.
Amounts stay exact Decimals; rounding to whole currency units only happens at the
boundary where a grand total is compared with, or presented as, a tendered amount.

Usage:
    from self_order.calculators import TotalCalculator
    totals = TotalCalculator.calculate(lines, tax_rate=Decimal('10'), service_charge_rate=Decimal('5'))
    totals.grand_total  # Decimal('23000.00') for 2 x 10000
"""

from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Iterable, Tuple

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
WHOLE_UNIT = Decimal("1")


def to_whole_units(amount) -> Decimal:
    """Round to the nearest whole currency unit (banker's rounding)."""
    return Decimal(str(amount)).quantize(WHOLE_UNIT, rounding=ROUND_HALF_EVEN)


def within_tolerance(expected, tendered, tolerance) -> bool:
    """True if |round(expected) - tendered| <= tolerance."""
    difference = abs(to_whole_units(expected) - Decimal(str(tendered)))
    return difference <= Decimal(str(tolerance))


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    tax_amount: Decimal
    service_charge_amount: Decimal
    grand_total: Decimal
    item_count: int

    def as_dict(self):
        return asdict(self)


class TotalCalculator:
    """
    Calculator for self-order cart totals.

    grand_total = subtotal * (1 + tax_rate/100 + service_charge_rate/100),
    with tax and service charge both taken on the pre-tax subtotal.
    """

    @staticmethod
    def calculate(
        lines: Iterable[Tuple[Decimal, int]],
        tax_rate=ZERO,
        service_charge_rate=ZERO,
    ) -> CartTotals:
        """
        Args:
            lines: (resolved unit price, quantity) pairs
            tax_rate: Outlet tax rate as a percentage (10 means 10%)
            service_charge_rate: Outlet service charge as a percentage

        Returns:
            CartTotals with item_count being the total quantity across lines
        """
        subtotal = ZERO
        item_count = 0
        for unit_price, quantity in lines:
            subtotal += Decimal(str(unit_price)) * quantity
            item_count += quantity

        tax_fraction = Decimal(str(tax_rate or 0)) / HUNDRED
        service_fraction = Decimal(str(service_charge_rate or 0)) / HUNDRED

        tax_amount = subtotal * tax_fraction
        service_charge_amount = subtotal * service_fraction

        return CartTotals(
            subtotal=subtotal,
            tax_amount=tax_amount,
            service_charge_amount=service_charge_amount,
            grand_total=subtotal + tax_amount + service_charge_amount,
            item_count=item_count,
        )

    @staticmethod
    def for_items(items, store_location) -> CartTotals:
        """Totals for SelfOrderItem rows at a StoreLocation."""
        return TotalCalculator.calculate(
            ((item.unit_price, item.quantity) for item in items),
            tax_rate=store_location.tax_rate,
            service_charge_rate=store_location.service_charge_rate,
        )
