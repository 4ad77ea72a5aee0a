"""Sales tax allocation for priced line items.

All arithmetic stays in ``Decimal`` at full precision. Money is rounded to two
places (ROUND_HALF_UP) only when a summary is rendered with ``to_display``;
intermediate results are never rounded, so repeated calculations over the
same lines always agree.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, NamedTuple, Optional

CANCELLED = "Cancelled"
TWO_PLACES = Decimal("0.01")


class TaxLine(NamedTuple):
    price: Decimal
    quantity: int
    taxable: bool = False
    status: Optional[str] = None


class LineTax(NamedTuple):
    total_price: Decimal
    total_tax: Decimal
    price_with_tax: Decimal


class OrderTax(NamedTuple):
    lines: List[LineTax]
    total: Decimal
    total_tax: Decimal
    total_with_tax: Decimal


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps floats like 0.05 from expanding to their binary value
    return Decimal(str(value))


def round_money(value) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _status_value(status) -> Optional[str]:
    return getattr(status, "value", status)


def calculate_line_tax(line: TaxLine, tax_rate) -> LineTax:
    rate = to_decimal(tax_rate)
    total_price = to_decimal(line.price) * line.quantity

    total_tax = Decimal("0")
    if line.taxable and _status_value(line.status) != CANCELLED:
        total_tax = total_price * rate

    return LineTax(
        total_price=total_price,
        total_tax=total_tax,
        price_with_tax=total_price + total_tax,
    )


def calculate_items_sales_tax(lines: Iterable[TaxLine], tax_rate) -> List[LineTax]:
    """Price each line item; used when a cart is created."""
    return [calculate_line_tax(line, tax_rate) for line in lines]


def calculate_order_tax(lines: Iterable[TaxLine], tax_rate) -> OrderTax:
    """Tax and totals for a whole order. Cancelled lines add nothing."""
    lines = list(lines)
    line_taxes = calculate_items_sales_tax(lines, tax_rate)

    total = Decimal("0")
    total_tax = Decimal("0")
    for line, line_tax in zip(lines, line_taxes):
        if _status_value(line.status) == CANCELLED:
            continue
        total += line_tax.total_price
        total_tax += line_tax.total_tax

    return OrderTax(
        lines=line_taxes,
        total=total,
        total_tax=total_tax,
        total_with_tax=total + total_tax,
    )


def to_display(value) -> float:
    return float(round_money(value))
