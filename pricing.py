"""
Order pricing: GST split and order totals.

Pure functions, no I/O. All money is Decimal and rounded half-up to cents at
the point each value is produced.

    >>> calculate_item_gst(200, 5)
    GSTSplit(cgst=Decimal('5.00'), sgst=Decimal('5.00'), total=Decimal('10.00'))
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, NamedTuple, Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0")


class GSTSplit(NamedTuple):
    cgst: Decimal
    sgst: Decimal
    total: Decimal


class OrderTotals(NamedTuple):
    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    total_gst: Decimal
    total_amount: Decimal

    @property
    def taxed_total(self) -> Decimal:
        """Amount before discount: the ceiling for any discount."""
        return self.subtotal + self.cgst + self.sgst


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # via str so 0.1 stays 0.1
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Number) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _field(item: Any, name: str):
    if isinstance(item, dict):
        return item[name]
    return getattr(item, name)


def calculate_item_gst(line_amount: Number, gst_rate: Number) -> GSTSplit:
    """Split the GST on one line amount evenly into CGST and SGST."""
    gst = to_decimal(line_amount) * to_decimal(gst_rate) / 100
    half = gst / 2
    return GSTSplit(cgst=round_money(half), sgst=round_money(half), total=round_money(gst))


def calculate_order_totals(items: Iterable[Any], discount: Number = 0) -> OrderTotals:
    """
    Totals for a list of order lines.

    Each line needs price, quantity and gst_rate (attributes or dict keys) and is
    taxed at its own rate. The discount is subtracted as given; callers must keep
    it within taxed_total.
    """
    subtotal = ZERO
    cgst = ZERO
    sgst = ZERO
    for item in items:
        line_amount = to_decimal(_field(item, "price")) * _field(item, "quantity")
        subtotal += line_amount
        split = calculate_item_gst(line_amount, _field(item, "gst_rate"))
        cgst += split.cgst
        sgst += split.sgst

    total_amount = subtotal + cgst + sgst - to_decimal(discount)
    return OrderTotals(
        subtotal=round_money(subtotal),
        cgst=round_money(cgst),
        sgst=round_money(sgst),
        total_gst=round_money(cgst + sgst),
        total_amount=round_money(total_amount),
    )


def calculate_discount(subtotal: Number, value: Number, discount_type: str = "flat") -> Decimal:
    """Discount amount for a flat value or a percentage of the subtotal."""
    if discount_type == "percentage":
        return round_money(to_decimal(subtotal) * to_decimal(value) / 100)
    return round_money(value)
