"""Invoice computation engine and status machine.

Totals are computed with ``Decimal`` at full precision; rounding to cents only
happens at presentation (``money``). Tax applies to the discounted subtotal:

    subtotal        = sum(quantity * rate)
    discount_amount = subtotal * discount / 100
    tax_amount      = (subtotal - discount_amount) * tax / 100
    total           = subtotal - discount_amount + tax_amount
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

from .errors import ConflictError, ValidationError
from .models import Invoice, InvoiceItem, InvoiceStatus

Number = Union[int, float, str, Decimal]

HUNDRED = Decimal(100)
CENT = Decimal("0.01")

INVOICE_NUMBER_FORMAT = "INV-{:04d}"

# Only the explicit lifecycle edges. "overdue" is derived at read time.
TRANSITIONS: dict[InvoiceStatus, set[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: {InvoiceStatus.SENT, InvoiceStatus.CANCELLED},
    InvoiceStatus.SENT: {InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
    InvoiceStatus.PAID: set(),
    InvoiceStatus.CANCELLED: set(),
    InvoiceStatus.OVERDUE: {InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
}


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total: Decimal

    def as_record(self) -> dict:
        """camelCase fields for storage, at full precision."""
        return {
            "subtotal": float(self.subtotal),
            "discountAmount": float(self.discount_amount),
            "taxAmount": float(self.tax_amount),
            "total": float(self.total),
        }


def to_decimal(value: Optional[Number]) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as 0.1 instead of its binary expansion
    return Decimal(str(value))


def money(value: Number) -> Decimal:
    """Round to two places for display."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _check_percent(name: str, value: Decimal) -> None:
    if value < 0 or value > HUNDRED:
        raise ValidationError(f"{name} must be between 0 and 100")


def validate_items(items: Optional[Iterable[InvoiceItem]]) -> list[InvoiceItem]:
    items = list(items or [])
    if not items:
        raise ValidationError("At least one item is required")
    for item in items:
        if to_decimal(item.quantity) <= 0:
            raise ValidationError("Item quantity must be greater than 0")
        if to_decimal(item.rate) < 0:
            raise ValidationError("Item rate cannot be negative")
    return items


def price_items(items: Iterable[InvoiceItem]) -> list[InvoiceItem]:
    """Return copies of the items with amount = quantity * rate."""
    return [
        item.model_copy(
            update={"amount": float(to_decimal(item.quantity) * to_decimal(item.rate))}
        )
        for item in items
    ]


def compute_totals(
    items: Iterable[InvoiceItem],
    discount_percent: Optional[Number] = 0,
    tax_percent: Optional[Number] = 0,
) -> Totals:
    """Pure function: same inputs always give the same Totals."""
    items = validate_items(items)
    discount = to_decimal(discount_percent)
    tax = to_decimal(tax_percent)
    _check_percent("Discount", discount)
    _check_percent("Tax", tax)

    subtotal = sum(
        (to_decimal(i.quantity) * to_decimal(i.rate) for i in items), Decimal(0)
    )
    discount_amount = subtotal * discount / HUNDRED
    tax_amount = (subtotal - discount_amount) * tax / HUNDRED
    total = subtotal - discount_amount + tax_amount
    return Totals(subtotal, discount_amount, tax_amount, total)


def next_invoice_number(existing: list) -> str:
    """Sequential number from the size of the current collection snapshot.

    Numbers can repeat after deletions, and two concurrent creations reading
    the same snapshot get the same number.
    """
    return INVOICE_NUMBER_FORMAT.format(len(existing) + 1)


def check_transition(current: InvoiceStatus, target: InvoiceStatus) -> None:
    current = InvoiceStatus(current)
    target = InvoiceStatus(target)
    if target == InvoiceStatus.OVERDUE:
        raise ConflictError("Overdue is derived from the due date and cannot be set")
    if target not in TRANSITIONS.get(current, set()):
        raise ConflictError(
            f"Invalid status transition: {current.value} -> {target.value}"
        )


def is_overdue(invoice: Invoice, now: datetime) -> bool:
    return (
        invoice.due_date is not None
        and invoice.due_date < now
        and invoice.status != InvoiceStatus.PAID
    )


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days, rounded up."""
    seconds = (later - earlier).total_seconds()
    days = int(seconds // 86400)
    return days + 1 if seconds % 86400 else days
