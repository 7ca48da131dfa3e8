"""
Keeps amount, tax and total_amount consistent.

Rules, in order:
- total missing: total = amount + tax (each defaulting to zero)
- amount missing, total present: amount = total
- both missing: amount = total = 0

All arithmetic is Decimal; no rounding is applied here.
"""

from decimal import Decimal
from typing import NamedTuple

ZERO = Decimal("0")


class FinancialTotals(NamedTuple):
    """A consistent financial triple. tax stays None when not supplied."""

    amount: Decimal
    tax: Decimal | None
    total_amount: Decimal


def reconcile(
    amount: Decimal | None,
    tax: Decimal | None,
    total_amount: Decimal | None,
) -> FinancialTotals:
    """
    Derive the missing members of the triple.

    An explicitly supplied total_amount is never recomputed.
    """
    if total_amount is None:
        amount = amount if amount is not None else ZERO
        total_amount = amount + (tax if tax is not None else ZERO)
    elif amount is None:
        amount = total_amount

    return FinancialTotals(amount=amount, tax=tax, total_amount=total_amount)


def reconcile_update(
    current: FinancialTotals,
    supplied: dict,
) -> FinancialTotals:
    """
    Apply an update's financial fields on top of the stored triple.

    supplied holds only the fields the caller sent (amount, tax, total_amount).
    The total is re-derived from the merged amount and tax when the caller
    touched either of them without sending a total.
    """
    amount = supplied.get("amount", current.amount)
    tax = supplied.get("tax", current.tax)

    if "total_amount" in supplied:
        return FinancialTotals(amount=amount, tax=tax, total_amount=supplied["total_amount"])

    if "amount" in supplied or "tax" in supplied:
        return reconcile(amount, tax, None)

    return FinancialTotals(amount=amount, tax=tax, total_amount=current.total_amount)
