# api/invoice_pro/services/invoice_logic.py
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Invoice
from .currency import round_to_currency_precision, to_decimal
from .late_fees import LateFeePolicy, LateFeeResult, compute_late_fee

OPEN_STATUSES = ("sent", "overdue")


def _open_status(inv: Invoice, as_of: Optional[date]) -> str:
    as_of = as_of or date.today()
    return "overdue" if inv.due_date and inv.due_date < as_of else "sent"


def recalc_balance(inv: Invoice, as_of: Optional[date] = None) -> None:
    """
    Keep balance_due/status in sync with total, late_fee and amount_paid.
    A reopened invoice is overdue if it was due before `as_of` (default today).
    Does not commit.
    """
    balance = to_decimal(inv.total) + to_decimal(inv.late_fee) - to_decimal(inv.amount_paid)
    balance = round_to_currency_precision(max(Decimal("0"), balance), inv.currency)
    inv.balance_due = balance

    if balance <= 0 and to_decimal(inv.amount_paid) > 0:
        inv.status = "paid"
        if not inv.paid_at:
            inv.paid_at = datetime.utcnow()
    elif inv.status == "paid":
        # a late fee or a refund reopened it
        inv.status = _open_status(inv, as_of)
        inv.paid_at = None


def apply_late_fee(
    db: Session,
    inv: Invoice,
    policy: LateFeePolicy,
    as_of: date,
) -> Optional[LateFeeResult]:
    """
    Recompute the invoice's late fee as of `as_of` and persist it.

    The stored fee is replaced, never accumulated, so applying twice on the
    same day is a no-op. Paid or cancelled invoices are left untouched.
    """
    if inv.status in ("paid", "cancelled", "draft"):
        return None

    result = compute_late_fee(inv.total, inv.due_date, as_of, policy)
    fee = Decimal("0")
    if result is not None:
        fee = round_to_currency_precision(result.fee, inv.currency)

    inv.late_fee = fee
    recalc_balance(inv, as_of=as_of)
    if inv.status in OPEN_STATUSES:
        inv.status = _open_status(inv, as_of)
    db.add(inv)
    db.commit()
    db.refresh(inv)
    return result
