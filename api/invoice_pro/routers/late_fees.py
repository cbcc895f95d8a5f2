# api/invoice_pro/routers/late_fees.py
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from ..shared import APIRouter
from ..database import get_db
from ..schemas.billing import LateFeeOut, LateFeePolicyIn, LateFeePolicyOut, LateFeePreviewIn
from ..services.billing_settings import ensure_late_fee_settings, load_late_fee_policy
from ..services.currency import round_to_currency_precision, to_decimal
from ..services.invoice_logic import apply_late_fee
from ..services.late_fees import LateFeePolicy, LateFeeResult, compute_late_fee
from .invoices import InvoiceOut, _invoice_out, get_invoice_or_404

router = APIRouter(prefix="/api/late_fees", tags=["late_fees"])


def _policy_out(p: LateFeePolicy) -> LateFeePolicyOut:
    return LateFeePolicyOut(
        enabled=p.enabled,
        grace_period_days=p.grace_period_days,
        fee_type=p.fee_type.value,
        fee_amount=p.fee_amount,
        max_fee_percentage=p.max_fee_percentage,
        compound_daily=p.compound_daily,
    )


def _fee_out(total: Decimal, result: Optional[LateFeeResult], currency: Optional[str]) -> LateFeeOut:
    if result is None:
        return LateFeeOut(applies=False, new_total=total)
    fee, new_total = result.fee, result.new_total
    if currency:
        fee = round_to_currency_precision(fee, currency)
        new_total = round_to_currency_precision(total + fee, currency)
    return LateFeeOut(
        applies=True,
        days_overdue=result.days_overdue,
        fee=fee,
        new_total=new_total,
        capped=result.capped,
        breakdown=result.breakdown,
    )


@router.get("/settings", response_model=LateFeePolicyOut)
def get_settings(db: Session = Depends(get_db)):
    return _policy_out(load_late_fee_policy(db))


@router.put("/settings", response_model=LateFeePolicyOut)
def update_settings(payload: LateFeePolicyIn, db: Session = Depends(get_db)):
    # validate before touching the row; ConfigurationError -> 400
    policy = LateFeePolicy.build(**payload.dict())

    row = ensure_late_fee_settings(db)
    row.enabled = policy.enabled
    row.grace_period_days = policy.grace_period_days
    row.fee_type = policy.fee_type.value
    row.fee_amount = policy.fee_amount
    row.max_fee_percentage = policy.max_fee_percentage
    row.compound_daily = policy.compound_daily
    db.add(row)
    db.commit()
    return _policy_out(policy)


@router.post("/preview", response_model=LateFeeOut)
def preview_late_fee(body: LateFeePreviewIn):
    """Stateless calculation with an explicit policy."""
    policy = LateFeePolicy.build(**body.policy.dict())
    result = compute_late_fee(body.total, body.due_date, body.current_date or date.today(), policy)
    return _fee_out(to_decimal(body.total), result, body.currency)


@router.get("/invoices/{invoice_id}", response_model=LateFeeOut)
def invoice_late_fee(
    invoice_id: int,
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
):
    """What the stored policy would charge, without persisting it."""
    inv = get_invoice_or_404(db, invoice_id)
    result = compute_late_fee(inv.total, inv.due_date, as_of or date.today(), load_late_fee_policy(db))
    return _fee_out(to_decimal(inv.total), result, inv.currency)


@router.post("/invoices/{invoice_id}/apply", response_model=InvoiceOut)
def apply_invoice_late_fee(
    invoice_id: int,
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
):
    inv = get_invoice_or_404(db, invoice_id)
    apply_late_fee(db, inv, load_late_fee_policy(db), as_of or date.today())
    return _invoice_out(inv)
