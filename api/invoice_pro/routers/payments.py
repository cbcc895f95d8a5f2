# api/invoice_pro/routers/payments.py
from datetime import datetime
from decimal import Decimal

from ..shared import APIRouter, Depends, HTTPException, Session
from ..database import get_db
from ..models import Payment
from ..schemas.invoices import PaymentIn
from ..services.currency import round_to_currency_precision, to_decimal
from ..services.invoice_logic import recalc_balance
from .invoices import get_invoice_or_404

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/record")
def record_payment(p: PaymentIn, db: Session = Depends(get_db)):
    inv = get_invoice_or_404(db, p.invoice_id)

    if inv.status == "cancelled":
        raise HTTPException(400, "Cannot record a payment on a cancelled invoice")

    amount = round_to_currency_precision(p.amount, inv.currency)
    if amount <= 0:
        raise HTTPException(400, "Payment amount must be positive")

    pay = Payment(
        invoice_id=inv.id,
        amount=amount,
        method=p.method,
        received_at=p.received_at or datetime.utcnow(),
        note=(p.note or None),
    )
    db.add(pay)

    inv.amount_paid = to_decimal(inv.amount_paid) + amount
    recalc_balance(inv)
    db.commit()
    db.refresh(inv)

    overpaid = to_decimal(inv.amount_paid) - to_decimal(inv.total) - to_decimal(inv.late_fee)
    return {
        "payment_id": pay.id,
        "invoice_id": inv.id,
        "status": inv.status,
        "balance_due": str(round_to_currency_precision(inv.balance_due, inv.currency)),
        "overpaid": str(max(Decimal("0"), round_to_currency_precision(overpaid, inv.currency))),
    }
