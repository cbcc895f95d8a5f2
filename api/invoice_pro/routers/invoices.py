# api/invoice_pro/routers/invoices.py
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from ..shared import APIRouter, Depends, HTTPException, Session
from ..database import get_db
from ..models import Invoice
from ..calculate_due_date import compute_due_date
from ..schemas.invoices import InvoiceIn, InvoiceOut
from ..services.currency import currency_info, round_to_currency_precision
from ..services.invoice_logic import recalc_balance

router = APIRouter(prefix="/api/invoices", tags=["invoices"])

STATUSES = ("draft", "sent", "overdue", "paid", "cancelled")


def _invoice_out(inv: Invoice) -> InvoiceOut:
    def money(v):
        return round_to_currency_precision(v or 0, inv.currency)

    return InvoiceOut(
        id=inv.id,
        invoice_number=inv.invoice_number,
        client_name=inv.client_name,
        to_email=inv.to_email,
        currency=inv.currency,
        total=money(inv.total),
        late_fee=money(inv.late_fee),
        amount_paid=money(inv.amount_paid),
        balance_due=money(inv.balance_due),
        issue_date=inv.issue_date,
        due_date=inv.due_date,
        status=inv.status,
        reminder_count=inv.reminder_count or 0,
        last_reminder_at=inv.last_reminder_at,
    )


def get_invoice_or_404(db: Session, invoice_id: int) -> Invoice:
    inv = db.get(Invoice, invoice_id)
    if not inv:
        raise HTTPException(404, "Invoice not found")
    return inv


@router.post("", response_model=InvoiceOut)
def create_invoice(p: InvoiceIn, db: Session = Depends(get_db)):
    inv_no = (p.invoice_number or "").strip()
    if not inv_no:
        raise HTTPException(400, "Invoice number is required")
    if p.status not in STATUSES:
        raise HTTPException(400, f"status must be one of {', '.join(STATUSES)}")

    currency = p.currency.strip().upper()
    currency_info(currency)  # ConfigurationError -> 400

    issue = p.issue_date or date.today()
    tdays = p.terms_days if p.terms_type == "custom" else None
    due = p.due_date or compute_due_date(issue, p.terms_type, tdays)

    inv = Invoice(
        invoice_number=inv_no,
        client_name=p.client_name.strip(),
        to_email=p.to_email,
        from_name=p.from_name,
        currency=currency,
        total=p.total,
        late_fee=0,
        amount_paid=0,
        issue_date=issue,
        terms_type=p.terms_type,
        terms_days=tdays,
        due_date=due,
        status=p.status,
        payment_link=p.payment_link,
        reminder_count=0,
    )
    recalc_balance(inv)

    db.add(inv)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=409,
            detail=f'Invoice number "{inv_no}" is already in use.'
        )
    db.refresh(inv)
    return _invoice_out(inv)


@router.get("", response_model=List[InvoiceOut])
def list_invoices(
    status: Optional[str] = None,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    q = db.query(Invoice)
    if status:
        q = q.filter(Invoice.status == status)
    rows = q.order_by(Invoice.due_date.asc(), Invoice.id.asc()).limit(max(1, min(limit, 500))).all()
    return [_invoice_out(inv) for inv in rows]


@router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice(invoice_id: int, db: Session = Depends(get_db)):
    return _invoice_out(get_invoice_or_404(db, invoice_id))
