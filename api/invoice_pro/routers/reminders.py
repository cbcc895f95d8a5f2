# api/invoice_pro/routers/reminders.py
from __future__ import annotations
from datetime import date
from typing import List, Optional

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from ..shared import APIRouter
from ..database import get_db
from ..models import Invoice, InvoiceReminder, ReminderStep
from ..calculate_due_date import day_difference
from ..schemas.billing import ReminderMatchOut, ReminderRunOut, ReminderStepIn, ReminderStepOut
from ..services.billing_settings import ensure_reminder_steps, load_reminder_ladder
from ..services.invoice_logic import OPEN_STATUSES
from ..services.reminder_ladder import ReminderEntry, find_due_reminder
from ..services.reminder_runner import already_sent, process_reminders
from .invoices import get_invoice_or_404

router = APIRouter(prefix="/api/reminders", tags=["reminders"])


def _step_out(r: ReminderStep) -> ReminderStepOut:
    return ReminderStepOut(id=r.id, day_offset=r.day_offset, kind=r.kind, subject=r.subject, tone=r.tone)


# ---------- Ladder ----------

@router.get("/ladder", response_model=List[ReminderStepOut])
def list_ladder(db: Session = Depends(get_db)):
    return [_step_out(r) for r in ensure_reminder_steps(db)]


@router.post("/ladder", response_model=ReminderStepOut)
def add_step(body: ReminderStepIn, db: Session = Depends(get_db)):
    ensure_reminder_steps(db)
    # builds the entry so kind/tone go through the same checks as the calculator
    entry = ReminderEntry(day_offset=body.day_offset, kind=body.kind, subject=body.subject, tone=body.tone)

    exists = db.query(ReminderStep.id).filter_by(day_offset=entry.day_offset).first()
    if exists:
        raise HTTPException(409, "A reminder already exists at that day offset")

    row = ReminderStep(day_offset=entry.day_offset, kind=entry.kind, subject=entry.subject, tone=entry.tone)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, "A reminder already exists at that day offset")
    db.refresh(row)
    return _step_out(row)


@router.delete("/ladder/{step_id}")
def remove_step(step_id: int, db: Session = Depends(get_db)):
    row = db.get(ReminderStep, step_id)
    if not row:
        raise HTTPException(404, "Reminder step not found")
    db.delete(row)
    db.commit()
    return {"ok": True}


# ---------- Processing ----------

@router.post("/process", response_model=ReminderRunOut)
def run_reminders(
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
):
    """Called by the scheduler once a day (safe to call more often)."""
    ladder = load_reminder_ladder(db)
    return ReminderRunOut(**process_reminders(db, ladder, today=as_of))


@router.get("/status")
def reminder_status(db: Session = Depends(get_db)):
    pending = (
        db.query(Invoice.id)
          .filter(Invoice.status.in_(OPEN_STATUSES))
          .count()
    )
    recent = (
        db.query(InvoiceReminder, Invoice.invoice_number)
          .join(Invoice, Invoice.id == InvoiceReminder.invoice_id)
          .order_by(InvoiceReminder.sent_at.desc(), InvoiceReminder.id.desc())
          .limit(10)
          .all()
    )
    return {
        "pending_invoices": pending,
        "recent_reminders": [
            {
                "invoice_id": r.invoice_id,
                "invoice_number": number,
                "day_offset": r.day_offset,
                "reminder_type": r.reminder_type,
                "sent_at": r.sent_at.isoformat() if r.sent_at else None,
            }
            for r, number in recent
        ],
        "schedule": [_step_out(r).dict() for r in ensure_reminder_steps(db)],
    }


@router.get("/invoices/{invoice_id}/preview", response_model=ReminderMatchOut)
def preview_invoice_reminder(
    invoice_id: int,
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
):
    """Which reminder would fire for this invoice on `as_of`, without sending it."""
    inv = get_invoice_or_404(db, invoice_id)
    today = as_of or date.today()
    entry = find_due_reminder(inv.due_date, today, load_reminder_ladder(db))
    out = ReminderMatchOut(
        invoice_id=inv.id,
        day_offset=day_difference(today, inv.due_date),
        matched=entry is not None,
    )
    if entry is not None:
        out.already_sent = already_sent(db, inv.id, entry.day_offset)
        out.reminder = ReminderStepIn(
            day_offset=entry.day_offset, kind=entry.kind, subject=entry.subject, tone=entry.tone,
        )
    return out
