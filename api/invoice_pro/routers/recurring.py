# api/invoice_pro/routers/recurring.py
from datetime import date
from typing import List, Optional

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from ..shared import APIRouter
from ..database import get_db
from ..models import RecurringSchedule
from ..calculate_due_date import RECURRING_FREQUENCIES, next_recurring_date
from ..schemas.invoices import RecurringIn, RecurringOut
from ..services.recurring_logic import generate_due_invoices
from .invoices import get_invoice_or_404

router = APIRouter(prefix="/api/recurring", tags=["recurring"])


def _out(s: RecurringSchedule) -> RecurringOut:
    return RecurringOut(
        id=s.id,
        template_invoice_id=s.template_invoice_id,
        frequency=s.frequency,
        start_date=s.start_date,
        end_date=s.end_date,
        next_invoice_date=s.next_invoice_date,
        auto_send=bool(s.auto_send),
        is_active=bool(s.is_active),
        invoices_generated=s.invoices_generated or 0,
    )


@router.post("", response_model=RecurringOut)
def create_schedule(body: RecurringIn, db: Session = Depends(get_db)):
    get_invoice_or_404(db, body.template_invoice_id)
    if body.frequency not in RECURRING_FREQUENCIES:
        raise HTTPException(400, f"frequency must be one of {', '.join(RECURRING_FREQUENCIES)}")
    if body.end_date and body.end_date < body.start_date:
        raise HTTPException(400, "end_date must not be before start_date")

    s = RecurringSchedule(
        template_invoice_id=body.template_invoice_id,
        frequency=body.frequency,
        start_date=body.start_date,
        end_date=body.end_date,
        next_invoice_date=next_recurring_date(body.start_date, body.frequency),
        auto_send=body.auto_send,
        is_active=True,
        invoices_generated=0,
    )
    db.add(s)
    db.commit()
    db.refresh(s)
    return _out(s)


@router.get("", response_model=List[RecurringOut])
def list_schedules(active: Optional[bool] = None, db: Session = Depends(get_db)):
    q = db.query(RecurringSchedule)
    if active is not None:
        q = q.filter(RecurringSchedule.is_active == active)
    return [_out(s) for s in q.order_by(RecurringSchedule.next_invoice_date.asc()).all()]


@router.delete("/{schedule_id}")
def deactivate_schedule(schedule_id: int, db: Session = Depends(get_db)):
    s = db.get(RecurringSchedule, schedule_id)
    if not s:
        raise HTTPException(404, "Schedule not found")
    s.is_active = False
    db.commit()
    return {"ok": True}


@router.post("/generate-due")
def generate_due(as_of: Optional[date] = None, db: Session = Depends(get_db)):
    return generate_due_invoices(db, today=as_of)
