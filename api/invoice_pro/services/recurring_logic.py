# api/invoice_pro/services/recurring_logic.py
import logging
from datetime import date, datetime, timedelta
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..calculate_due_date import next_recurring_date
from ..models import Invoice, RecurringSchedule
from .invoice_logic import recalc_balance

log = logging.getLogger("recurring")


def clone_number(template: Invoice, sched: RecurringSchedule) -> str:
    # schedules can share a template, so the schedule id keeps numbers apart
    return f"{template.invoice_number}-{sched.id}-{(sched.invoices_generated or 0) + 1}"


def clone_invoice(db: Session, template: Invoice, invoice_number: str, issue: date, auto_send: bool) -> Invoice:
    # keep the template's payment term length
    term = (template.due_date - template.issue_date).days if template.issue_date else 30
    inv = Invoice(
        invoice_number=invoice_number,
        client_name=template.client_name,
        to_email=template.to_email,
        from_name=template.from_name,
        currency=template.currency,
        total=template.total,
        late_fee=0,
        amount_paid=0,
        issue_date=issue,
        terms_type=template.terms_type,
        terms_days=template.terms_days,
        due_date=issue + timedelta(days=max(0, term)),
        status="sent" if auto_send else "draft",
        payment_link=template.payment_link,
    )
    recalc_balance(inv, as_of=issue)
    db.add(inv)
    return inv


def _deactivate(db: Session, sched: RecurringSchedule) -> None:
    sched.is_active = False
    db.commit()


def generate_due_invoices(db: Session, today: Optional[date] = None) -> Dict:
    """
    Generate an invoice for every active schedule whose next run is due,
    then advance it. A schedule that was missed for several periods catches
    up one period per call.

    Each schedule is committed on its own; one that cannot generate (its
    invoice number is already taken) is logged in `errors` and left as is.
    """
    today = today or date.today()
    results = {"schedules": 0, "generated": 0, "deactivated": 0, "invoice_ids": [], "errors": []}

    due = (
        db.query(RecurringSchedule)
          .filter(
              RecurringSchedule.is_active == True,   # noqa: E712
              RecurringSchedule.next_invoice_date <= today,
          )
          .order_by(RecurringSchedule.next_invoice_date.asc(), RecurringSchedule.id.asc())
          .all()
    )
    for sched in due:
        sched_id = sched.id
        results["schedules"] += 1
        if sched.end_date and sched.next_invoice_date > sched.end_date:
            _deactivate(db, sched)
            results["deactivated"] += 1
            continue

        template = db.get(Invoice, sched.template_invoice_id)
        if template is None:
            log.warning("schedule %s: template invoice %s missing, deactivating", sched_id, sched.template_invoice_id)
            _deactivate(db, sched)
            results["deactivated"] += 1
            continue

        number = clone_number(template, sched)
        inv = clone_invoice(db, template, number, sched.next_invoice_date, sched.auto_send)
        sched.invoices_generated = (sched.invoices_generated or 0) + 1
        sched.last_generated_at = datetime.utcnow()
        sched.next_invoice_date = next_recurring_date(sched.next_invoice_date, sched.frequency)
        finished = bool(sched.end_date and sched.next_invoice_date > sched.end_date)
        if finished:
            sched.is_active = False
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            log.warning("schedule %s: invoice number %s already in use, skipped", sched_id, number)
            results["errors"].append(f"Schedule {sched_id}: invoice number {number} already in use")
            continue

        results["generated"] += 1
        results["invoice_ids"].append(inv.id)
        if finished:
            results["deactivated"] += 1

    log.info("recurring run %s: generated=%d deactivated=%d errors=%d",
             today.isoformat(), results["generated"], results["deactivated"], len(results["errors"]))
    return results
