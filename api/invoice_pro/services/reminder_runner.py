# api/invoice_pro/services/reminder_runner.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..calculate_due_date import day_difference
from ..mailer import MailResult, send_reminder_for_invoice
from ..models import Invoice, InvoiceReminder
from .currency import to_decimal
from .invoice_logic import OPEN_STATUSES
from .reminder_ladder import ReminderEntry, ReminderLadder, find_due_reminder

log = logging.getLogger("reminders")

SendFn = Callable[[Invoice, ReminderEntry], MailResult]


def already_sent(db: Session, invoice_id: int, day_offset: int) -> bool:
    return (
        db.query(InvoiceReminder.id)
          .filter(
              InvoiceReminder.invoice_id == invoice_id,
              InvoiceReminder.day_offset == day_offset,
          )
          .first()
        is not None
    )


def record_sent(
    db: Session,
    inv: Invoice,
    entry: ReminderEntry,
    message_id: Optional[str],
    now: datetime,
) -> bool:
    """
    Write the idempotency row and bump the invoice counters in one commit.
    Returns False if another run recorded the same (invoice, offset) first.
    """
    db.add(InvoiceReminder(
        invoice_id=inv.id,
        day_offset=entry.day_offset,
        reminder_type=entry.kind,
        message_id=message_id,
        sent_at=now,
    ))
    inv.reminder_count = (inv.reminder_count or 0) + 1
    inv.last_reminder_at = now
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    return True


def _open_invoices(db: Session) -> List[Invoice]:
    return (
        db.query(Invoice)
          .filter(
              Invoice.status.in_(OPEN_STATUSES),
              Invoice.to_email.isnot(None),
          )
          .order_by(Invoice.due_date.asc(), Invoice.id.asc())
          .all()
    )


def process_reminders(
    db: Session,
    ladder: ReminderLadder,
    today: Optional[date] = None,
    send: Optional[SendFn] = None,
) -> Dict:
    """
    One pass over open invoices: flag newly overdue ones and send the ladder
    reminder matching today's offset, at most once per (invoice, offset).
    """
    today = today or date.today()
    send = send or send_reminder_for_invoice
    now = datetime.utcnow()
    results = {
        "processed": 0,
        "reminders_sent": 0,
        "status_updates": 0,
        "skipped": 0,
        "errors": [],
    }

    for inv in _open_invoices(db):
        results["processed"] += 1
        offset = day_difference(today, inv.due_date)

        if offset > 0 and inv.status != "overdue":
            inv.status = "overdue"
            db.commit()
            results["status_updates"] += 1

        if to_decimal(inv.balance_due) <= 0:
            continue

        entry = find_due_reminder(inv.due_date, today, ladder)
        if entry is None:
            continue

        if already_sent(db, inv.id, entry.day_offset):
            results["skipped"] += 1
            continue

        res = send(inv, entry)
        if not res.ok:
            results["errors"].append(f"Invoice {inv.invoice_number}: {res.error}")
            continue

        if record_sent(db, inv, entry, res.message_id, now):
            results["reminders_sent"] += 1
        else:
            results["skipped"] += 1

    log.info(
        "reminder run %s: processed=%d sent=%d status_updates=%d skipped=%d errors=%d",
        today.isoformat(),
        results["processed"],
        results["reminders_sent"],
        results["status_updates"],
        results["skipped"],
        len(results["errors"]),
    )
    return results
