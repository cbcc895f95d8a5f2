# api/invoice_pro/mailer.py
import os
import re
import logging
from typing import Optional, Tuple

import requests

from .models import Invoice
from .services.currency import format_currency
from .services.reminder_ladder import ReminderEntry
from .shared import email_templates

log = logging.getLogger("mailer")

POSTMARK_SEND_URL = "https://api.postmarkapp.com/email"

# Sender defaults (env-overridable)
REMINDER_FROM_NAME  = os.getenv("REMINDER_FROM_NAME", "Invoice Pro")
REMINDER_FROM_EMAIL = os.getenv("REMINDER_FROM_EMAIL", "reminders@invoicepro.app")

TONE_STYLES = {
    # tone: (accent colour, alert background, greeting, closing line)
    "friendly":     ("#f59e0b", "#fffbeb", "Hi",
                     "Please ensure payment is made by the due date to avoid late fees."),
    "professional": ("#dc2626", "#fef2f2", "Dear",
                     "Please make payment as soon as possible to avoid any additional fees or actions."),
    "urgent":       ("#991b1b", "#fee2e2", "Dear",
                     "This invoice is seriously overdue. Please pay immediately to avoid further collection steps."),
}


class MailResult:
    def __init__(self, ok: bool, message_id: Optional[str] = None,
                 error: Optional[str] = None, code: Optional[int] = None,
                 permanent: bool = False):
        self.ok = ok
        self.message_id = message_id
        self.error = error
        self.code = code
        self.permanent = permanent
    def __repr__(self) -> str:
        return f"MailResult(ok={self.ok}, id={self.message_id!r}, code={self.code!r}, permanent={self.permanent}, error={self.error!r})"


def send_via_postmark(
    server_token: str,
    From: str,
    To: str,
    Subject: str,
    HtmlBody: str,
    TextBody: str = "",
) -> MailResult:
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "X-Postmark-Server-Token": server_token,
    }
    payload = {
        "From": From,
        "To": To,
        "Subject": Subject,
        "HtmlBody": HtmlBody,
        "TextBody": TextBody or " ",
        "MessageStream": "outbound",
    }
    try:
        r = requests.post(POSTMARK_SEND_URL, headers=headers, json=payload, timeout=10)
    except requests.RequestException as e:
        return MailResult(False, error=str(e), code=None, permanent=False)

    if r.status_code == 200:
        data = r.json()
        return MailResult(True, message_id=str(data.get("MessageID")))

    code = None
    msg_text = r.text
    permanent = 400 <= r.status_code < 500 and r.status_code != 429
    try:
        jd = r.json()
        code = int(jd.get("ErrorCode")) if "ErrorCode" in jd else None
        msg_text = jd.get("Message") or msg_text
        if code in (412, 300, 405, 406):
            permanent = True
    except ValueError:
        pass
    return MailResult(False, error=f"{r.status_code}: {msg_text}", code=code, permanent=permanent)


def _days_text(day_offset: int) -> str:
    if day_offset == 0:
        return "today"
    if day_offset < 0:
        return f"in {abs(day_offset)} days"
    return f"{day_offset} days ago"


def _html_to_text_fallback(html: str) -> str:
    s = html or ""
    s = re.sub(r"(?is)<\s*style.*?</\s*style\s*>", "", s)
    s = re.sub(r"(?i)<\s*br\s*/?\s*>", "\n", s)
    s = re.sub(r"(?i)</\s*p\s*>", "\n", s)
    s = re.sub(r"(?i)</\s*div\s*>", "\n", s)
    s = re.sub(r"<[^>]+>", "", s)
    s = re.sub(r"[ \t]+", " ", s)
    s = re.sub(r"\n\s*\n+", "\n\n", s).strip()
    return s or " "


def compose_reminder_email(inv: Invoice, entry: ReminderEntry) -> Tuple[str, str, str]:
    """Return (subject, html, text) for a reminder on this invoice."""
    color, background, greeting, closing = TONE_STYLES[entry.tone]
    is_overdue = entry.kind == "overdue"
    amount_due = inv.balance_due if inv.balance_due is not None else inv.total

    html = email_templates.get_template("reminder_email.html").render(
        invoice=inv,
        amount=format_currency(amount_due, inv.currency),
        late_fee=format_currency(inv.late_fee, inv.currency) if inv.late_fee else None,
        is_overdue=is_overdue,
        headline="Payment Overdue" if is_overdue else "Payment Reminder",
        days_text=_days_text(entry.day_offset),
        color=color,
        background=background,
        greeting=greeting,
        closing=closing,
        from_name=REMINDER_FROM_NAME,
    )
    subject = f"{entry.subject} - {inv.invoice_number}"
    return subject, html, _html_to_text_fallback(html)


def send_reminder_for_invoice(inv: Invoice, entry: ReminderEntry) -> MailResult:
    token = (os.getenv("POSTMARK_SERVER_TOKEN") or "").strip()
    if not token:
        return MailResult(False, error="POSTMARK_SERVER_TOKEN is not set", permanent=True)
    if not inv.to_email:
        return MailResult(False, error="Invoice has no recipient email", permanent=True)

    subject, html, text = compose_reminder_email(inv, entry)
    from_name = inv.from_name or REMINDER_FROM_NAME
    res = send_via_postmark(
        server_token=token,
        From=f"{from_name} <{REMINDER_FROM_EMAIL}>",
        To=inv.to_email,
        Subject=subject,
        HtmlBody=html,
        TextBody=text,
    )
    if res.ok:
        log.info("sent %s reminder (offset %s) for invoice %s id=%s",
                 entry.kind, entry.day_offset, inv.invoice_number, res.message_id)
    else:
        log.warning("reminder for invoice %s failed: %s", inv.invoice_number, res.error)
    return res
