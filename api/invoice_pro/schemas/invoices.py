# api/invoice_pro/schemas/invoices.py
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class InvoiceIn(BaseModel):
    invoice_number: str = Field(..., min_length=1, max_length=64)
    client_name: str = Field(..., min_length=1, max_length=200)
    to_email: Optional[EmailStr] = None
    from_name: Optional[str] = None
    currency: str = "USD"
    total: Decimal = Field(..., ge=0)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    terms_type: str = "net_30"
    terms_days: Optional[int] = Field(None, ge=0)
    status: str = "sent"
    payment_link: Optional[str] = None


class InvoiceOut(BaseModel):
    id: int
    invoice_number: str
    client_name: str
    to_email: Optional[str]
    currency: str
    total: Decimal
    late_fee: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    issue_date: date
    due_date: date
    status: str
    reminder_count: int
    last_reminder_at: Optional[datetime] = None


class PaymentIn(BaseModel):
    invoice_id: int
    amount: Decimal
    method: str = "other"
    received_at: Optional[datetime] = None
    note: Optional[str] = None


class RecurringIn(BaseModel):
    template_invoice_id: int
    frequency: str
    start_date: date
    end_date: Optional[date] = None
    auto_send: bool = False


class RecurringOut(BaseModel):
    id: int
    template_invoice_id: int
    frequency: str
    start_date: date
    end_date: Optional[date]
    next_invoice_date: date
    auto_send: bool
    is_active: bool
    invoices_generated: int
