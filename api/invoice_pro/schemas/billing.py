# api/invoice_pro/schemas/billing.py
from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, validator


class LateFeePolicyIn(BaseModel):
    enabled: bool = True
    grace_period_days: int = 0
    fee_type: str = "percentage_monthly"
    fee_amount: Decimal = Decimal("1.5")
    max_fee_percentage: Decimal = Decimal("25")
    compound_daily: bool = False


class LateFeePolicyOut(LateFeePolicyIn):
    pass


class LateFeePreviewIn(BaseModel):
    total: Decimal = Field(..., ge=0)
    due_date: date
    current_date: Optional[date] = None
    currency: Optional[str] = None
    policy: LateFeePolicyIn = LateFeePolicyIn()


class LateFeeOut(BaseModel):
    applies: bool
    days_overdue: int = 0
    fee: Decimal = Decimal("0")
    new_total: Decimal
    capped: bool = False
    breakdown: str = ""


class ReminderStepIn(BaseModel):
    day_offset: int
    kind: str
    subject: str = Field(..., min_length=1, max_length=255)
    tone: str = "professional"

    @validator("kind")
    def _kind(cls, v):
        v = (v or "").lower()
        if v not in ("upcoming", "due_today", "overdue"):
            raise ValueError("kind must be 'upcoming', 'due_today' or 'overdue'")
        return v

    @validator("tone")
    def _tone(cls, v):
        v = (v or "").lower()
        if v not in ("friendly", "professional", "urgent"):
            raise ValueError("tone must be 'friendly', 'professional' or 'urgent'")
        return v


class ReminderStepOut(BaseModel):
    id: int
    day_offset: int
    kind: str
    subject: str
    tone: str


class ReminderMatchOut(BaseModel):
    invoice_id: int
    day_offset: int
    matched: bool
    already_sent: bool = False
    reminder: Optional[ReminderStepIn] = None


class ReminderRunOut(BaseModel):
    processed: int
    reminders_sent: int
    status_updates: int
    skipped: int
    errors: List[str] = []


class CurrencyOut(BaseModel):
    code: str
    name: str
    symbol: str
    decimal_places: int


class RoundIn(BaseModel):
    amount: Decimal
    currency: str


class RoundOut(BaseModel):
    amount: Decimal
    currency: str
    formatted: str
