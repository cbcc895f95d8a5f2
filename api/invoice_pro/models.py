from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, Enum, ForeignKey, Text, Boolean, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base


# Reusable enums
TERMS_ENUM = Enum("net_30", "net_60", "month_following", "custom", name="terms_type")
INVOICE_STATUS_ENUM = Enum("draft", "sent", "overdue", "paid", "cancelled", name="invoice_status")
FEE_TYPE_ENUM = Enum("fixed", "percentage_monthly", "percentage_daily", name="late_fee_type")
REMINDER_KIND_ENUM = Enum("upcoming", "due_today", "overdue", name="reminder_kind")
REMINDER_TONE_ENUM = Enum("friendly", "professional", "urgent", name="reminder_tone")
FREQUENCY_ENUM = Enum("weekly", "biweekly", "monthly", "quarterly", "yearly", name="recurring_frequency")


class Invoice(Base):
    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        Index("ix_invoices_status_due", "status", "due_date"),
    )

    id               = Column(Integer, primary_key=True, autoincrement=True)
    invoice_number   = Column(String(64), nullable=False)
    client_name      = Column(String(200), nullable=False)
    to_email         = Column(String(255), nullable=True)
    from_name        = Column(String(200), nullable=True)
    currency         = Column(String(10), nullable=False, default="USD")
    total            = Column(Numeric(18, 8), nullable=False)           # pre-fee amount
    late_fee         = Column(Numeric(18, 8), nullable=False, default=0)
    amount_paid      = Column(Numeric(18, 8), nullable=False, default=0)
    balance_due      = Column(Numeric(18, 8), nullable=False, default=0)
    issue_date       = Column(Date, nullable=False)
    terms_type       = Column(TERMS_ENUM, nullable=False, default="net_30")
    terms_days       = Column(Integer, nullable=True)
    due_date         = Column(Date, nullable=False)
    status           = Column(INVOICE_STATUS_ENUM, nullable=False, default="sent")
    payment_link     = Column(String(255), nullable=True)
    paid_at          = Column(DateTime, nullable=True)
    created_at       = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at       = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # reminder state
    reminder_count   = Column(Integer, nullable=False, default=0)
    last_reminder_at = Column(DateTime, nullable=True)

    reminders = relationship(
        "InvoiceReminder",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceReminder.sent_at",
    )
    payments = relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
    )


class Payment(Base):
    __tablename__ = "payments"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id  = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    amount      = Column(Numeric(18, 8), nullable=False)
    method      = Column(String(20), nullable=False, default="other")
    received_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    note        = Column(Text, nullable=True)

    invoice = relationship("Invoice", back_populates="payments")


class InvoiceReminder(Base):
    """Idempotency log: one row per (invoice, day offset) that has fired."""
    __tablename__ = "invoice_reminders"

    __table_args__ = (
        UniqueConstraint("invoice_id", "day_offset", name="uq_invoice_reminders_invoice_offset"),
    )

    id            = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id    = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    day_offset    = Column(Integer, nullable=False)
    reminder_type = Column(REMINDER_KIND_ENUM, nullable=False)
    message_id    = Column(String(64), nullable=True)
    sent_at       = Column(DateTime, nullable=False, default=datetime.utcnow)

    invoice = relationship("Invoice", back_populates="reminders")


class LateFeeSettings(Base):
    __tablename__ = "late_fee_settings"

    id                 = Column(Integer, primary_key=True, autoincrement=True)
    enabled            = Column(Boolean, nullable=False, default=True)
    grace_period_days  = Column(Integer, nullable=False, default=0)
    fee_type           = Column(FEE_TYPE_ENUM, nullable=False, default="percentage_monthly")
    fee_amount         = Column(Numeric(12, 4), nullable=False, default=1.5)
    max_fee_percentage = Column(Numeric(12, 4), nullable=False, default=25)
    compound_daily     = Column(Boolean, nullable=False, default=False)
    # set once the default reminder ladder has been written; an emptied ladder stays empty
    reminder_ladder_seeded = Column(Boolean, nullable=False, default=False)
    updated_at         = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class ReminderStep(Base):
    __tablename__ = "reminder_steps"

    __table_args__ = (
        UniqueConstraint("day_offset", name="uq_reminder_steps_offset"),
    )

    id         = Column(Integer, primary_key=True, autoincrement=True)
    day_offset = Column(Integer, nullable=False)      # send when invoice is X days from due
    kind       = Column(REMINDER_KIND_ENUM, nullable=False)
    subject    = Column(String(255), nullable=False)
    tone       = Column(REMINDER_TONE_ENUM, nullable=False, default="professional")


class ExchangeRate(Base):
    __tablename__ = "exchange_rates"

    __table_args__ = (
        UniqueConstraint("from_currency", "to_currency", name="uq_exchange_rates_pair"),
    )

    id            = Column(Integer, primary_key=True, autoincrement=True)
    from_currency = Column(String(10), nullable=False)
    to_currency   = Column(String(10), nullable=False)
    rate          = Column(Numeric(24, 10), nullable=False)
    updated_at    = Column(DateTime, nullable=False, default=datetime.utcnow)


class RecurringSchedule(Base):
    __tablename__ = "recurring_schedules"

    id                  = Column(Integer, primary_key=True, autoincrement=True)
    template_invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    frequency           = Column(FREQUENCY_ENUM, nullable=False)
    start_date          = Column(Date, nullable=False)
    end_date            = Column(Date, nullable=True)
    next_invoice_date   = Column(Date, nullable=False, index=True)
    auto_send           = Column(Boolean, nullable=False, default=False)
    is_active           = Column(Boolean, nullable=False, default=True)
    invoices_generated  = Column(Integer, nullable=False, default=0)
    last_generated_at   = Column(DateTime, nullable=True)
    created_at          = Column(DateTime, nullable=False, default=datetime.utcnow)

    template_invoice = relationship("Invoice")
