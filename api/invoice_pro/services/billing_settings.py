# api/invoice_pro/services/billing_settings.py
from sqlalchemy.orm import Session

from ..models import LateFeeSettings, ReminderStep
from .late_fees import DEFAULT_LATE_FEE_POLICY, LateFeePolicy
from .reminder_ladder import DEFAULT_REMINDER_LADDER, ReminderEntry, ReminderLadder


def ensure_late_fee_settings(db: Session) -> LateFeeSettings:
    row = db.query(LateFeeSettings).order_by(LateFeeSettings.id.asc()).first()
    if row:
        return row
    p = DEFAULT_LATE_FEE_POLICY
    row = LateFeeSettings(
        enabled=p.enabled,
        grace_period_days=p.grace_period_days,
        fee_type=p.fee_type.value,
        fee_amount=p.fee_amount,
        max_fee_percentage=p.max_fee_percentage,
        compound_daily=p.compound_daily,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def policy_from_row(row: LateFeeSettings) -> LateFeePolicy:
    return LateFeePolicy.build(
        enabled=bool(row.enabled),
        grace_period_days=row.grace_period_days,
        fee_type=row.fee_type,
        fee_amount=row.fee_amount,
        max_fee_percentage=row.max_fee_percentage,
        compound_daily=bool(row.compound_daily),
    )


def load_late_fee_policy(db: Session) -> LateFeePolicy:
    return policy_from_row(ensure_late_fee_settings(db))


def _ladder_rows(db: Session) -> list[ReminderStep]:
    return db.query(ReminderStep).order_by(ReminderStep.day_offset.asc()).all()


def ensure_reminder_steps(db: Session) -> list[ReminderStep]:
    """
    Seed the default ladder the first time it is read. Once seeded, a ladder
    the user has emptied stays empty and never fires.
    """
    settings = ensure_late_fee_settings(db)
    if settings.reminder_ladder_seeded:
        return _ladder_rows(db)

    if not _ladder_rows(db):
        for e in DEFAULT_REMINDER_LADDER:
            db.add(ReminderStep(day_offset=e.day_offset, kind=e.kind, subject=e.subject, tone=e.tone))
    settings.reminder_ladder_seeded = True
    db.commit()
    return _ladder_rows(db)


def load_reminder_ladder(db: Session) -> ReminderLadder:
    return ReminderLadder(
        ReminderEntry(day_offset=r.day_offset, kind=r.kind, subject=r.subject, tone=r.tone)
        for r in ensure_reminder_steps(db)
    )
