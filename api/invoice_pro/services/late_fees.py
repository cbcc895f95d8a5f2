# api/invoice_pro/services/late_fees.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from math import ceil
from typing import Optional

from ..calculate_due_date import DateLike, day_difference
from ..errors import ConfigurationError
from .currency import to_decimal

HUNDRED = Decimal("100")


class FeeType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE_MONTHLY = "percentage_monthly"
    PERCENTAGE_DAILY = "percentage_daily"

    @classmethod
    def parse(cls, value) -> "FeeType":
        if isinstance(value, cls):
            return value
        v = (str(value or "")).strip().lower()
        # names stored by older settings screens
        v = {"percentage": "percentage_monthly", "daily_percentage": "percentage_daily"}.get(v, v)
        try:
            return cls(v)
        except ValueError:
            raise ConfigurationError(f"Unknown fee type: {value!r}")


@dataclass(frozen=True)
class LateFeePolicy:
    enabled: bool = True
    grace_period_days: int = 0
    fee_type: FeeType = FeeType.PERCENTAGE_MONTHLY
    fee_amount: Decimal = Decimal("1.5")
    max_fee_percentage: Decimal = Decimal("25")
    compound_daily: bool = False

    @classmethod
    def build(cls, **kwargs) -> "LateFeePolicy":
        """Coerce loosely typed values (form/JSON/DB) and validate."""
        if "fee_type" in kwargs:
            kwargs["fee_type"] = FeeType.parse(kwargs["fee_type"])
        for k in ("fee_amount", "max_fee_percentage"):
            if k in kwargs:
                kwargs[k] = to_decimal(kwargs[k])
        if "grace_period_days" in kwargs:
            kwargs["grace_period_days"] = int(kwargs["grace_period_days"] or 0)
        policy = cls(**kwargs)
        policy.validate()
        return policy

    def validate(self) -> None:
        if not isinstance(self.fee_type, FeeType):
            FeeType.parse(self.fee_type)
        if self.grace_period_days < 0:
            raise ConfigurationError("grace_period_days must be >= 0")
        if to_decimal(self.fee_amount) < 0:
            raise ConfigurationError("fee_amount must be >= 0")
        if to_decimal(self.max_fee_percentage) < 0:
            raise ConfigurationError("max_fee_percentage must be >= 0")


DEFAULT_LATE_FEE_POLICY = LateFeePolicy()


@dataclass(frozen=True)
class LateFeeResult:
    days_overdue: int
    fee: Decimal
    new_total: Decimal
    capped: bool
    breakdown: str = ""


def _pct(d: Decimal) -> str:
    return format(d.normalize(), "f")


def _raw_fee(total: Decimal, days_overdue: int, policy: LateFeePolicy) -> tuple[Decimal, str]:
    fee_type = FeeType.parse(policy.fee_type)
    amount = to_decimal(policy.fee_amount)
    rate = amount / HUNDRED

    if fee_type is FeeType.FIXED:
        return amount, f"Fixed late fee: {amount}"

    if fee_type is FeeType.PERCENTAGE_MONTHLY:
        # partial months are charged as full months
        months = ceil(days_overdue / 30)
        return total * rate * months, f"{_pct(amount)}% x {months} month(s)"

    if policy.compound_daily:
        fee = total * ((Decimal(1) + rate) ** days_overdue - 1)
        return fee, f"{_pct(amount)}% daily (compounded) x {days_overdue} days"
    return total * rate * days_overdue, f"{_pct(amount)}% x {days_overdue} days"


def compute_late_fee(
    total,
    due_date: DateLike,
    current_date: DateLike,
    policy: LateFeePolicy,
) -> Optional[LateFeeResult]:
    """
    Late fee owed on `total` as of `current_date`, or None when the policy is
    disabled or the invoice is not past due plus grace.

    The fee is returned unrounded; callers round it to the invoice currency
    with round_to_currency_precision before persisting.
    """
    policy.validate()
    total = to_decimal(total)
    if total < 0:
        raise ValueError("total must be >= 0")

    if not policy.enabled:
        return None

    days_overdue = day_difference(current_date, due_date) - policy.grace_period_days
    if days_overdue <= 0:
        return None

    fee, breakdown = _raw_fee(total, days_overdue, policy)

    max_pct = to_decimal(policy.max_fee_percentage)
    max_fee = total * (max_pct / HUNDRED)
    capped = False
    if fee > max_fee:
        fee = max_fee
        capped = True
        breakdown += f" (capped at {_pct(max_pct)}%)"

    return LateFeeResult(
        days_overdue=days_overdue,
        fee=fee,
        new_total=total + fee,
        capped=capped,
        breakdown=breakdown,
    )
