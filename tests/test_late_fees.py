from datetime import date, datetime
from decimal import Decimal

import pytest

from invoice_pro.errors import ConfigurationError
from invoice_pro.services.late_fees import (
    DEFAULT_LATE_FEE_POLICY,
    FeeType,
    LateFeePolicy,
    compute_late_fee,
)

DUE = date(2025, 1, 10)


def policy(**kw) -> LateFeePolicy:
    return LateFeePolicy.build(**kw)


def test_disabled_policy_never_charges():
    p = policy(enabled=False, fee_type="fixed", fee_amount=50)
    assert compute_late_fee(1000, DUE, date(2025, 6, 1), p) is None
    assert compute_late_fee(0, DUE, date(2025, 6, 1), p) is None


@pytest.mark.parametrize("current", [date(2025, 1, 1), DUE])
def test_not_yet_due_is_free(current):
    assert compute_late_fee(1000, DUE, current, DEFAULT_LATE_FEE_POLICY) is None


def test_grace_period_is_subtracted():
    p = policy(grace_period_days=3, fee_type="fixed", fee_amount=50)
    assert compute_late_fee(1000, DUE, date(2025, 1, 13), p) is None

    res = compute_late_fee(1000, DUE, date(2025, 1, 14), p)
    assert res.days_overdue == 1
    assert res.fee == Decimal("50")


@pytest.mark.parametrize("current", [date(2025, 1, 11), date(2025, 4, 20)])
def test_fixed_fee_ignores_duration(current):
    p = policy(fee_type="fixed", fee_amount=50)
    res = compute_late_fee(1000, DUE, current, p)
    assert res.fee == Decimal("50")
    assert res.new_total == Decimal("1050")
    assert res.capped is False


def test_monthly_percentage_rounds_months_up():
    p = policy(fee_type="percentage_monthly", fee_amount="1.5")
    res = compute_late_fee(1000, DUE, date(2025, 2, 10), p)  # 31 days
    assert res.days_overdue == 31
    assert res.fee == Decimal("30")
    assert res.breakdown == "1.5% x 2 month(s)"


def test_one_day_late_pays_a_full_month():
    res = compute_late_fee(1000, DUE, date(2025, 1, 11), DEFAULT_LATE_FEE_POLICY)
    assert res.fee == Decimal("15")


def test_daily_simple_percentage():
    p = policy(fee_type="percentage_daily", fee_amount=1)
    res = compute_late_fee(1000, DUE, date(2025, 1, 20), p)
    assert res.days_overdue == 10
    assert res.fee == Decimal("100")


def test_daily_compound_uses_exact_formula():
    p = policy(fee_type="percentage_daily", fee_amount=1, compound_daily=True)
    res = compute_late_fee(1000, DUE, date(2025, 1, 20), p)
    assert res.fee.quantize(Decimal("0.01")) == Decimal("104.62")
    assert float(res.fee) == pytest.approx(1000 * (1.01 ** 10 - 1))
    assert "compounded" in res.breakdown


def test_compound_flag_only_matters_for_daily_fees():
    simple = policy(fee_type="percentage_monthly", fee_amount="1.5")
    compound = policy(fee_type="percentage_monthly", fee_amount="1.5", compound_daily=True)
    current = date(2025, 2, 10)
    assert compute_late_fee(1000, DUE, current, simple) == compute_late_fee(1000, DUE, current, compound)


def test_fee_is_clamped_to_cap():
    p = policy(fee_type="percentage_daily", fee_amount=1, max_fee_percentage=25)
    res = compute_late_fee(1000, DUE, date(2025, 4, 20), p)  # 100 days -> 1000 raw
    assert res.fee == Decimal("250")
    assert res.capped is True
    assert res.new_total == Decimal("1250")
    assert res.breakdown.endswith("(capped at 25%)")


def test_fee_exactly_at_cap_is_not_flagged():
    p = policy(fee_type="fixed", fee_amount=250, max_fee_percentage=25)
    res = compute_late_fee(1000, DUE, date(2025, 1, 11), p)
    assert res.fee == Decimal("250")
    assert res.capped is False


@pytest.mark.parametrize("fee_type", ["fixed", "percentage_monthly", "percentage_daily"])
def test_zero_total_yields_zero_fee(fee_type):
    p = policy(fee_type=fee_type, fee_amount=50)
    res = compute_late_fee(0, DUE, date(2025, 3, 1), p)
    assert res.fee == 0
    assert res.new_total == 0


def test_time_of_day_is_ignored():
    p = policy(fee_type="fixed", fee_amount=10)
    res = compute_late_fee(
        100, datetime(2025, 1, 10, 23, 59), datetime(2025, 1, 11, 0, 1), p,
    )
    assert res.days_overdue == 1


def test_float_inputs_are_taken_at_face_value():
    p = policy(fee_type="percentage_daily", fee_amount=0.1)
    res = compute_late_fee(19.99, DUE, date(2025, 1, 11), p)
    assert res.fee == Decimal("0.01999")


@pytest.mark.parametrize("kw", [
    {"fee_amount": -1},
    {"max_fee_percentage": -5},
    {"grace_period_days": -2},
    {"fee_type": "weekly"},
])
def test_invalid_policy_is_rejected(kw):
    with pytest.raises(ConfigurationError):
        policy(**kw)


def test_directly_built_invalid_policy_is_rejected_at_calculation():
    bad = LateFeePolicy(fee_amount=Decimal("-1"))
    with pytest.raises(ConfigurationError):
        compute_late_fee(1000, DUE, date(2025, 2, 1), bad)


def test_negative_total_is_an_input_error():
    with pytest.raises(ValueError):
        compute_late_fee(-1, DUE, date(2025, 2, 1), DEFAULT_LATE_FEE_POLICY)


def test_legacy_fee_type_names():
    assert FeeType.parse("percentage") is FeeType.PERCENTAGE_MONTHLY
    assert FeeType.parse("daily_percentage") is FeeType.PERCENTAGE_DAILY
    assert FeeType.parse(" Fixed ") is FeeType.FIXED
