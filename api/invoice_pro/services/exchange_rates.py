# api/invoice_pro/services/exchange_rates.py
import os
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Optional

import requests
from sqlalchemy.orm import Session

from ..models import ExchangeRate
from .currency import CURRENCIES, currency_info, to_decimal

log = logging.getLogger("currency")

EXCHANGE_RATE_API_URL = os.getenv("EXCHANGE_RATE_API_URL", "https://api.exchangerate-api.com/v4/latest")
CACHE_TTL = timedelta(hours=1)


class ExchangeRateUnavailable(RuntimeError):
    pass


def _fetch_latest(base: str) -> Dict[str, Decimal]:
    r = requests.get(f"{EXCHANGE_RATE_API_URL.rstrip('/')}/{base}", timeout=10)
    if not r.ok:
        raise ExchangeRateUnavailable(f"Exchange rate API error: {r.status_code}")
    rates = (r.json() or {}).get("rates") or {}
    return {code: to_decimal(v) for code, v in rates.items()}


def _cached(db: Session, from_ccy: str, to_ccy: str) -> Optional[ExchangeRate]:
    return (
        db.query(ExchangeRate)
          .filter(ExchangeRate.from_currency == from_ccy, ExchangeRate.to_currency == to_ccy)
          .first()
    )


def _store(db: Session, row: Optional[ExchangeRate], from_ccy: str, to_ccy: str, rate: Decimal) -> None:
    if row is None:
        row = ExchangeRate(from_currency=from_ccy, to_currency=to_ccy)
    row.rate = rate
    row.updated_at = datetime.utcnow()
    db.add(row)
    db.commit()


def get_exchange_rate(db: Session, from_ccy: str, to_ccy: str) -> Decimal:
    """
    Rate to multiply a `from_ccy` amount by to get `to_ccy`.
    Uses a cached rate younger than an hour, otherwise fetches a fresh one
    and falls back to a stale cached rate if the API is down.
    """
    from_ccy, to_ccy = from_ccy.upper(), to_ccy.upper()
    currency_info(from_ccy)
    currency_info(to_ccy)
    if from_ccy == to_ccy:
        return Decimal("1")

    cached = _cached(db, from_ccy, to_ccy)
    if cached and cached.updated_at and datetime.utcnow() - cached.updated_at < CACHE_TTL:
        return to_decimal(cached.rate)

    try:
        rates = _fetch_latest(from_ccy)
        rate = rates.get(to_ccy)
        if rate is None:
            raise ExchangeRateUnavailable(f"Rate not available for {from_ccy} to {to_ccy}")
    except (requests.RequestException, ExchangeRateUnavailable, ValueError) as e:
        if cached:
            log.warning("using stale %s->%s rate: %s", from_ccy, to_ccy, e)
            return to_decimal(cached.rate)
        raise ExchangeRateUnavailable(str(e)) from e

    _store(db, cached, from_ccy, to_ccy, rate)
    return rate


def get_all_rates(db: Session, base: str) -> Dict[str, Decimal]:
    """Rates from `base` to every supported currency; cached rows on API failure."""
    base = base.upper()
    currency_info(base)
    try:
        latest = _fetch_latest(base)
        return {code: latest[code] for code in CURRENCIES if code in latest}
    except (requests.RequestException, ExchangeRateUnavailable, ValueError) as e:
        log.warning("rate list for %s served from cache: %s", base, e)
        rows = db.query(ExchangeRate).filter(ExchangeRate.from_currency == base).all()
        return {r.to_currency: to_decimal(r.rate) for r in rows}
