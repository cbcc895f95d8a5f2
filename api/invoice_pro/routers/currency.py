# api/invoice_pro/routers/currency.py
from datetime import datetime
from decimal import Decimal
from typing import List

from fastapi import Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..shared import APIRouter
from ..database import get_db
from ..schemas.billing import CurrencyOut, RoundIn, RoundOut
from ..services.currency import (
    CURRENCIES,
    POPULAR_CURRENCIES,
    convert_amount,
    currency_info,
    format_currency,
    round_to_currency_precision,
)
from ..services.exchange_rates import ExchangeRateUnavailable, get_all_rates, get_exchange_rate
from ..services.invoice_logic import recalc_balance
from .invoices import get_invoice_or_404

router = APIRouter(prefix="/api/currency", tags=["currency"])


class ConvertInvoiceIn(BaseModel):
    target_currency: str
    save: bool = False


def _rate_or_503(db: Session, from_ccy: str, to_ccy: str) -> Decimal:
    try:
        return get_exchange_rate(db, from_ccy, to_ccy)
    except ExchangeRateUnavailable as e:
        raise HTTPException(503, str(e))


@router.get("")
def list_currencies():
    currencies: List[CurrencyOut] = [
        CurrencyOut(code=code, name=info.name, symbol=info.symbol, decimal_places=info.decimal_places)
        for code, info in CURRENCIES.items()
    ]
    return {"currencies": currencies, "total": len(currencies), "popular": POPULAR_CURRENCIES}


@router.get("/rate")
def exchange_rate(
    from_: str = Query("USD", alias="from"),
    to: str = Query(...),
    amount: Decimal = Query(Decimal("1")),
    db: Session = Depends(get_db),
):
    rate = _rate_or_503(db, from_, to)
    converted = convert_amount(amount, rate, to)
    return {
        "from": from_.upper(),
        "to": to.upper(),
        "rate": str(rate),
        "amount": str(amount),
        "converted": str(converted),
        "formatted": format_currency(converted, to),
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/rates")
def exchange_rates(base: str = "USD", db: Session = Depends(get_db)):
    rates = get_all_rates(db, base)
    return {
        "base": base.upper(),
        "rates": {k: str(v) for k, v in rates.items()},
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.post("/round", response_model=RoundOut)
def round_amount(body: RoundIn):
    amount = round_to_currency_precision(body.amount, body.currency)
    return RoundOut(amount=amount, currency=body.currency.upper(), formatted=format_currency(amount, body.currency))


@router.post("/invoices/{invoice_id}/convert")
def convert_invoice(invoice_id: int, body: ConvertInvoiceIn, db: Session = Depends(get_db)):
    inv = get_invoice_or_404(db, invoice_id)
    target = body.target_currency.strip().upper()
    currency_info(target)

    source = inv.currency
    rate = _rate_or_503(db, source, target)
    converted = {
        "currency": target,
        "total": convert_amount(inv.total, rate, target),
        "late_fee": convert_amount(inv.late_fee or 0, rate, target),
        "amount_paid": convert_amount(inv.amount_paid or 0, rate, target),
    }
    original = {
        "currency": source,
        "total": round_to_currency_precision(inv.total, source),
        "late_fee": round_to_currency_precision(inv.late_fee or 0, source),
        "amount_paid": round_to_currency_precision(inv.amount_paid or 0, source),
    }

    if body.save:
        inv.currency = target
        inv.total = converted["total"]
        inv.late_fee = converted["late_fee"]
        inv.amount_paid = converted["amount_paid"]
        recalc_balance(inv)
        db.commit()
        db.refresh(inv)

    return {
        "success": True,
        "rate": str(rate),
        "original": {k: str(v) for k, v in original.items()},
        "converted": {k: str(v) for k, v in converted.items()},
        "saved": body.save,
        "message": f"Converted from {source} to {target} at rate {rate:.6f}",
    }
