from datetime import date, datetime, timedelta
from decimal import Decimal

from invoice_pro.mailer import MailResult
from invoice_pro.models import ExchangeRate
from invoice_pro.services import exchange_rates, reminder_runner
from invoice_pro.services.exchange_rates import ExchangeRateUnavailable


def dec(v) -> Decimal:
    return Decimal(str(v))


def new_invoice(client, **kw):
    body = {
        "invoice_number": "INV-1001",
        "client_name": "Acme Ltd",
        "to_email": "billing@acme.co",
        "currency": "USD",
        "total": "1000.00",
        "issue_date": "2024-12-11",
        "terms_type": "net_30",
    }
    body.update(kw)
    return client.post("/api/invoices", json=body)


# ---------- invoices / payments ----------

def test_create_invoice_computes_due_date(client):
    r = new_invoice(client)
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["due_date"] == "2025-01-10"
    assert data["status"] == "sent"
    assert dec(data["balance_due"]) == Decimal("1000")


def test_duplicate_invoice_number(client):
    assert new_invoice(client).status_code == 200
    r = new_invoice(client)
    assert r.status_code == 409


def test_unknown_currency_is_rejected(client):
    r = new_invoice(client, currency="XYZ")
    assert r.status_code == 400
    assert "XYZ" in r.json()["detail"]


def test_missing_invoice(client):
    assert client.get("/api/invoices/999").status_code == 404


def test_payment_settles_invoice(client, make_invoice):
    inv = make_invoice()
    r = client.post("/api/payments/record", json={"invoice_id": inv.id, "amount": "400"})
    assert r.json()["status"] == "sent"
    assert r.json()["balance_due"] == "600.00"

    r = client.post("/api/payments/record", json={"invoice_id": inv.id, "amount": "650"})
    data = r.json()
    assert data["status"] == "paid"
    assert data["balance_due"] == "0.00"
    assert data["overpaid"] == "50.00"


def test_payment_must_be_positive(client, make_invoice):
    inv = make_invoice()
    r = client.post("/api/payments/record", json={"invoice_id": inv.id, "amount": "0"})
    assert r.status_code == 400


# ---------- late fees ----------

def test_preview_monthly_fee(client):
    r = client.post("/api/late_fees/preview", json={
        "total": "1000.00",
        "due_date": "2025-01-10",
        "current_date": "2025-02-10",
        "currency": "USD",
    })
    data = r.json()
    assert data["applies"] is True
    assert data["days_overdue"] == 31
    assert dec(data["fee"]) == Decimal("30.00")
    assert dec(data["new_total"]) == Decimal("1030.00")


def test_preview_compound_daily(client):
    r = client.post("/api/late_fees/preview", json={
        "total": "1000.00",
        "due_date": "2025-01-10",
        "current_date": "2025-01-20",
        "currency": "USD",
        "policy": {"fee_type": "percentage_daily", "fee_amount": "1", "compound_daily": True},
    })
    assert dec(r.json()["fee"]) == Decimal("104.62")


def test_preview_not_overdue(client):
    r = client.post("/api/late_fees/preview", json={
        "total": "1000.00", "due_date": "2025-01-10", "current_date": "2025-01-10",
    })
    data = r.json()
    assert data["applies"] is False
    assert dec(data["fee"]) == 0


def test_preview_rejects_invalid_policy(client):
    r = client.post("/api/late_fees/preview", json={
        "total": "1000.00",
        "due_date": "2025-01-10",
        "policy": {"fee_amount": "-1"},
    })
    assert r.status_code == 400


def test_settings_round_trip(client):
    r = client.get("/api/late_fees/settings")
    assert r.json()["fee_type"] == "percentage_monthly"

    r = client.put("/api/late_fees/settings", json={
        "enabled": True,
        "grace_period_days": 5,
        "fee_type": "percentage",   # legacy alias
        "fee_amount": "2",
        "max_fee_percentage": "10",
        "compound_daily": False,
    })
    assert r.status_code == 200
    assert r.json()["fee_type"] == "percentage_monthly"
    assert client.get("/api/late_fees/settings").json()["grace_period_days"] == 5

    r = client.put("/api/late_fees/settings", json={"fee_type": "weekly"})
    assert r.status_code == 400


def test_apply_invoice_late_fee(client, make_invoice):
    inv = make_invoice()
    r = client.get(f"/api/late_fees/invoices/{inv.id}", params={"as_of": "2025-01-11"})
    assert dec(r.json()["fee"]) == Decimal("15.00")

    r = client.post(f"/api/late_fees/invoices/{inv.id}/apply", params={"as_of": "2025-01-11"})
    data = r.json()
    assert dec(data["late_fee"]) == Decimal("15.00")
    assert dec(data["balance_due"]) == Decimal("1015.00")

    # same day again: replaced, not added
    r = client.post(f"/api/late_fees/invoices/{inv.id}/apply", params={"as_of": "2025-01-11"})
    assert dec(r.json()["balance_due"]) == Decimal("1015.00")


# ---------- reminders ----------

def test_default_ladder_is_seeded(client):
    offsets = [s["day_offset"] for s in client.get("/api/reminders/ladder").json()]
    assert offsets == [-3, 0, 1, 7, 14, 30]


def test_duplicate_ladder_offset(client):
    r = client.post("/api/reminders/ladder", json={"day_offset": 3, "kind": "overdue", "subject": "Nudge"})
    assert r.status_code == 200
    r = client.post("/api/reminders/ladder", json={"day_offset": 3, "kind": "overdue", "subject": "Again"})
    assert r.status_code == 409


def test_ladder_kind_is_validated(client):
    r = client.post("/api/reminders/ladder", json={"day_offset": 2, "kind": "late", "subject": "x"})
    assert r.status_code == 422


def test_process_and_preview(client, make_invoice, monkeypatch):
    calls = []

    def fake_send(inv, entry):
        calls.append(entry.day_offset)
        return MailResult(True, message_id="m-1")

    monkeypatch.setattr(reminder_runner, "send_reminder_for_invoice", fake_send)
    inv = make_invoice()

    r = client.get(f"/api/reminders/invoices/{inv.id}/preview", params={"as_of": "2025-01-17"})
    data = r.json()
    assert data["day_offset"] == 7
    assert data["matched"] is True
    assert data["already_sent"] is False

    r = client.post("/api/reminders/process", params={"as_of": "2025-01-17"})
    assert r.json()["reminders_sent"] == 1
    assert r.json()["status_updates"] == 1
    assert calls == [7]

    r = client.post("/api/reminders/process", params={"as_of": "2025-01-17"})
    assert r.json()["reminders_sent"] == 0
    assert r.json()["skipped"] == 1

    r = client.get(f"/api/reminders/invoices/{inv.id}/preview", params={"as_of": "2025-01-17"})
    assert r.json()["already_sent"] is True

    status = client.get("/api/reminders/status").json()
    assert status["recent_reminders"][0]["day_offset"] == 7


def test_preview_day_without_reminder(client, make_invoice):
    inv = make_invoice()
    r = client.get(f"/api/reminders/invoices/{inv.id}/preview", params={"as_of": "2025-01-12"})
    assert r.json()["matched"] is False
    assert r.json()["reminder"] is None


# ---------- currency ----------

def test_round_endpoint(client):
    r = client.post("/api/currency/round", json={"amount": "19.005", "currency": "usd"})
    data = r.json()
    assert dec(data["amount"]) == Decimal("19.01")
    assert data["currency"] == "USD"
    assert data["formatted"] == "$19.01"

    r = client.post("/api/currency/round", json={"amount": "19.4", "currency": "JPY"})
    assert dec(r.json()["amount"]) == Decimal("19")


def test_currency_list(client):
    data = client.get("/api/currency").json()
    assert "USD" in data["popular"]
    kwd = next(c for c in data["currencies"] if c["code"] == "KWD")
    assert kwd["decimal_places"] == 3


def test_rate_is_fetched_and_cached(client, db, monkeypatch):
    fetches = []

    def fake_fetch(base):
        fetches.append(base)
        return {"EUR": Decimal("0.9"), "GBP": Decimal("0.8")}

    monkeypatch.setattr(exchange_rates, "_fetch_latest", fake_fetch)

    r = client.get("/api/currency/rate", params={"from": "usd", "to": "EUR", "amount": "100"})
    data = r.json()
    assert data["converted"] == "90.00"
    assert data["formatted"] == "€90.00"

    client.get("/api/currency/rate", params={"from": "USD", "to": "EUR"})
    assert fetches == ["USD"]
    assert db.query(ExchangeRate).count() == 1


def test_stale_rate_is_used_when_api_is_down(client, db, monkeypatch):
    db.add(ExchangeRate(
        from_currency="USD", to_currency="EUR", rate=Decimal("0.85"),
        updated_at=datetime.utcnow() - timedelta(days=2),
    ))
    db.commit()

    def down(base):
        raise ExchangeRateUnavailable("Exchange rate API error: 503")

    monkeypatch.setattr(exchange_rates, "_fetch_latest", down)
    r = client.get("/api/currency/rate", params={"from": "USD", "to": "EUR", "amount": "10"})
    assert r.status_code == 200
    assert r.json()["converted"] == "8.50"

    r = client.get("/api/currency/rate", params={"from": "USD", "to": "GBP"})
    assert r.status_code == 503


def test_convert_invoice(client, make_invoice, monkeypatch):
    monkeypatch.setattr(exchange_rates, "_fetch_latest", lambda base: {"JPY": Decimal("151.555")})
    inv = make_invoice(total=Decimal("19.99"))

    r = client.post(f"/api/currency/invoices/{inv.id}/convert", json={"target_currency": "jpy"})
    data = r.json()
    assert data["converted"]["total"] == "3030"
    assert data["saved"] is False
    assert client.get(f"/api/invoices/{inv.id}").json()["currency"] == "USD"

    r = client.post(f"/api/currency/invoices/{inv.id}/convert", json={"target_currency": "JPY", "save": True})
    inv_out = client.get(f"/api/invoices/{inv.id}").json()
    assert inv_out["currency"] == "JPY"
    assert dec(inv_out["balance_due"]) == Decimal("3030")


# ---------- recurring ----------

def test_recurring_generation(client, make_invoice):
    template = make_invoice(issue_date=date(2025, 1, 31), due_date=date(2025, 3, 2))
    r = client.post("/api/recurring", json={
        "template_invoice_id": template.id,
        "frequency": "monthly",
        "start_date": "2025-01-31",
        "end_date": "2025-04-15",
        "auto_send": True,
    })
    assert r.status_code == 200, r.text
    schedule_id = r.json()["id"]
    assert r.json()["next_invoice_date"] == "2025-02-28"

    assert client.post("/api/recurring/generate-due", params={"as_of": "2025-02-27"}).json()["generated"] == 0

    res = client.post("/api/recurring/generate-due", params={"as_of": "2025-02-28"}).json()
    assert res["generated"] == 1
    new = client.get(f"/api/invoices/{res['invoice_ids'][0]}").json()
    assert new["invoice_number"] == f"{template.invoice_number}-{schedule_id}-1"
    assert new["issue_date"] == "2025-02-28"
    assert new["due_date"] == "2025-03-30"
    assert new["status"] == "sent"

    res = client.post("/api/recurring/generate-due", params={"as_of": "2025-03-28"}).json()
    assert res["generated"] == 1
    assert res["deactivated"] == 1      # next run 2025-04-28 is past end_date
    assert client.get("/api/recurring", params={"active": True}).json() == []


def test_recurring_rejects_unknown_frequency(client, make_invoice):
    r = client.post("/api/recurring", json={
        "template_invoice_id": make_invoice().id,
        "frequency": "daily",
        "start_date": "2025-01-01",
    })
    assert r.status_code == 400


def _monthly_schedule(client, template_id, start="2025-01-01"):
    r = client.post("/api/recurring", json={
        "template_invoice_id": template_id,
        "frequency": "monthly",
        "start_date": start,
        "auto_send": True,
    })
    assert r.status_code == 200, r.text
    return r.json()["id"]


def test_schedules_sharing_a_template(client, make_invoice):
    template = make_invoice(invoice_number="TPL")
    first = _monthly_schedule(client, template.id)
    second = _monthly_schedule(client, template.id)

    res = client.post("/api/recurring/generate-due", params={"as_of": "2025-02-01"})
    assert res.status_code == 200
    data = res.json()
    assert data["generated"] == 2
    assert data["errors"] == []
    numbers = {client.get(f"/api/invoices/{i}").json()["invoice_number"] for i in data["invoice_ids"]}
    assert numbers == {f"TPL-{first}-1", f"TPL-{second}-1"}


def test_taken_invoice_number_skips_only_that_schedule(client, make_invoice):
    template = make_invoice(invoice_number="TPL")
    blocked = _monthly_schedule(client, template.id)
    other = _monthly_schedule(client, template.id)
    make_invoice(invoice_number=f"TPL-{blocked}-1")

    res = client.post("/api/recurring/generate-due", params={"as_of": "2025-02-01"})
    assert res.status_code == 200
    data = res.json()
    assert data["generated"] == 1
    assert len(data["errors"]) == 1
    assert f"TPL-{blocked}-1" in data["errors"][0]

    schedules = {s["id"]: s for s in client.get("/api/recurring").json()}
    assert schedules[blocked]["invoices_generated"] == 0
    assert schedules[blocked]["next_invoice_date"] == "2025-02-01"
    assert schedules[other]["invoices_generated"] == 1
    assert schedules[other]["next_invoice_date"] == "2025-03-01"


def test_emptied_ladder_stays_empty(client, make_invoice, monkeypatch):
    for step in client.get("/api/reminders/ladder").json():
        assert client.delete(f"/api/reminders/ladder/{step['id']}").status_code == 200
    assert client.get("/api/reminders/ladder").json() == []

    calls = []
    monkeypatch.setattr(
        reminder_runner, "send_reminder_for_invoice",
        lambda inv, entry: calls.append(entry) or MailResult(True, message_id="m-1"),
    )
    make_invoice()
    r = client.post("/api/reminders/process", params={"as_of": "2025-01-11"})
    assert r.json()["reminders_sent"] == 0
    assert calls == []
    assert client.get("/api/reminders/ladder").json() == []


def test_round_very_large_amount(client):
    r = client.post("/api/currency/round", json={"amount": "1e27", "currency": "USD"})
    assert r.status_code == 200, r.text
    assert dec(r.json()["amount"]) == Decimal("1e27")
