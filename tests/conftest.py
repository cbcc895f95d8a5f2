import os

# database.py refuses to import without a DB_URL
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.pop("POSTMARK_SERVER_TOKEN", None)

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from invoice_pro.database import Base, get_db
from invoice_pro.main import app
from invoice_pro.models import Invoice
from invoice_pro.services.invoice_logic import recalc_balance


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_invoice(db):
    counter = {"n": 0}

    def _make(**kw) -> Invoice:
        counter["n"] += 1
        fields = dict(
            invoice_number=f"INV-{counter['n']:04d}",
            client_name="Acme Ltd",
            to_email="billing@acme.co",
            currency="USD",
            total=Decimal("1000.00"),
            late_fee=Decimal("0"),
            amount_paid=Decimal("0"),
            issue_date=date(2024, 12, 11),
            due_date=date(2025, 1, 10),
            status="sent",
            reminder_count=0,
        )
        fields.update(kw)
        inv = Invoice(**fields)
        recalc_balance(inv)
        db.add(inv)
        db.commit()
        db.refresh(inv)
        return inv

    return _make
