# api/invoice_pro/database.py
import os
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from pathlib import Path

env_path = Path(__file__).resolve().parents[2] / "config" / ".env"
if env_path.exists():
    load_dotenv(env_path.as_posix(), override=True, encoding="utf-8-sig")

DB_URL = os.getenv("DB_URL")
if not DB_URL:
    raise RuntimeError("Invoice Pro billing API: DB_URL is not set (config/.env or environment)")

# sqlite connections are shared with FastAPI's threadpool
connect_args = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}

engine = create_engine(DB_URL, pool_pre_ping=True, connect_args=connect_args, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()


def get_db():
    """Request-scoped session; closed after the response is sent."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
