# config/diagnose_env.py
import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent / ".env"
if env_path.exists():
    load_dotenv(env_path.as_posix(), override=True, encoding="utf-8-sig")


def redacted(v: str, keep: int = 4) -> str:
    if not v:
        return "(unset)"
    v = v.strip()
    if len(v) <= keep * 2:
        return "*" * len(v)
    return v[:keep] + "..." + v[-keep:]


print(".env file:", env_path if env_path.exists() else "(missing)")
print("DB_URL:", redacted(os.getenv("DB_URL"), keep=10))
print("POSTMARK_SERVER_TOKEN:", redacted(os.getenv("POSTMARK_SERVER_TOKEN")))
print("REMINDER_FROM_EMAIL:", os.getenv("REMINDER_FROM_EMAIL") or "(default)")
print("EXCHANGE_RATE_API_URL:", os.getenv("EXCHANGE_RATE_API_URL") or "(default)")
print("APP_BASE_URL:", os.getenv("APP_BASE_URL") or "(default)")

if not os.getenv("DB_URL"):
    print("Note: DB_URL is required; the API refuses to start without it")
if not os.getenv("POSTMARK_SERVER_TOKEN"):
    print("Note: reminders will fail until POSTMARK_SERVER_TOKEN is set")
