# api/invoice_pro/routers/billing_scheduler.py
import os
import time
import logging

import requests

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [scheduler] %(levelname)s: %(message)s"
)
log = logging.getLogger("scheduler")

BASE = os.environ.get("APP_BASE_URL", "http://127.0.0.1:8000").rstrip("/")
INTERVAL = int(os.environ.get("SCHED_INTERVAL_SECONDS", "3600"))

# daily jobs; the endpoints are idempotent so an hourly tick is fine
URLS = [
    "/api/recurring/generate-due",
    "/api/reminders/process",
]

def tick() -> int:
    failures = 0
    for path in URLS:
        url = BASE + path
        try:
            r = requests.post(url, timeout=30)
        except requests.RequestException:
            log.exception("POST %s failed", url)
            failures += 1
            continue
        log.info("POST %s -> %s", url, r.status_code)
        if r.status_code >= 400:
            log.warning("body: %s", r.text[:500])
            failures += 1
    return failures

def main():
    log.info("starting base=%s interval=%ss", BASE, INTERVAL)
    while True:
        t0 = time.time()
        tick()
        time.sleep(max(1, INTERVAL - int(time.time() - t0)))

if __name__ == "__main__":
    main()
