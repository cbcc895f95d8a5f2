# api/invoice_pro/main.py
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .routers.invoices import router as invoices_router
from .routers.payments import router as payments_router
from .routers.late_fees import router as late_fees_router
from .routers.reminders import router as reminders_router
from .routers.currency import router as currency_router
from .routers.recurring import router as recurring_router

from .errors import ConfigurationError
from .models import Base
from .database import engine

app = FastAPI(title="Invoice Pro billing API")

app.include_router(invoices_router)
app.include_router(payments_router)
app.include_router(late_fees_router)
app.include_router(reminders_router)
app.include_router(currency_router)
app.include_router(recurring_router)


@app.on_event("startup")
def ensure_tables():
    Base.metadata.create_all(bind=engine)


# Invalid fee policy / ladder / currency / frequency coming from pure code
@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_400_BAD_REQUEST)


@app.get("/health", include_in_schema=False)
def health():
    return {"ok": True}
