# savings_pay/main.py
import uvicorn
import os
import logging
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from savings_pay.core.config import settings
from savings_pay.core.database import engine, AsyncSessionLocal, create_db_and_tables
from savings_pay.core.exceptions import (
    AppError,
    app_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
)
from savings_pay.api.v1.api import api_router
from savings_pay.utils.balance import BalanceLedger
from savings_pay.utils.settlement import SettlementEngine, RandomDecider
from savings_pay.utils.vault import get_reference_vault

# Register every table on Base.metadata before create_all runs
from savings_pay.models import goal, payment, payment_method  # noqa: F401

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def build_settlement_engine() -> SettlementEngine:
    """Ledger, vault and decider owned by one engine for the life of the process."""
    return SettlementEngine(
        ledger=BalanceLedger(settings.INITIAL_BALANCE),
        vault=get_reference_vault(settings.REFERENCE_VAULT_BACKEND, AsyncSessionLocal),
        decide=RandomDecider(settings.MANUAL_ACCEPT_RATE, settings.AUTOMATIC_ACCEPT_RATE),
        timeout_seconds=settings.SETTLEMENT_TIMEOUT_SECONDS,
    )

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    openapi_tags=[
        {"name": "pagos", "description": "Payment settlement against the simulated bank balance"},
        {"name": "metas", "description": "Savings goals and their deposits"},
    ],
)

origins = [
    settings.FRONTEND_URL,
    "http://localhost:3000",  # Local development
    "http://localhost:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppError, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# ------------------------------------------------------------
# ROOT ENDPOINT
# ------------------------------------------------------------
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "message": f"{settings.APP_NAME} is running!",
        "version": settings.VERSION,
    }

# ------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ------------------------------------------------------------
@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
    }

# ------------------------------------------------------------
# BUSINESS LOGIC ROUTES
# ------------------------------------------------------------
app.include_router(api_router, prefix="/api")

# ------------------------------------------------------------
# STARTUP / SHUTDOWN
# ------------------------------------------------------------
@app.on_event("startup")
async def on_startup():
    app.state.settlement_engine = build_settlement_engine()
    logger.info(
        f"Settlement engine ready: balance {settings.INITIAL_BALANCE:.2f}, "
        f"references in {settings.REFERENCE_VAULT_BACKEND}"
    )
    if settings.CREATE_TABLES_ON_STARTUP:
        try:
            await create_db_and_tables()
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error(f"Startup error: {str(e)}")
            raise

@app.on_event("shutdown")
async def on_shutdown():
    await engine.dispose()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5500))
    uvicorn.run("savings_pay.main:app", host="0.0.0.0", port=port, reload=False)
