"""
Daily Ledger Service: FastAPI application.

This is the entry point for the application.
All routers are registered here.
"""

from fastapi import FastAPI

from daily_ledger.config import get_settings
from daily_ledger.events import LedgerEventHub
from daily_ledger.logging_config import configure_logging
from daily_ledger.api.health import router as health_router
from daily_ledger.api.daily_ledger import router as daily_ledger_router
from daily_ledger.api.payment_channels import router as payment_channels_router

settings = get_settings()
configure_logging()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Daily cash ledger: merged entries, summaries and manual transactions",
)

# Consumers that need to react to ledger changes subscribe here
# and unsubscribe on shutdown.
app.state.ledger_events = LedgerEventHub()

# Register routers
app.include_router(health_router)
app.include_router(daily_ledger_router)
app.include_router(payment_channels_router)
