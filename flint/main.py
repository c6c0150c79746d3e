"""
Flint — payment and trade submission backend.

Thin REST layer over Teller (bank-to-card payments) and SnapTrade
(preview-then-place trading). The client workflow in flint.client drives
these endpoints: capability check, prepare/preview, commit, then status
polling.

Start the server:
    uvicorn flint.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from flint.api.accounts import router as accounts_router
from flint.api.csrf import router as csrf_router
from flint.api.errors import register_error_handlers
from flint.api.health import router as health_router
from flint.api.payments import router as payments_router
from flint.api.trades import router as trades_router
from flint.config import settings
from flint.database import init_db

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    await init_db()
    yield


app = FastAPI(
    title="Flint",
    description=(
        "Personal-finance aggregation backend: capability-checked card payments "
        "through Teller and preview-then-place trading through SnapTrade."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

register_error_handlers(app)

app.include_router(health_router)
app.include_router(csrf_router, prefix="/api")
app.include_router(accounts_router, prefix="/api")
app.include_router(payments_router, prefix="/api")
app.include_router(trades_router, prefix="/api")
