"""FastAPI application entry point."""

import logging
import logging.config
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from expense_ledger.api.routes import (
    accounts,
    categories,
    commands,
    currencies,
    debts,
    health,
    keywords,
    rates,
    transactions,
    transfers,
)
from expense_ledger.core.config import settings
from expense_ledger.core.exceptions import AppException, app_exception_handler
from expense_ledger.core.middleware import RequestLoggingMiddleware
from expense_ledger.db.base import Base
from expense_ledger.db.session import AsyncSessionLocal, engine
from expense_ledger.services.currency_service import CurrencyService

# Configure logging
logging.config.dictConfig(settings.LOGGING_CONFIG)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})")

    async with engine.begin() as conn:
        # Create tables (use Alembic in production)
        if settings.ENVIRONMENT == "development":
            await conn.run_sync(Base.metadata.create_all)

    if settings.ENVIRONMENT == "development":
        async with AsyncSessionLocal() as session:
            await CurrencyService(session).seed_defaults()

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_CREDENTIALS,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
)

# Middleware is applied in reverse order, so this is the outermost layer
app.add_middleware(RequestLoggingMiddleware)

# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(accounts.router, prefix="/api/v1/accounts", tags=["accounts"])
app.include_router(categories.router, prefix="/api/v1/categories", tags=["categories"])
app.include_router(keywords.router, prefix="/api/v1/keywords", tags=["keywords"])
app.include_router(currencies.router, prefix="/api/v1/currencies", tags=["currencies"])
app.include_router(transactions.router, prefix="/api/v1/transactions", tags=["transactions"])
app.include_router(transfers.router, prefix="/api/v1/transfers", tags=["transfers"])
app.include_router(debts.router, prefix="/api/v1/debts", tags=["debts"])
app.include_router(rates.router, prefix="/api/v1/rates", tags=["rates"])
app.include_router(commands.router, prefix="/api/v1/commands", tags=["commands"])
