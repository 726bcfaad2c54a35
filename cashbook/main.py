"""
FastAPI application and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — logging setup, store startup/shutdown
  2. Middleware — CORS and request logging (X-Request-ID)
  3. Exception handlers — maps domain errors to the error envelope
  4. Router registration — mounts all API endpoint groups
  5. Health, ping and version endpoints (no authentication)

Running locally:
    uvicorn cashbook.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cashbook.config import settings
from cashbook.database import StoreProvider, get_store, store
from cashbook.exceptions import register_exception_handlers
from cashbook.logging_config import setup_logging
from cashbook.middleware import RequestLoggingMiddleware
from cashbook.routers import accounts, banks, branches, transactions

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      Configures logging, then starts the store provider. If the database
      is unreachable the app still starts; requests fail fast with 503
      until the reconnect loop succeeds. Missing tables are created on
      every successful connect when DB_CREATE_TABLES is on.

    Shutdown:
      Stops the reconnect loop and disposes of the engine.
    """
    # --- Startup ---
    setup_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
    logger.info("Starting application", extra={"version": settings.APP_VERSION})
    await store.start()
    yield
    # --- Shutdown ---
    await store.dispose()
    logger.info("Application stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Cash ledger API: banks, branches, composite account numbers and transactions",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware (last added = first executed)
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(banks.router, prefix="/banks", tags=["Banks"])
app.include_router(branches.router, prefix="/branches", tags=["Branches"])
app.include_router(accounts.router, prefix="/accounts", tags=["Accounts"])
app.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check(provider: StoreProvider = Depends(get_store)):
    """
    Health check endpoint for deployment probes.

    Reports the store state; returns 503 while the store is not ready so
    load balancers stop routing traffic here.
    """
    if not provider.is_ready:
        return JSONResponse(
            status_code=503,
            content={
                "status": "error",
                "message": "Database not available",
                "store": provider.state.value,
            },
        )
    return {"status": "success", "store": provider.state.value, "version": settings.APP_VERSION}


@app.get("/ping", tags=["Health"])
async def ping():
    return {"status": "success", "message": "pong"}


@app.get("/version", tags=["Health"])
async def version():
    return {"status": "success", "name": settings.APP_NAME, "version": settings.APP_VERSION}
