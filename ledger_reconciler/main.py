"""
Ledger Reconciler — FastAPI Application.

The HTTP entry point. The store engine is created once at startup
and shared through app.state; every router gets sessions from
get_db().
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ledger_reconciler.config import get_settings
from ledger_reconciler.logging_config import configure_logging
from ledger_reconciler.models.base import create_session_factory, create_store_engine
from ledger_reconciler.api.health import router as health_router
from ledger_reconciler.api.balances import router as balances_router
from ledger_reconciler.api.credit import router as credit_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    engine = create_store_engine(settings.DATABASE_URL)
    app.state.session_factory = create_session_factory(engine)
    yield
    engine.dispose()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Snapshot + replay balances, record linking and credit ledgers",
        lifespan=lifespan,
    )

    # Register routers
    app.include_router(health_router)
    app.include_router(balances_router)
    app.include_router(credit_router)
    return app


app = create_app()
