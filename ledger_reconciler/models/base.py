"""
Database engine, session management, and base model.

Every model inherits from Base. The engine and session factory are
built once per process (by the CLI command or the app factory) and
handed to whoever needs them; nothing here connects at import time.
"""

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase


class Base(DeclarativeBase):
    pass


def create_store_engine(database_url: str) -> Engine:
    """
    Build the engine for a database URL.

    pool_pre_ping=True tests connections before using them, which
    handles a database that restarted mid-run.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    # autocommit=False: callers decide every commit boundary.
    # autoflush=False: SQL is only sent on explicit flush/commit.
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
    )


# --- Dependency for FastAPI ---
def get_db(request: Request):
    """
    Provide a database session for a single request.

    The session factory is built once when the app starts and
    kept on app.state. The try/finally guarantees the session is
    closed even if the endpoint raises.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
