"""
Shared test fixtures.

Sets up an isolated SQLite ledger store so tests never touch a real
database. Tables are created before and dropped after every test.
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from ledger_reconciler.main import app
from ledger_reconciler.models import (
    Account,
    AccountKind,
    Base,
    Client,
    Snapshot,
    SnapshotAccount,
    Transaction,
)
from ledger_reconciler.models.base import create_session_factory, create_store_engine, get_db
from ledger_reconciler.services.store import LedgerStore


TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_store_engine(TEST_DATABASE_URL)
TestSessionLocal = create_session_factory(engine)

DEFAULT_ACCOUNTS = [
    ("bank-cibanco-001", "CiBanco", AccountKind.BANK, 0),
    ("cash-001", "Cash", AccountKind.CASH, 0),
]


@pytest.fixture(autouse=True)
def setup_database():
    """Fresh tables for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def store(db_session):
    """LedgerStore over the test session; retries don't sleep."""
    return LedgerStore(db_session, sleep=lambda _: None)


@pytest.fixture
def make_client(db_session):
    """Insert a client with its accounts."""
    def _make(client_id="MTC", fiscal_year_start_month=7, accounts=None):
        client = Client(
            id=client_id,
            name=f"Client {client_id}",
            fiscal_year_start_month=fiscal_year_start_month,
        )
        db_session.add(client)
        for position, (account_id, name, kind, balance) in enumerate(accounts or DEFAULT_ACCOUNTS):
            db_session.add(Account(
                client_id=client_id,
                id=account_id,
                name=name,
                kind=kind,
                currency="MXN",
                balance=balance,
                is_active=True,
                position=position,
            ))
        db_session.commit()
        return client
    return _make


@pytest.fixture
def make_snapshot(db_session):
    """Insert a stored snapshot: balances is [(account_id, name, balance), ...]."""
    def _make(fiscal_year, balances, client_id="MTC"):
        year = str(fiscal_year)
        db_session.add(Snapshot(
            client_id=client_id,
            fiscal_year=year,
            created_at=datetime(int(year), 7, 1),
            accounts=[
                SnapshotAccount(
                    client_id=client_id,
                    fiscal_year=year,
                    account_id=account_id,
                    name=name,
                    balance=balance,
                    position=position,
                )
                for position, (account_id, name, balance) in enumerate(balances)
            ],
        ))
        db_session.commit()
    return _make


@pytest.fixture
def make_transaction(db_session):
    """Insert one ledger transaction (date is naive UTC)."""
    def _make(txn_id, date, amount, client_id="MTC", **fields):
        db_session.add(Transaction(
            client_id=client_id, id=txn_id, date=date, amount=amount, **fields
        ))
        db_session.commit()
    return _make


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    get_db is overridden so the app uses the test session instead
    of building an engine from DATABASE_URL.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
