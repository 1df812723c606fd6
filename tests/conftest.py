"""Pytest fixtures for testing"""

import os

# Settings are read at import time; point them at SQLite before the app loads
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from travel_payments.api.main import create_app
from travel_payments.api.dependencies import get_cash_book_client
from travel_payments.infrastructure.database.models import Base
from travel_payments.infrastructure.database.session import get_db
from travel_payments.domain.credits import InMemoryCreditLedger, issue_credit_on_cancellation
from travel_payments.domain.models import Credit


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingCashBook:
    """Stands in for the cash book webhook and keeps what it was sent"""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    async def send_event(self, payload: Dict[str, Any]) -> None:
        self.events.append(payload)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def cash_book() -> RecordingCashBook:
    return RecordingCashBook()


@pytest.fixture
def client(db: Session, cash_book: RecordingCashBook) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cash_book_client] = lambda: cash_book
    return TestClient(app)


@pytest.fixture
def today() -> date:
    return date(2026, 3, 10)


@pytest.fixture
def active_credit(today: date) -> Credit:
    """800.00 credit issued 10 days ago, from a cancellation 10 days before departure"""
    return issue_credit_on_cancellation(
        Decimal("1000.00"),
        10,
        source_client_ref="client_cancelled",
        issued_at=today - timedelta(days=10),
        client_name="Maria Souza",
        destination="Gramado",
    )


@pytest.fixture
def ledger(active_credit: Credit) -> InMemoryCreditLedger:
    return InMemoryCreditLedger([active_credit])
