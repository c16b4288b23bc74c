"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from careguard_gateway.api.dependencies import get_notifier_client
from careguard_gateway.api.main import create_app
from careguard_gateway.domain.models import Patient, Transaction
from careguard_gateway.infrastructure.database.models import Base, PatientRecord
from careguard_gateway.infrastructure.database.repositories import PatientRepository
from careguard_gateway.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

CAREGIVER_ID = "caregiver-1"


class FakeNotifier:
    """Records alert events instead of calling the webhook"""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    async def send_alert_event(self, payload: Dict[str, Any]) -> None:
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
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def client(db: Session, notifier: FakeNotifier) -> TestClient:
    """Create FastAPI test client with test database and recorded notifications"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier_client] = lambda: notifier
    return TestClient(app)


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for pure scoring tests (noon UTC)"""
    return datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_transaction():
    """Factory for domain transactions with sensible defaults"""

    def _make(
        amount: str | Decimal = "10000",
        type: str = "card_payment",
        timestamp: datetime | None = None,
        **kwargs,
    ) -> Transaction:
        return Transaction(
            amount=amount,
            type=type,
            timestamp=timestamp or datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc),
            **kwargs,
        )

    return _make


@pytest.fixture
def patient() -> Patient:
    return Patient(
        id=1,
        name="Kim Young-ja",
        age=78,
        caregiver_id=CAREGIVER_ID,
        avg_monthly_spending=Decimal("900000"),
    )


@pytest.fixture
def stored_patient(db: Session) -> PatientRecord:
    """Patient persisted in the test database; 3,000,000 monthly = 100,000 a day"""
    db_patient = PatientRepository(db).create_patient(
        Patient(
            name="Lee Soon-ja",
            age=81,
            caregiver_id=CAREGIVER_ID,
            avg_monthly_spending=Decimal("3000000"),
        )
    )
    db.commit()
    return db_patient
