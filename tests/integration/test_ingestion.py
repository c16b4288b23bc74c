"""Integration tests for transaction ingestion against the test database"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from sqlalchemy.orm import Session

from careguard_gateway.domain.exceptions import InvalidTransactionDataError, PatientNotFoundError
from careguard_gateway.domain.models import AlertSettings, Transaction
from careguard_gateway.infrastructure.database.models import (
    AlertRecord,
    PatientRecord,
    RiskAssessmentRecord,
    TransactionRecord,
)
from careguard_gateway.infrastructure.database.repositories import AlertSettingsRepository
from careguard_gateway.services.ingestion import ingest_transaction

CAREGIVER_ID = "caregiver-1"


def night_withdrawal(amount: str = "1200000") -> Transaction:
    """ATM withdrawal at 02:00 yesterday (UTC)"""
    ts = (datetime.now(timezone.utc) - timedelta(days=1)).replace(hour=2, minute=0, second=0, microsecond=0)
    return Transaction(amount=amount, type="ATM", timestamp=ts)


def daytime_purchase() -> Transaction:
    ts = (datetime.now(timezone.utc) - timedelta(days=1)).replace(hour=12, minute=0, second=0, microsecond=0)
    return Transaction(amount="15000", type="card_payment", timestamp=ts, location="Seoul Jongno")


def test_normal_transaction_is_stored_without_alert(db: Session, stored_patient: PatientRecord):
    outcome = ingest_transaction(db, stored_patient.id, daytime_purchase())
    db.commit()

    assert outcome.anomaly.is_anomaly is False
    assert outcome.alert is None
    assert outcome.profile is None
    assert outcome.notify is False

    stored = db.query(TransactionRecord).one()
    assert stored.is_anomaly is False
    assert stored.risk_score == 0
    assert db.query(AlertRecord).count() == 0
    assert db.query(RiskAssessmentRecord).count() == 0


def test_anomalous_transaction_creates_alert_and_assessment(db: Session, stored_patient: PatientRecord):
    """1,200,000 against a 100,000 daily average at night scores 95"""
    outcome = ingest_transaction(db, stored_patient.id, night_withdrawal())
    db.commit()

    assert outcome.anomaly.risk_score == 95
    assert outcome.notify is True

    stored = db.query(TransactionRecord).one()
    assert stored.is_anomaly is True
    assert stored.risk_score == 95

    alert = db.query(AlertRecord).one()
    assert alert.type == "urgent"
    assert alert.severity == "high"
    assert alert.transaction_id == stored.id
    assert "Lee Soon-ja" in alert.message
    assert "1,200,000" in alert.message

    # week of one night ATM: frequency 15, amount 1.2M*4/3M=1.6 -> 40, timing 100, location 20
    assessment = db.query(RiskAssessmentRecord).one()
    assert (assessment.frequency_score, assessment.amount_score) == (15, 40)
    assert (assessment.timing_score, assessment.location_score) == (100, 20)
    assert assessment.total_score == 39

    db.refresh(stored_patient)
    assert stored_patient.risk_level == "low"


def test_dementia_stage_raises_patient_risk_level(db: Session, stored_patient: PatientRecord):
    stored_patient.dementia_stage = "severe"
    db.commit()

    outcome = ingest_transaction(db, stored_patient.id, night_withdrawal())
    db.commit()

    assert outcome.profile.total_score == 50
    db.refresh(stored_patient)
    assert stored_patient.risk_level == "medium"


def test_assessments_are_appended(db: Session, stored_patient: PatientRecord):
    ingest_transaction(db, stored_patient.id, night_withdrawal())
    ingest_transaction(db, stored_patient.id, night_withdrawal("1500000"))
    db.commit()

    assert db.query(RiskAssessmentRecord).count() == 2
    assert db.query(AlertRecord).count() == 2


def test_disabled_immediate_alerts_suppress_alert_but_not_assessment(db: Session, stored_patient: PatientRecord):
    AlertSettingsRepository(db).upsert_settings(
        CAREGIVER_ID,
        stored_patient.id,
        AlertSettings(threshold=Decimal("100000"), immediate_alerts=False),
    )
    db.commit()

    outcome = ingest_transaction(db, stored_patient.id, night_withdrawal())
    db.commit()

    assert outcome.anomaly.is_anomaly is True
    assert outcome.alert is None
    assert outcome.notify is False
    assert db.query(AlertRecord).count() == 0
    assert db.query(RiskAssessmentRecord).count() == 1


def test_medium_score_below_threshold_alerts_without_notification(db: Session, stored_patient: PatientRecord):
    AlertSettingsRepository(db).upsert_settings(
        CAREGIVER_ID,
        stored_patient.id,
        AlertSettings(threshold=Decimal("2000000"), immediate_alerts=True),
    )
    db.commit()

    # 250,000 vs 100,000/day -> 25, at night -> 20: 45, below both gates
    outcome = ingest_transaction(db, stored_patient.id, night_withdrawal("250000"))
    db.commit()

    assert outcome.anomaly.risk_score == 45
    assert outcome.alert is not None
    assert outcome.alert.type == "medium-risk"
    assert outcome.notify is False


def test_history_window_feeds_scorer(db: Session, stored_patient: PatientRecord):
    """Three earlier ATM withdrawals in the same day add frequency and ATM partials"""
    base = night_withdrawal("10000")
    for hours in (1, 2, 3):
        earlier = Transaction(amount="10000", type="ATM", timestamp=base.timestamp - timedelta(hours=hours))
        ingest_transaction(db, stored_patient.id, earlier)
    db.commit()

    outcome = ingest_transaction(db, stored_patient.id, base)

    # count 3 -> 15, ATM count 3 -> 25, night -> 20
    assert outcome.anomaly.risk_score == 60
    assert outcome.alert.type == "high-risk"


def test_unknown_patient(db: Session):
    with pytest.raises(PatientNotFoundError):
        ingest_transaction(db, 999, daytime_purchase())


@pytest.mark.parametrize("amount", ["abc", "-5", "0", "NaN"])
def test_invalid_amount_is_rejected_before_scoring(db: Session, stored_patient: PatientRecord, amount: str):
    candidate = daytime_purchase()
    candidate.amount = amount

    with pytest.raises(InvalidTransactionDataError):
        ingest_transaction(db, stored_patient.id, candidate)

    assert db.query(TransactionRecord).count() == 0
