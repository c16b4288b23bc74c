"""Transaction ingestion - scores, persists and escalates a new transaction"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from careguard_gateway.config import settings
from careguard_gateway.domain.alerting import compose_alert
from careguard_gateway.domain.anomaly import detect_anomaly, parse_amount
from careguard_gateway.domain.exceptions import InvalidTransactionDataError, PatientNotFoundError
from careguard_gateway.domain.models import AlertSettings, AnomalyResult, RiskProfile, Transaction
from careguard_gateway.domain.policy import DEFAULT_POLICY, ScoringPolicy
from careguard_gateway.domain.profiling import assess_risk, should_send_immediate_alert
from careguard_gateway.infrastructure.database.models import AlertRecord, TransactionRecord
from careguard_gateway.infrastructure.database.repositories import (
    AlertRepository,
    AlertSettingsRepository,
    PatientRepository,
    RiskAssessmentRepository,
    TransactionRepository,
    assessment_to_domain,
    patient_to_domain,
    settings_to_domain,
    transaction_to_domain,
)
from careguard_gateway.infrastructure.observability.logging import log_risk_reassessed
from careguard_gateway.infrastructure.observability.metrics import record_alert, record_risk_level, record_scoring

logger = logging.getLogger(__name__)


@dataclass
class IngestionOutcome:
    """Everything the caller needs after a transaction was ingested"""

    transaction: TransactionRecord
    anomaly: AnomalyResult
    alert: Optional[AlertRecord] = None
    profile: Optional[RiskProfile] = None
    notify: bool = False

    def notification_payload(self) -> Dict[str, Any]:
        return {
            "event": "IMMEDIATE_ALERT",
            "alert_id": self.alert.id if self.alert else None,
            "patient_id": self.transaction.patient_id,
            "transaction_id": self.transaction.id,
            "type": self.alert.type if self.alert else None,
            "severity": self.alert.severity if self.alert else None,
            "title": self.alert.title if self.alert else None,
            "message": self.alert.message if self.alert else None,
            "risk_score": self.anomaly.risk_score,
        }


def default_alert_settings() -> AlertSettings:
    return AlertSettings(
        threshold=Decimal(str(settings.default_alert_threshold)),
        immediate_alerts=settings.default_immediate_alerts,
    )


def validate_amount(amount: Any) -> Decimal:
    """Reject amounts that are not positive finite decimals before they are scored"""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise InvalidTransactionDataError(f"Amount is not a number: {amount!r}") from e
    if not value.is_finite() or value <= 0:
        raise InvalidTransactionDataError(f"Amount must be a positive number: {amount!r}")
    return value


def ingest_transaction(
    db: Session,
    patient_id: int,
    candidate: Transaction,
    policy: ScoringPolicy = DEFAULT_POLICY,
    now: Optional[datetime] = None,
) -> IngestionOutcome:
    """
    Score a new transaction and escalate it when anomalous.

    Flow:
    1. Load patient and trailing history (most recent first)
    2. Score the candidate against history and the patient's daily average spend
    3. Persist the transaction with its anomaly result
    4. If anomalous:
       a. create an Alert unless the caregiver disabled immediate alerts
       b. re-profile over history + new transaction, append a RiskAssessment
       c. update the patient's risk level from the new assessment

    The session is flushed, not committed. Callers must serialize ingestion per
    patient; concurrent runs can interleave assessment snapshots.

    Raises:
        PatientNotFoundError: Unknown patient id
        InvalidTransactionDataError: Amount is not a positive number
    """
    validate_amount(candidate.amount)

    patient_repo = PatientRepository(db)
    db_patient = patient_repo.get_patient(patient_id)
    if db_patient is None:
        raise PatientNotFoundError(patient_id)
    patient = patient_to_domain(db_patient)

    transaction_repo = TransactionRepository(db)
    history = [
        transaction_to_domain(t)
        for t in transaction_repo.get_recent_transactions(patient_id, limit=settings.anomaly_history_limit)
    ]

    # 1. Score against the per-day average of the monthly spend
    daily_average = parse_amount(patient.avg_monthly_spending) / settings.spending_average_days
    anomaly = detect_anomaly(candidate, history, daily_average, policy)
    record_scoring(anomaly.is_anomaly, anomaly.risk_score)

    # 2. Persist with the one-time anomaly result
    db_transaction = transaction_repo.create_transaction(patient_id, candidate, anomaly)
    outcome = IngestionOutcome(transaction=db_transaction, anomaly=anomaly)

    if not anomaly.is_anomaly:
        return outcome

    # 3. Alert, gated by the caregiver's settings independently of the score
    settings_repo = AlertSettingsRepository(db)
    db_settings = settings_repo.get_settings(patient.caregiver_id, patient_id)
    alert_settings = settings_to_domain(db_settings) if db_settings else default_alert_settings()

    stored = transaction_to_domain(db_transaction)
    if alert_settings.immediate_alerts:
        draft = compose_alert(patient, stored, anomaly, policy)
        outcome.alert = AlertRepository(db).create_alert(patient_id, db_transaction.id, draft)
        outcome.notify = should_send_immediate_alert(anomaly.risk_score, stored.amount, alert_settings, policy)
        record_alert(draft.type)
    else:
        logger.info(
            "Immediate alerts disabled, alert not created",
            extra={"patient_id": patient_id, "transaction_id": db_transaction.id},
        )

    # 4. Re-profile over the widened history and append a snapshot
    assessment_repo = RiskAssessmentRepository(db)
    latest = assessment_repo.get_latest_assessment(patient_id)
    profile = assess_risk(
        patient,
        [stored, *history],
        latest_assessment=assessment_to_domain(latest) if latest else None,
        now=now,
        policy=policy,
    )
    assessment_repo.create_assessment(patient_id, profile)
    patient_repo.update_risk_level(patient_id, profile.risk_level)
    outcome.profile = profile

    record_risk_level(profile.risk_level)
    log_risk_reassessed(patient_id, profile.total_score, profile.risk_level)
    return outcome
