"""Data access layer for patients, transactions, assessments and alerts"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.orm import Session
from careguard_gateway.infrastructure.database.models import (
    AlertRecord,
    AlertSettingsRecord,
    PatientRecord,
    RiskAssessmentRecord,
    TransactionRecord,
)
from careguard_gateway.domain.models import (
    AlertDraft,
    AlertSettings,
    AnomalyResult,
    Patient,
    RiskAssessmentSnapshot,
    RiskProfile,
    Transaction,
)


def patient_to_domain(row: PatientRecord) -> Patient:
    return Patient(
        id=row.id,
        name=row.name,
        age=row.age,
        caregiver_id=row.caregiver_id,
        risk_level=row.risk_level,
        dementia_stage=row.dementia_stage,
        avg_monthly_spending=Decimal(row.avg_monthly_spending or 0),
    )


def transaction_to_domain(row: TransactionRecord) -> Transaction:
    return Transaction(
        id=row.id,
        patient_id=row.patient_id,
        amount=Decimal(row.amount),
        type=row.type,
        location=row.location,
        merchant=row.merchant,
        description=row.description,
        timestamp=row.timestamp,
        is_anomaly=row.is_anomaly,
        risk_score=row.risk_score,
    )


def assessment_to_domain(row: RiskAssessmentRecord) -> RiskAssessmentSnapshot:
    return RiskAssessmentSnapshot(
        id=row.id,
        patient_id=row.patient_id,
        frequency_score=row.frequency_score,
        amount_score=row.amount_score,
        timing_score=row.timing_score,
        location_score=row.location_score,
        total_score=row.total_score,
        assessment_date=row.assessment_date,
    )


def settings_to_domain(row: AlertSettingsRecord) -> AlertSettings:
    return AlertSettings(
        threshold=Decimal(row.threshold),
        immediate_alerts=row.immediate_alerts,
        sms_alerts=row.sms_alerts,
        daily_summary=row.daily_summary,
    )


class PatientRepository:
    """Repository for monitored patients"""

    def __init__(self, db: Session):
        self.db = db

    def create_patient(self, patient: Patient) -> PatientRecord:
        db_patient = PatientRecord(
            name=patient.name,
            age=patient.age,
            caregiver_id=patient.caregiver_id,
            risk_level=patient.risk_level,
            dementia_stage=patient.dementia_stage,
            avg_monthly_spending=patient.avg_monthly_spending,
        )
        self.db.add(db_patient)
        self.db.flush()
        return db_patient

    def get_patient(self, patient_id: int) -> Optional[PatientRecord]:
        return self.db.get(PatientRecord, patient_id)

    def get_patients_by_caregiver(self, caregiver_id: str) -> List[PatientRecord]:
        return (
            self.db.query(PatientRecord)
            .filter(PatientRecord.caregiver_id == caregiver_id, PatientRecord.is_active.is_(True))
            .order_by(PatientRecord.updated_at.desc(), PatientRecord.id.desc())
            .all()
        )

    def update_risk_level(self, patient_id: int, risk_level: str) -> None:
        """The only mutation of a patient the scoring flow performs"""
        db_patient = self.get_patient(patient_id)
        if db_patient is not None:
            db_patient.risk_level = risk_level
            self.db.flush()


class TransactionRepository:
    """Repository for scored transactions"""

    def __init__(self, db: Session):
        self.db = db

    def create_transaction(self, patient_id: int, transaction: Transaction, anomaly: AnomalyResult) -> TransactionRecord:
        """Persist a candidate together with its one-time anomaly result"""
        db_transaction = TransactionRecord(
            patient_id=patient_id,
            amount=Decimal(str(transaction.amount)),
            type=getattr(transaction.type, "value", transaction.type),
            location=transaction.location,
            merchant=transaction.merchant,
            description=transaction.description,
            timestamp=transaction.timestamp,
            is_anomaly=anomaly.is_anomaly,
            risk_score=anomaly.risk_score,
        )
        self.db.add(db_transaction)
        self.db.flush()
        return db_transaction

    def get_recent_transactions(self, patient_id: int, limit: int = 50) -> List[TransactionRecord]:
        """Most recent first"""
        return (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.patient_id == patient_id)
            .order_by(TransactionRecord.timestamp.desc(), TransactionRecord.id.desc())
            .limit(limit)
            .all()
        )

    def get_transactions_since(self, patient_id: int, since: datetime) -> List[TransactionRecord]:
        return (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.patient_id == patient_id, TransactionRecord.timestamp >= since)
            .order_by(TransactionRecord.timestamp.desc())
            .all()
        )


class RiskAssessmentRepository:
    """Append-only repository for risk assessment snapshots"""

    def __init__(self, db: Session):
        self.db = db

    def create_assessment(self, patient_id: int, profile: RiskProfile) -> RiskAssessmentRecord:
        db_assessment = RiskAssessmentRecord(
            patient_id=patient_id,
            frequency_score=profile.factors.frequency,
            amount_score=profile.factors.amount,
            timing_score=profile.factors.timing,
            location_score=profile.factors.location,
            total_score=profile.total_score,
        )
        self.db.add(db_assessment)
        self.db.flush()
        return db_assessment

    def get_latest_assessment(self, patient_id: int) -> Optional[RiskAssessmentRecord]:
        return (
            self.db.query(RiskAssessmentRecord)
            .filter(RiskAssessmentRecord.patient_id == patient_id)
            .order_by(RiskAssessmentRecord.assessment_date.desc(), RiskAssessmentRecord.id.desc())
            .first()
        )


class AlertRepository:
    """Repository for caregiver alerts"""

    def __init__(self, db: Session):
        self.db = db

    def create_alert(self, patient_id: int, transaction_id: Optional[int], draft: AlertDraft) -> AlertRecord:
        db_alert = AlertRecord(
            patient_id=patient_id,
            transaction_id=transaction_id,
            type=draft.type,
            title=draft.title,
            message=draft.message,
            severity=draft.severity,
        )
        self.db.add(db_alert)
        self.db.flush()
        return db_alert

    def get_alert(self, alert_id: int) -> Optional[AlertRecord]:
        return self.db.get(AlertRecord, alert_id)

    def get_alerts_by_patient(self, patient_id: int, limit: int = 20) -> List[AlertRecord]:
        return (
            self.db.query(AlertRecord)
            .filter(AlertRecord.patient_id == patient_id)
            .order_by(AlertRecord.created_at.desc(), AlertRecord.id.desc())
            .limit(limit)
            .all()
        )

    def get_unread_alerts(self, caregiver_id: str) -> List[AlertRecord]:
        return (
            self.db.query(AlertRecord)
            .join(PatientRecord, AlertRecord.patient_id == PatientRecord.id)
            .filter(PatientRecord.caregiver_id == caregiver_id, AlertRecord.is_read.is_(False))
            .order_by(AlertRecord.created_at.desc(), AlertRecord.id.desc())
            .all()
        )

    def mark_read(self, alert: AlertRecord) -> AlertRecord:
        alert.is_read = True
        self.db.flush()
        return alert

    def mark_resolved(self, alert: AlertRecord) -> AlertRecord:
        alert.is_resolved = True
        self.db.flush()
        return alert


class AlertSettingsRepository:
    """Repository for per (caregiver, patient) alert settings"""

    def __init__(self, db: Session):
        self.db = db

    def get_settings(self, caregiver_id: str, patient_id: int) -> Optional[AlertSettingsRecord]:
        return (
            self.db.query(AlertSettingsRecord)
            .filter(
                AlertSettingsRecord.caregiver_id == caregiver_id,
                AlertSettingsRecord.patient_id == patient_id,
            )
            .first()
        )

    def upsert_settings(self, caregiver_id: str, patient_id: int, alert_settings: AlertSettings) -> AlertSettingsRecord:
        db_settings = self.get_settings(caregiver_id, patient_id)
        if db_settings is None:
            db_settings = AlertSettingsRecord(caregiver_id=caregiver_id, patient_id=patient_id)
            self.db.add(db_settings)

        db_settings.immediate_alerts = alert_settings.immediate_alerts
        db_settings.sms_alerts = alert_settings.sms_alerts
        db_settings.daily_summary = alert_settings.daily_summary
        db_settings.threshold = alert_settings.threshold
        self.db.flush()
        return db_settings
