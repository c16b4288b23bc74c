"""Patient endpoints - registration, dashboard summary, risk profile, stats and alert settings"""

from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from careguard_gateway.api.dependencies import get_scoring_policy
from careguard_gateway.api.v1.schemas import (
    AlertSettingsResponse,
    AlertSettingsSchema,
    DailySpendingResponse,
    PatientCreateRequest,
    PatientResponse,
    PatientSummary,
    RiskAssessmentSchema,
    RiskFactorsSchema,
    RiskProfileResponse,
    SpendingStatsResponse,
)
from careguard_gateway.config import settings
from careguard_gateway.domain.exceptions import PatientNotFoundError
from careguard_gateway.domain.models import AlertSettings, Patient, RiskLevel
from careguard_gateway.domain.policy import ScoringPolicy
from careguard_gateway.domain.profiling import assess_risk
from careguard_gateway.domain.stats import format_change, spending_stats, spending_trends, weekly_comparison
from careguard_gateway.infrastructure.database.models import PatientRecord
from careguard_gateway.infrastructure.database.repositories import (
    AlertSettingsRepository,
    PatientRepository,
    RiskAssessmentRepository,
    TransactionRepository,
    assessment_to_domain,
    patient_to_domain,
    transaction_to_domain,
)
from careguard_gateway.infrastructure.database.session import get_db
from careguard_gateway.services.ingestion import default_alert_settings
from careguard_gateway.utils.date_utils import minutes_since, utcnow, window_start

router = APIRouter()

DASHBOARD_RECENT_LIMIT = 10
COMPARISON_DAYS = 30


def require_patient(db: Session, patient_id: int) -> PatientRecord:
    """Load a patient row; unknown ids surface as 404 through the app's exception handler"""
    db_patient = PatientRepository(db).get_patient(patient_id)
    if db_patient is None:
        raise PatientNotFoundError(patient_id)
    return db_patient


@router.post("/patients", response_model=PatientResponse, status_code=201)
def create_patient(request_body: PatientCreateRequest, db: Session = Depends(get_db)):
    """Register a patient under a caregiver; starts at low risk"""
    patient = Patient(
        name=request_body.name,
        age=request_body.age,
        caregiver_id=request_body.caregiver_id,
        risk_level=RiskLevel.LOW.value,
        dementia_stage=request_body.dementia_stage.value if request_body.dementia_stage else None,
        avg_monthly_spending=request_body.avg_monthly_spending,
    )
    db_patient = PatientRepository(db).create_patient(patient)
    db.commit()
    db.refresh(db_patient)
    return PatientResponse.model_validate(db_patient)


@router.get("/patients", response_model=List[PatientSummary])
def list_patients(
    caregiver_id: str = Query(..., description="Caregiver identifier"),
    db: Session = Depends(get_db),
    policy: ScoringPolicy = Depends(get_scoring_policy),
):
    """
    Caregiver dashboard: every active patient with today's spend, this week's
    average against the 30-day average, time since the last transaction, and a
    live risk level from the most recent transactions.
    """
    now = utcnow()
    transaction_repo = TransactionRepository(db)
    assessment_repo = RiskAssessmentRepository(db)

    summaries = []
    for db_patient in PatientRepository(db).get_patients_by_caregiver(caregiver_id):
        patient = patient_to_domain(db_patient)
        recent = [
            transaction_to_domain(t)
            for t in transaction_repo.get_recent_transactions(patient.id, limit=DASHBOARD_RECENT_LIMIT)
        ]
        month = [
            transaction_to_domain(t)
            for t in transaction_repo.get_transactions_since(patient.id, window_start(now, days=COMPARISON_DAYS))
        ]
        latest = assessment_repo.get_latest_assessment(patient.id)
        profile = assess_risk(
            patient,
            recent,
            latest_assessment=assessment_to_domain(latest) if latest else None,
            now=now,
            policy=policy,
        )

        today = spending_stats(month, days=1, now=now)
        change = weekly_comparison(
            spending_stats(month, days=7, now=now),
            spending_stats(month, days=COMPARISON_DAYS, now=now),
        )

        summary = PatientSummary.model_validate(
            {
                **PatientResponse.model_validate(db_patient).model_dump(),
                "risk_level": profile.risk_level,
                "today_spent": today.total_spent,
                "weekly_comparison": format_change(change),
                "last_transaction_minutes_ago": minutes_since(recent[0].timestamp, now) if recent else None,
            }
        )
        summaries.append(summary)

    return summaries


@router.get("/patients/{patient_id}", response_model=PatientResponse)
def get_patient(patient_id: int, db: Session = Depends(get_db)):
    return PatientResponse.model_validate(require_patient(db, patient_id))


@router.get("/patients/{patient_id}/risk-assessment", response_model=RiskProfileResponse)
def get_risk_assessment(
    patient_id: int,
    db: Session = Depends(get_db),
    policy: ScoringPolicy = Depends(get_scoring_policy),
):
    """
    Live risk profile over the most recent transactions.

    Returns:
        Tier, total and factor scores, recommendations, and the latest stored snapshot
    """
    patient = patient_to_domain(require_patient(db, patient_id))
    transactions = [
        transaction_to_domain(t)
        for t in TransactionRepository(db).get_recent_transactions(patient_id, limit=settings.profile_history_limit)
    ]
    latest = RiskAssessmentRepository(db).get_latest_assessment(patient_id)

    profile = assess_risk(
        patient,
        transactions,
        latest_assessment=assessment_to_domain(latest) if latest else None,
        policy=policy,
    )

    return RiskProfileResponse(
        risk_level=profile.risk_level,
        total_score=profile.total_score,
        factors=RiskFactorsSchema(**profile.factors.as_dict()),
        recommendations=profile.recommendations,
        assessment=RiskAssessmentSchema.model_validate(latest) if latest else None,
    )


@router.get("/patients/{patient_id}/stats", response_model=SpendingStatsResponse)
def get_spending_stats(
    patient_id: int,
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
):
    require_patient(db, patient_id)
    now = utcnow()
    transactions = [
        transaction_to_domain(t)
        for t in TransactionRepository(db).get_transactions_since(patient_id, window_start(now, days=days))
    ]
    stats = spending_stats(transactions, days=days, now=now)
    return SpendingStatsResponse(
        days=stats.days,
        total_spent=stats.total_spent,
        avg_amount=stats.avg_amount,
        transaction_count=stats.transaction_count,
        anomaly_count=stats.anomaly_count,
    )


@router.get("/patients/{patient_id}/spending-trends", response_model=List[DailySpendingResponse])
def get_spending_trends(
    patient_id: int,
    days: int = Query(7, ge=1, le=365),
    db: Session = Depends(get_db),
    policy: ScoringPolicy = Depends(get_scoring_policy),
):
    """Daily totals for charting, oldest first; days with any anomalous transaction are flagged"""
    require_patient(db, patient_id)
    now = utcnow()
    transactions = [
        transaction_to_domain(t)
        for t in TransactionRepository(db).get_transactions_since(patient_id, window_start(now, days=days))
    ]
    return [
        DailySpendingResponse.model_validate(day)
        for day in spending_trends(transactions, days=days, now=now, policy=policy)
    ]


@router.get("/patients/{patient_id}/alert-settings", response_model=AlertSettingsResponse)
def get_alert_settings(
    patient_id: int,
    caregiver_id: Optional[str] = Query(None, description="Defaults to the patient's caregiver"),
    db: Session = Depends(get_db),
):
    """Stored settings, or the service defaults when the caregiver has none"""
    db_patient = require_patient(db, patient_id)
    caregiver_id = caregiver_id or db_patient.caregiver_id

    db_settings = AlertSettingsRepository(db).get_settings(caregiver_id, patient_id)
    if db_settings is not None:
        body = AlertSettingsSchema.model_validate(db_settings)
    else:
        defaults = default_alert_settings()
        body = AlertSettingsSchema(
            immediate_alerts=defaults.immediate_alerts,
            sms_alerts=defaults.sms_alerts,
            daily_summary=defaults.daily_summary,
            threshold=defaults.threshold,
        )

    return AlertSettingsResponse(caregiver_id=caregiver_id, patient_id=patient_id, **body.model_dump())


@router.put("/patients/{patient_id}/alert-settings", response_model=AlertSettingsResponse)
def put_alert_settings(
    patient_id: int,
    request_body: AlertSettingsSchema,
    caregiver_id: Optional[str] = Query(None, description="Defaults to the patient's caregiver"),
    db: Session = Depends(get_db),
):
    db_patient = require_patient(db, patient_id)
    caregiver_id = caregiver_id or db_patient.caregiver_id

    db_settings = AlertSettingsRepository(db).upsert_settings(
        caregiver_id,
        patient_id,
        AlertSettings(
            threshold=Decimal(request_body.threshold),
            immediate_alerts=request_body.immediate_alerts,
            sms_alerts=request_body.sms_alerts,
            daily_summary=request_body.daily_summary,
        ),
    )
    db.commit()

    return AlertSettingsResponse(
        caregiver_id=caregiver_id,
        patient_id=patient_id,
        **AlertSettingsSchema.model_validate(db_settings).model_dump(),
    )
