"""Transaction endpoints - ingestion and scoring, listing, and the caregiver activity feed"""

import time
import logging
from typing import List
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from careguard_gateway.api.dependencies import get_notifier_client, get_request_id, get_scoring_policy
from careguard_gateway.api.v1.patients import require_patient
from careguard_gateway.api.v1.schemas import (
    ActivityResponse,
    AnomalyResponse,
    IngestionResponse,
    TransactionCreateRequest,
    TransactionResponse,
)
from careguard_gateway.domain.exceptions import InvalidTransactionDataError, PatientNotFoundError
from careguard_gateway.domain.models import Transaction
from careguard_gateway.domain.policy import ScoringPolicy
from careguard_gateway.domain.stats import activity_feed
from careguard_gateway.infrastructure.clients.notifier import NotifierClient, deliver_alert
from careguard_gateway.infrastructure.database.repositories import (
    PatientRepository,
    TransactionRepository,
    patient_to_domain,
    transaction_to_domain,
)
from careguard_gateway.infrastructure.database.session import get_db
from careguard_gateway.infrastructure.observability.logging import log_transaction_scored
from careguard_gateway.services.ingestion import ingest_transaction
from careguard_gateway.utils.date_utils import utcnow

router = APIRouter()

ACTIVITY_LIMIT = 10
ACTIVITY_PER_PATIENT = 5


@router.post("/patients/{patient_id}/transactions", response_model=IngestionResponse)
async def create_transaction(
    patient_id: int,
    request_body: TransactionCreateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    notifier: NotifierClient = Depends(get_notifier_client),
    policy: ScoringPolicy = Depends(get_scoring_policy),
):
    """
    Score and store a new transaction for a patient.

    Flow:
    1. Score against the patient's recent history
    2. Persist transaction with its anomaly result
    3. If anomalous: alert (unless disabled), re-assess risk, update risk level
    4. Commit, then notify the caregiver in the background for immediate alerts
    """
    start_time = time.time()
    request_id = get_request_id(request)

    candidate = Transaction(
        amount=request_body.amount,
        type=request_body.type.value,
        location=request_body.location,
        merchant=request_body.merchant,
        description=request_body.description,
        timestamp=request_body.timestamp or utcnow(),
    )

    try:
        outcome = ingest_transaction(db, patient_id, candidate, policy=policy)
        db.commit()

        if outcome.notify:
            background_tasks.add_task(deliver_alert, notifier, outcome.notification_payload())

        duration_ms = (time.time() - start_time) * 1000
        log_transaction_scored(
            request_id,
            patient_id,
            outcome.transaction.id,
            outcome.anomaly.risk_score,
            outcome.anomaly.is_anomaly,
            duration_ms,
        )

        return IngestionResponse(
            transaction=TransactionResponse.model_validate(outcome.transaction),
            anomaly=AnomalyResponse(
                is_anomaly=outcome.anomaly.is_anomaly,
                risk_score=outcome.anomaly.risk_score,
                reasons=outcome.anomaly.reasons,
            ),
            alert_id=outcome.alert.id if outcome.alert else None,
            risk_level=outcome.profile.risk_level if outcome.profile else None,
        )

    except PatientNotFoundError as e:
        db.rollback()
        logging.warning(str(e), extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail="Patient not found")

    except InvalidTransactionDataError as e:
        db.rollback()
        logging.warning(f"Invalid transaction: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/patients/{patient_id}/transactions", response_model=List[TransactionResponse])
def list_transactions(
    patient_id: int,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Most recent transactions first"""
    require_patient(db, patient_id)
    return [
        TransactionResponse.model_validate(t)
        for t in TransactionRepository(db).get_recent_transactions(patient_id, limit=limit)
    ]


@router.get("/activity", response_model=List[ActivityResponse])
def get_activity(
    caregiver_id: str = Query(..., description="Caregiver identifier"),
    limit: int = Query(ACTIVITY_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    policy: ScoringPolicy = Depends(get_scoring_policy),
):
    """Recent transactions across all of a caregiver's patients, most recent first"""
    transaction_repo = TransactionRepository(db)
    entries = [
        (
            patient_to_domain(db_patient),
            [
                transaction_to_domain(t)
                for t in transaction_repo.get_recent_transactions(db_patient.id, limit=ACTIVITY_PER_PATIENT)
            ],
        )
        for db_patient in PatientRepository(db).get_patients_by_caregiver(caregiver_id)
    ]
    return [ActivityResponse.model_validate(item) for item in activity_feed(entries, limit=limit, policy=policy)]
