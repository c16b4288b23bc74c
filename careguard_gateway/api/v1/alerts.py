"""Alert endpoints - caregiver inbox and acknowledgment flags"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from careguard_gateway.api.v1.patients import require_patient
from careguard_gateway.api.v1.schemas import AlertResponse
from careguard_gateway.infrastructure.database.models import AlertRecord
from careguard_gateway.infrastructure.database.repositories import AlertRepository
from careguard_gateway.infrastructure.database.session import get_db

router = APIRouter()


def get_alert_or_404(repo: AlertRepository, alert_id: int) -> AlertRecord:
    alert = repo.get_alert(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert


@router.get("/alerts", response_model=List[AlertResponse])
def get_unread_alerts(
    caregiver_id: str = Query(..., description="Caregiver identifier"),
    db: Session = Depends(get_db),
):
    """Unread alerts across all of a caregiver's patients, newest first"""
    return [AlertResponse.model_validate(a) for a in AlertRepository(db).get_unread_alerts(caregiver_id)]


@router.get("/patients/{patient_id}/alerts", response_model=List[AlertResponse])
def get_patient_alerts(
    patient_id: int,
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    require_patient(db, patient_id)
    return [
        AlertResponse.model_validate(a)
        for a in AlertRepository(db).get_alerts_by_patient(patient_id, limit=limit)
    ]


@router.patch("/alerts/{alert_id}/read", response_model=AlertResponse)
def mark_alert_read(alert_id: int, db: Session = Depends(get_db)):
    repo = AlertRepository(db)
    alert = repo.mark_read(get_alert_or_404(repo, alert_id))
    db.commit()
    return AlertResponse.model_validate(alert)


@router.patch("/alerts/{alert_id}/resolve", response_model=AlertResponse)
def mark_alert_resolved(alert_id: int, db: Session = Depends(get_db)):
    repo = AlertRepository(db)
    alert = repo.mark_resolved(get_alert_or_404(repo, alert_id))
    db.commit()
    return AlertResponse.model_validate(alert)
