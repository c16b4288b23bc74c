"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from careguard_gateway.domain.models import ActivityTier, DementiaStage, RiskLevel, TransactionType


class PatientCreateRequest(BaseModel):
    """Request body for POST /v1/patients"""

    name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., gt=0, lt=150)
    caregiver_id: str = Field(..., min_length=1, description="Caregiver identifier")
    dementia_stage: Optional[DementiaStage] = None
    avg_monthly_spending: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)


class PatientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    age: int
    caregiver_id: str
    risk_level: RiskLevel
    dementia_stage: Optional[DementiaStage] = None
    avg_monthly_spending: Decimal


class PatientSummary(PatientResponse):
    """Patient row enriched with spending figures for the caregiver dashboard"""

    today_spent: Decimal
    weekly_comparison: str
    last_transaction_minutes_ago: Optional[int] = None


class TransactionCreateRequest(BaseModel):
    """Request body for POST /v1/patients/{id}/transactions"""

    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    type: TransactionType
    location: Optional[str] = Field(None, max_length=200)
    merchant: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    timestamp: Optional[datetime] = Field(None, description="Defaults to the time of ingestion")


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    amount: Decimal
    type: str
    location: Optional[str] = None
    merchant: Optional[str] = None
    description: Optional[str] = None
    timestamp: datetime
    is_anomaly: bool
    risk_score: int


class AnomalyResponse(BaseModel):
    is_anomaly: bool
    risk_score: int
    reasons: List[str]


class IngestionResponse(BaseModel):
    """Response for POST /v1/patients/{id}/transactions"""

    transaction: TransactionResponse
    anomaly: AnomalyResponse
    alert_id: Optional[int] = None
    risk_level: Optional[RiskLevel] = None


class RiskFactorsSchema(BaseModel):
    frequency: int
    amount: int
    timing: int
    location: int


class RiskAssessmentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    frequency_score: int
    amount_score: int
    timing_score: int
    location_score: int
    total_score: int
    assessment_date: datetime


class RiskProfileResponse(BaseModel):
    """Response for GET /v1/patients/{id}/risk-assessment"""

    risk_level: RiskLevel
    total_score: int
    factors: RiskFactorsSchema
    recommendations: List[str]
    assessment: Optional[RiskAssessmentSchema] = None


class SpendingStatsResponse(BaseModel):
    days: int
    total_spent: Decimal
    avg_amount: Decimal
    transaction_count: int
    anomaly_count: int


class DailySpendingResponse(BaseModel):
    """One day of GET /v1/patients/{id}/spending-trends"""

    model_config = ConfigDict(from_attributes=True)

    day: date
    amount: Decimal
    is_anomaly: bool


class ActivityResponse(BaseModel):
    """One item of GET /v1/activity"""

    model_config = ConfigDict(from_attributes=True)

    transaction_id: int
    patient_id: int
    patient_name: str
    description: str
    location: str
    minutes_ago: int
    tier: ActivityTier
    is_anomaly: bool
    timestamp: datetime


class AlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    transaction_id: Optional[int] = None
    type: str
    title: str
    message: str
    severity: str
    is_read: bool
    is_resolved: bool
    created_at: datetime


class AlertSettingsSchema(BaseModel):
    """Body for PUT and response for GET /v1/patients/{id}/alert-settings"""

    model_config = ConfigDict(from_attributes=True)

    immediate_alerts: bool = True
    sms_alerts: bool = True
    daily_summary: bool = False
    threshold: Decimal = Field(Decimal("100000"), ge=0, max_digits=12, decimal_places=2)


class AlertSettingsResponse(AlertSettingsSchema):
    caregiver_id: str
    patient_id: int
