"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional


class TransactionType(str, Enum):
    ATM = "ATM"
    CARD_PAYMENT = "card_payment"
    ONLINE = "online"
    TRANSFER = "transfer"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DementiaStage(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertType(str, Enum):
    URGENT = "urgent"
    HIGH_RISK = "high-risk"
    MEDIUM_RISK = "medium-risk"


class ActivityTier(str, Enum):
    """Per-transaction tier shown in the caregiver activity feed"""

    HIGH = "high"
    MEDIUM = "medium"
    NORMAL = "normal"


@dataclass
class Transaction:
    """Card, ATM, online or transfer movement on a monitored patient's account"""

    amount: Decimal | str  # decimal-string on intake, Decimal once persisted
    type: str  # TransactionType value
    timestamp: datetime
    location: Optional[str] = None
    merchant: Optional[str] = None
    description: Optional[str] = None
    is_anomaly: bool = False
    risk_score: int = 0
    id: Optional[int] = None
    patient_id: Optional[int] = None


@dataclass
class Patient:
    """Person whose spending is being monitored by a caregiver"""

    name: str
    age: int
    risk_level: str = RiskLevel.LOW.value
    dementia_stage: Optional[str] = None
    avg_monthly_spending: Decimal = Decimal("0")
    caregiver_id: str = ""
    id: Optional[int] = None


@dataclass
class AlertSettings:
    """Per (caregiver, patient) alerting preferences"""

    threshold: Decimal
    immediate_alerts: bool = True
    sms_alerts: bool = True
    daily_summary: bool = False


@dataclass(frozen=True)
class RiskAssessmentSnapshot:
    """One entry of a patient's append-only risk assessment series"""

    frequency_score: int
    amount_score: int
    timing_score: int
    location_score: int
    total_score: int
    assessment_date: Optional[datetime] = None
    id: Optional[int] = None
    patient_id: Optional[int] = None


@dataclass(frozen=True)
class AnomalyResult:
    """Output of the per-transaction anomaly scorer"""

    is_anomaly: bool
    risk_score: int
    reasons: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RiskFactors:
    """Multiplier-adjusted factor scores, each 0-100"""

    frequency: int
    amount: int
    timing: int
    location: int

    def as_dict(self) -> Dict[str, int]:
        return {
            "frequency": self.frequency,
            "amount": self.amount,
            "timing": self.timing,
            "location": self.location,
        }


@dataclass(frozen=True)
class RiskProfile:
    """Output of the patient-level risk profiler"""

    risk_level: str
    total_score: int
    factors: RiskFactors
    recommendations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class AlertDraft:
    """Alert content decided by the alert policy, not yet persisted"""

    type: str
    severity: str
    title: str
    message: str


@dataclass(frozen=True)
class SpendingStats:
    """Aggregate spending over a trailing window of days"""

    days: int
    total_spent: Decimal
    avg_amount: Decimal
    transaction_count: int
    anomaly_count: int = 0


@dataclass(frozen=True)
class DailySpending:
    """One calendar day of a spending trend"""

    day: date
    amount: Decimal
    is_anomaly: bool


@dataclass(frozen=True)
class ActivityItem:
    """One line of the cross-patient activity feed"""

    transaction_id: int
    patient_id: int
    patient_name: str
    description: str
    location: str
    minutes_ago: int
    tier: str  # ActivityTier value
    is_anomaly: bool
    timestamp: datetime
