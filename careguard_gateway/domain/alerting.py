"""Alert policy - decides alert tier and wording for an anomalous transaction"""

from careguard_gateway.domain.anomaly import parse_amount
from careguard_gateway.domain.models import AlertDraft, AlertType, AnomalyResult, Patient, RiskLevel, Transaction
from careguard_gateway.domain.policy import DEFAULT_POLICY, ScoringPolicy
from careguard_gateway.domain.profiling import severity_of

ALERT_TITLES = {
    AlertType.URGENT.value: "Urgent",
    AlertType.HIGH_RISK.value: "High risk",
    AlertType.MEDIUM_RISK.value: "Medium risk",
}


def classify_alert_type(risk_score: int, policy: ScoringPolicy = DEFAULT_POLICY) -> str:
    """
    Alert tier from the transaction's anomaly score:
    - 70+:   urgent
    - 50-69: high-risk
    - below: medium-risk
    """
    if risk_score >= policy.urgent_alert_score:
        return AlertType.URGENT.value
    elif risk_score >= policy.high_risk_alert_score:
        return AlertType.HIGH_RISK.value
    return AlertType.MEDIUM_RISK.value


def alert_risk_level(alert_type: str) -> str:
    """Urgent and high-risk alerts both count as high risk"""
    if alert_type in (AlertType.URGENT, AlertType.HIGH_RISK):
        return RiskLevel.HIGH.value
    return RiskLevel.MEDIUM.value


def alert_severity(alert_type: str) -> str:
    return severity_of(alert_risk_level(alert_type))


def format_amount(amount) -> str:
    return f"{parse_amount(amount):,.0f}"


def compose_alert(
    patient: Patient,
    transaction: Transaction,
    anomaly: AnomalyResult,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> AlertDraft:
    """Build the alert title and message shown to the caregiver"""
    alert_type = classify_alert_type(anomaly.risk_score, policy)
    location = transaction.location or "an unknown location"
    transaction_type = getattr(transaction.type, "value", transaction.type)

    return AlertDraft(
        type=alert_type,
        severity=alert_severity(alert_type),
        title=f"{ALERT_TITLES[alert_type]}: {transaction_type} transaction detected",
        message=(
            f"{patient.name} made a {format_amount(transaction.amount)} {transaction_type} transaction "
            f"at {location}. Risk score: {anomaly.risk_score}/100"
        ),
    )
