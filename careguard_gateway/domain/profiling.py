"""Patient-level risk profiling - weekly aggregate used to drive caregiver alerts"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from careguard_gateway.domain.anomaly import parse_amount
from careguard_gateway.domain.models import (
    AlertSettings,
    Patient,
    RiskAssessmentSnapshot,
    RiskFactors,
    RiskLevel,
    RiskProfile,
    Severity,
    Transaction,
    TransactionType,
)
from careguard_gateway.domain.policy import (
    DEFAULT_ALERT_THRESHOLD,
    DEFAULT_POLICY,
    ScoringPolicy,
    clamp_score,
    round_half_up,
)
from careguard_gateway.utils.date_utils import ensure_aware, is_wrapping_hour, local_hour, utcnow, window_start

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7


def assess_risk(
    patient: Patient,
    transactions: Sequence[Transaction],
    latest_assessment: Optional[RiskAssessmentSnapshot] = None,
    now: Optional[datetime] = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> RiskProfile:
    """
    Main entry point: build a patient's risk profile from recent transactions.

    Only transactions in the trailing week (relative to `now`, default current
    UTC time) feed the factors. `latest_assessment` is informational only.
    """
    factors = calculate_risk_factors(patient, transactions, now=now, policy=policy)
    total_score = calculate_total_score(factors, policy)
    risk_level = determine_risk_level(total_score, policy)
    recommendations = generate_recommendations(risk_level, factors, transactions, policy)

    logger.debug(
        "Risk profile computed",
        extra={
            "patient_id": patient.id,
            "total_score": total_score,
            "risk_level": risk_level,
            "previous_total_score": latest_assessment.total_score if latest_assessment else None,
        },
    )

    return RiskProfile(
        risk_level=risk_level,
        total_score=total_score,
        factors=factors,
        recommendations=recommendations,
    )


def calculate_risk_factors(
    patient: Patient,
    transactions: Sequence[Transaction],
    now: Optional[datetime] = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> RiskFactors:
    """
    Score the four factors over the trailing week, then apply the dementia multiplier.

    - frequency: average transactions per day
    - amount: weekly total projected to a month vs. the patient's monthly average,
      or the absolute weekly total when no average is known
    - timing: percentage of transactions at night (22:00-07:59 in the scoring time zone)
    - location: number of distinct locations
    """
    start = window_start(now or utcnow(), days=policy.profile_window_days)
    week = [t for t in transactions if ensure_aware(t.timestamp) >= start]

    # Frequency
    daily_rate = len(week) / DAYS_PER_WEEK
    frequency = policy.daily_rate_buckets.score(daily_rate)

    # Amount
    weekly_total = sum(parse_amount(t.amount) for t in week)
    avg_monthly = parse_amount(patient.avg_monthly_spending or 0)
    if avg_monthly > 0:
        ratio = (weekly_total * policy.weeks_per_month) / avg_monthly
        amount = policy.spending_ratio_buckets.score(ratio)
    else:
        amount = policy.weekly_total_buckets.score(weekly_total)

    # Timing; an empty week has no night share
    night_count = sum(
        1
        for t in week
        if is_wrapping_hour(
            local_hour(t.timestamp, policy.scoring_timezone),
            policy.profile_night_start_hour,
            policy.profile_night_end_hour,
        )
    )
    timing = round_half_up(night_count / len(week) * 100) if week else 0

    # Location
    distinct_locations = {t.location for t in week if t.location}
    location = policy.location_count_buckets.score(len(distinct_locations))

    multiplier = dementia_multiplier(patient.dementia_stage, policy)

    return RiskFactors(
        frequency=adjust_factor(frequency, multiplier),
        amount=adjust_factor(amount, multiplier),
        timing=adjust_factor(timing, multiplier),
        location=adjust_factor(location, multiplier),
    )


def dementia_multiplier(stage: Optional[str], policy: ScoringPolicy = DEFAULT_POLICY) -> float:
    """Severity amplification: mild 1.1, moderate 1.3, severe 1.5, otherwise 1.0"""
    if not stage:
        return 1.0
    key = getattr(stage, "value", stage).lower()
    return policy.dementia_multipliers.get(key, 1.0)


def adjust_factor(base_score: int, multiplier: float) -> int:
    """Apply the multiplier and cap the result at 100"""
    return clamp_score(round_half_up(Decimal(str(base_score)) * Decimal(str(multiplier))))


def calculate_total_score(factors: RiskFactors, policy: ScoringPolicy = DEFAULT_POLICY) -> int:
    """
    Weighted sum of the adjusted factors.

    Weights: amount 40%, frequency 30%, timing 15%, location 15%.
    """
    scores = factors.as_dict()
    total = sum(Decimal(str(weight)) * scores[name] for name, weight in policy.factor_weights.items())
    return clamp_score(round_half_up(total))


def determine_risk_level(total_score: int, policy: ScoringPolicy = DEFAULT_POLICY) -> str:
    """
    Map total score to a tier. Lower bounds are inclusive:
    - 70-100: high
    - 40-69:  medium
    - 0-39:   low
    """
    if total_score >= policy.high_risk_threshold:
        return RiskLevel.HIGH.value
    elif total_score >= policy.medium_risk_threshold:
        return RiskLevel.MEDIUM.value
    else:
        return RiskLevel.LOW.value


def generate_recommendations(
    risk_level: str,
    factors: RiskFactors,
    transactions: Sequence[Transaction],
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> List[str]:
    recommendations: List[str] = []

    if risk_level == RiskLevel.HIGH:
        recommendations.append("Contact the patient now to review recent transactions")
        recommendations.append("If needed, ask the bank to restrict transactions")

        if factors.amount > policy.high_tier_factor_warning:
            recommendations.append("Large transactions detected. Check for possible fraud")

        if factors.frequency > policy.high_tier_factor_warning:
            recommendations.append("Transactions are unusually frequent")
    elif risk_level == RiskLevel.MEDIUM:
        recommendations.append("Monitor the patient's recent activity closely")
        recommendations.append("Review the transaction history regularly")

        if factors.timing > policy.medium_tier_timing_warning:
            recommendations.append("Late-night transactions have increased. Attention needed")
    else:
        recommendations.append("Spending pattern is currently stable")
        recommendations.append("Keep up weekly monitoring")

    atm_count = sum(1 for t in transactions if t.type == TransactionType.ATM)
    if atm_count > policy.atm_count_warning:
        recommendations.append("Frequent ATM withdrawals. Review cash usage")

    anomaly_count = sum(1 for t in transactions if t.is_anomaly)
    if anomaly_count > 0:
        recommendations.append(f"{anomaly_count} anomalous transaction(s) detected")

    return recommendations


def severity_of(risk_level: str) -> str:
    """Alert severity for a risk tier"""
    if risk_level == RiskLevel.HIGH:
        return Severity.HIGH.value
    elif risk_level == RiskLevel.MEDIUM:
        return Severity.MEDIUM.value
    return Severity.LOW.value


def should_send_immediate_alert(
    risk_score: int,
    amount: Decimal | str | float,
    settings: Optional[AlertSettings],
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> bool:
    """Immediate alerts must be enabled, then either the score or the amount must be high enough"""
    if settings is None or not settings.immediate_alerts:
        return False

    threshold = parse_amount(settings.threshold) if settings.threshold is not None else DEFAULT_ALERT_THRESHOLD
    return risk_score >= policy.immediate_alert_score or parse_amount(amount) >= threshold
