"""Spending statistics and activity feed used for caregiver dashboards"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from careguard_gateway.domain.alerting import format_amount
from careguard_gateway.domain.anomaly import parse_amount
from careguard_gateway.domain.models import (
    ActivityItem,
    ActivityTier,
    DailySpending,
    Patient,
    SpendingStats,
    Transaction,
)
from careguard_gateway.domain.policy import DEFAULT_POLICY, ScoringPolicy, round_half_up
from careguard_gateway.utils.date_utils import ensure_aware, local_date, minutes_since, utcnow, window_start

UNKNOWN_LOCATION = "Unknown location"


def _in_window(transactions: Sequence[Transaction], days: int, now: Optional[datetime]) -> List[Transaction]:
    start = window_start(now or utcnow(), days=days)
    return [t for t in transactions if ensure_aware(t.timestamp) >= start]


def spending_stats(transactions: Sequence[Transaction], days: int, now: Optional[datetime] = None) -> SpendingStats:
    """Total, average amount and anomaly count over the trailing `days`"""
    window = _in_window(transactions, days, now)
    amounts = [Decimal(str(parse_amount(t.amount))) for t in window]
    total = sum(amounts, Decimal("0"))
    avg = total / len(amounts) if amounts else Decimal("0")

    return SpendingStats(
        days=days,
        total_spent=total,
        avg_amount=avg.quantize(Decimal("0.01")),
        transaction_count=len(amounts),
        anomaly_count=sum(1 for t in window if t.is_anomaly),
    )


def spending_trends(
    transactions: Sequence[Transaction],
    days: int,
    now: Optional[datetime] = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> List[DailySpending]:
    """
    Per-day totals over the trailing `days`, oldest day first.

    Days are calendar days in the scoring time zone. Days without transactions are
    left out, and a day is flagged when any of its transactions was anomalous.
    """
    totals: Dict[date, Decimal] = {}
    flagged: Dict[date, bool] = {}
    for t in _in_window(transactions, days, now):
        day = local_date(t.timestamp, policy.scoring_timezone)
        totals[day] = totals.get(day, Decimal("0")) + Decimal(str(parse_amount(t.amount)))
        flagged[day] = flagged.get(day, False) or t.is_anomaly

    return [DailySpending(day=day, amount=totals[day], is_anomaly=flagged[day]) for day in sorted(totals)]


def weekly_comparison(week: SpendingStats, month: SpendingStats) -> int:
    """Percent change of this week's average amount against the 30-day average"""
    if month.avg_amount <= 0:
        return 0
    return round_half_up((week.avg_amount - month.avg_amount) / month.avg_amount * 100)


def format_change(percent: int) -> str:
    return f"+{percent}%" if percent > 0 else f"{percent}%"


def activity_tier(risk_score: int, policy: ScoringPolicy = DEFAULT_POLICY) -> str:
    """Feed tier on the same edges as alert types: 70+ high, 50-69 medium, else normal"""
    if risk_score >= policy.urgent_alert_score:
        return ActivityTier.HIGH.value
    elif risk_score >= policy.high_risk_alert_score:
        return ActivityTier.MEDIUM.value
    return ActivityTier.NORMAL.value


def activity_feed(
    entries: Iterable[Tuple[Patient, Sequence[Transaction]]],
    now: Optional[datetime] = None,
    limit: int = 10,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> List[ActivityItem]:
    """
    Merge each patient's recent transactions into one feed, most recent first.

    Args:
        entries: (patient, that patient's recent transactions) pairs
        now: Reference time for minutes_ago (default current UTC time)
        limit: Maximum number of items returned
    """
    now = now or utcnow()
    items: List[ActivityItem] = []
    for patient, transactions in entries:
        for t in transactions:
            transaction_type = getattr(t.type, "value", t.type)
            items.append(
                ActivityItem(
                    transaction_id=t.id,
                    patient_id=patient.id,
                    patient_name=patient.name,
                    description=f"{transaction_type} - {format_amount(t.amount)}",
                    location=t.merchant or t.location or UNKNOWN_LOCATION,
                    minutes_ago=minutes_since(t.timestamp, now),
                    tier=activity_tier(t.risk_score, policy),
                    is_anomaly=t.is_anomaly,
                    timestamp=ensure_aware(t.timestamp),
                )
            )

    items.sort(key=lambda item: (item.timestamp, item.transaction_id), reverse=True)
    return items[:limit]
