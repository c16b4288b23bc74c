"""Per-transaction anomaly scoring - core business logic for fraud alerts"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import List, NamedTuple, Sequence

from careguard_gateway.domain.models import AnomalyResult, Transaction, TransactionType
from careguard_gateway.domain.policy import DEFAULT_POLICY, ScoringPolicy, clamp_score, round_half_up
from careguard_gateway.utils.date_utils import is_wrapping_hour, local_hour, window_start, within_window

logger = logging.getLogger(__name__)


class PartialScore(NamedTuple):
    score: int
    reasons: List[str]


def parse_amount(value: Decimal | str | float | int | None) -> float:
    """
    Read a decimal amount, coercing anything unparseable to 0.

    Ingestion rejects such amounts before they reach the scorer; this keeps the
    scorer total over stored data.
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        logger.warning("Unparseable transaction amount treated as zero", extra={"amount": str(value)})
        return 0.0
    if not amount.is_finite():
        logger.warning("Non-finite transaction amount treated as zero", extra={"amount": str(value)})
        return 0.0
    return float(amount)


def detect_anomaly(
    transaction: Transaction,
    recent_transactions: Sequence[Transaction],
    avg_spending: float,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> AnomalyResult:
    """
    Score one candidate transaction against the patient's recent history.

    Five independent partial scores are summed and capped at 100:
    - amount: ratio to historical average, ratio to recent window mean, absolute size
    - frequency: transactions (and ATM withdrawals) in the trailing 24 hours
    - timing: late night / early morning
    - merchant: high-risk vocabulary, online/phone channel, unknown merchant
    - location: no overlap with the last 10 known locations

    Args:
        transaction: Candidate, not yet persisted
        recent_transactions: Caller-selected trailing window, most recent first
        avg_spending: Historical average spend (0 when unknown)
        policy: Thresholds and vocabularies

    Returns:
        AnomalyResult with is_anomaly == (risk_score >= policy.anomaly_threshold)
    """
    partials = [
        _analyze_amount(transaction, recent_transactions, avg_spending, policy),
        _analyze_frequency(transaction, recent_transactions, policy),
        _analyze_timing(transaction, policy),
        _analyze_merchant(transaction, policy),
        _analyze_location(transaction, recent_transactions, policy),
    ]

    risk_score = clamp_score(sum(p.score for p in partials))
    reasons = [reason for p in partials for reason in p.reasons if reason]

    result = AnomalyResult(
        is_anomaly=risk_score >= policy.anomaly_threshold,
        risk_score=risk_score,
        reasons=reasons,
    )
    logger.debug(
        "Transaction scored",
        extra={"risk_score": result.risk_score, "is_anomaly": result.is_anomaly, "reasons": reasons},
    )
    return result


def _analyze_amount(
    transaction: Transaction,
    recent_transactions: Sequence[Transaction],
    avg_spending: float,
    policy: ScoringPolicy,
) -> PartialScore:
    amount = parse_amount(transaction.amount)
    avg_spending = parse_amount(avg_spending)
    score = 0
    reasons: List[str] = []

    # Compare with the patient's historical average
    if avg_spending > 0:
        ratio = amount / avg_spending
        rule = policy.average_ratio_buckets.match(ratio)
        if rule:
            score += rule.score
            reasons.append(f"{round_half_up(ratio)}x the usual average spend")

    # Compare with the recent window
    if recent_transactions:
        recent_avg = sum(parse_amount(t.amount) for t in recent_transactions) / len(recent_transactions)
        if recent_avg > 0:
            ratio = amount / recent_avg
            rule = policy.recent_ratio_buckets.match(ratio)
            if rule:
                score += rule.score
                reasons.append(f"{round_half_up(ratio)}x the recent transaction average")

    # Absolute size applies with or without history
    rule = policy.absolute_amount_buckets.match(amount)
    if rule:
        score += rule.score
        reasons.append(f"Large transaction of {rule.threshold:,.0f} or more")

    return PartialScore(score, reasons)


def _analyze_frequency(
    transaction: Transaction,
    recent_transactions: Sequence[Transaction],
    policy: ScoringPolicy,
) -> PartialScore:
    score = 0
    reasons: List[str] = []

    end = transaction.timestamp
    start = window_start(end, hours=policy.frequency_window_hours)
    in_window = [t for t in recent_transactions if within_window(t.timestamp, start, end)]

    rule = policy.daily_count_buckets.match(len(in_window))
    if rule:
        score += rule.score
        reasons.append(f"{len(in_window)} transactions in the last {policy.frequency_window_hours} hours")

    if transaction.type == TransactionType.ATM:
        atm_count = sum(1 for t in in_window if t.type == TransactionType.ATM)
        rule = policy.atm_count_buckets.match(atm_count)
        if rule:
            score += rule.score
            reasons.append(f"{atm_count} ATM withdrawals within a day")

    return PartialScore(score, reasons)


def _analyze_timing(transaction: Transaction, policy: ScoringPolicy) -> PartialScore:
    hour = local_hour(transaction.timestamp, policy.scoring_timezone)
    if is_wrapping_hour(hour, policy.night_start_hour, policy.night_end_hour):
        return PartialScore(policy.night_score, ["Unusual time of day (late night / early morning)"])
    return PartialScore(0, [])


def _analyze_merchant(transaction: Transaction, policy: ScoringPolicy) -> PartialScore:
    score = 0
    reasons: List[str] = []
    merchant = (transaction.merchant or "").lower()
    text = f"{merchant} {(transaction.description or '').lower()}"

    # Only the first matching keyword counts
    for keyword in policy.high_risk_keywords:
        if contains_term(text, keyword):
            score += policy.keyword_score
            reasons.append(f"High-risk keyword detected: {keyword}")
            break

    if any(contains_term(text, term) for term in policy.online_channel_terms):
        score += policy.online_channel_score
        reasons.append("Online or phone transaction")

    if merchant and any(marker in merchant for marker in policy.unknown_merchant_markers):
        score += policy.unknown_merchant_score
        reasons.append("Unknown or unverified merchant")

    return PartialScore(score, reasons)


def _analyze_location(
    transaction: Transaction,
    recent_transactions: Sequence[Transaction],
    policy: ScoringPolicy,
) -> PartialScore:
    if not transaction.location:
        return PartialScore(0, [])

    known_locations = [t.location for t in recent_transactions if t.location][: policy.location_history_size]
    if known_locations and not any(is_similar_location(transaction.location, loc) for loc in known_locations):
        return PartialScore(policy.unusual_location_score, ["Unusual transaction location"])

    return PartialScore(0, [])


def is_similar_location(first: str, second: str) -> bool:
    """Locations are similar when they share at least one whitespace-separated word"""
    return bool(set(first.lower().split()) & set(second.lower().split()))


def contains_term(text: str, term: str) -> bool:
    """Whole-word match allowing a plural "s", so "fund" hits "funds" but not "refund"."""
    return re.search(rf"\b{re.escape(term)}s?\b", text) is not None
