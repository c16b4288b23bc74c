"""Unit tests for patient risk profiling"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from careguard_gateway.domain.models import AlertSettings, DementiaStage, RiskFactors
from careguard_gateway.domain.profiling import (
    adjust_factor,
    assess_risk,
    calculate_risk_factors,
    calculate_total_score,
    dementia_multiplier,
    determine_risk_level,
    generate_recommendations,
    severity_of,
    should_send_immediate_alert,
)
from careguard_gateway.domain.policy import ScoringPolicy


def test_three_per_day_falls_in_lower_frequency_bucket(patient, make_transaction, now):
    """21 transactions in a week is exactly 3/day: frequency 35; 210,000*4/900,000 ~ 0.93: amount 20"""
    week = [make_transaction(amount="10000", timestamp=now - timedelta(hours=1 + i * 7)) for i in range(21)]

    factors = calculate_risk_factors(patient, week, now=now)

    assert factors.frequency == 35
    assert factors.amount == 20


def test_transactions_outside_week_are_ignored(patient, make_transaction, now):
    old = [make_transaction(amount="5000000", timestamp=now - timedelta(days=8, hours=i)) for i in range(40)]

    factors = calculate_risk_factors(patient, old, now=now)

    assert factors == RiskFactors(frequency=15, amount=20, timing=0, location=20)


def test_empty_week_has_zero_timing_and_low_tier(patient, now):
    profile = assess_risk(patient, [], now=now)

    assert profile.factors == RiskFactors(frequency=15, amount=20, timing=0, location=20)
    # 4.5 + 8 + 0 + 3 = 15.5 rounds half up
    assert profile.total_score == 16
    assert profile.risk_level == "low"


def test_amount_without_monthly_average_uses_weekly_total(patient, make_transaction, now):
    patient.avg_monthly_spending = Decimal("0")

    mid = [make_transaction(amount="300000", timestamp=now - timedelta(days=i + 1)) for i in range(2)]
    high = [make_transaction(amount="600000", timestamp=now - timedelta(days=i + 1)) for i in range(2)]

    assert calculate_risk_factors(patient, mid, now=now).amount == 50
    assert calculate_risk_factors(patient, high, now=now).amount == 80


def test_spending_ratio_buckets(patient, make_transaction, now):
    """Weekly total x4 against 900,000 a month"""
    cases = [("500000", 60), ("700000", 85), ("350000", 40)]
    for amount, expected in cases:
        week = [make_transaction(amount=amount, timestamp=now - timedelta(days=1))]
        assert calculate_risk_factors(patient, week, now=now).amount == expected, amount


def test_timing_is_night_percentage(patient, make_transaction, now):
    day = now - timedelta(days=1)
    week = [
        make_transaction(timestamp=day.replace(hour=22)),
        make_transaction(timestamp=day.replace(hour=7, minute=30)),
        make_transaction(timestamp=day.replace(hour=12)),
        make_transaction(timestamp=day.replace(hour=15)),
    ]

    assert calculate_risk_factors(patient, week, now=now).timing == 50


def test_timing_reads_hours_in_scoring_timezone(patient, make_transaction, now):
    """01:00 at +09:00 is 16:00 UTC: daytime in UTC, night in Seoul"""
    seoul_night = make_transaction(timestamp=datetime(2026, 10, 14, 1, 0, tzinfo=timezone(timedelta(hours=9))))
    same_instant_utc = make_transaction(timestamp=datetime(2026, 10, 13, 16, 0, tzinfo=timezone.utc))

    for txn in (seoul_night, same_instant_utc):
        assert calculate_risk_factors(patient, [txn], now=now).timing == 0
        seoul = ScoringPolicy(scoring_timezone="Asia/Seoul")
        assert calculate_risk_factors(patient, [txn], now=now, policy=seoul).timing == 100


def test_location_counts_distinct_non_empty(patient, make_transaction, now):
    week = [
        make_transaction(timestamp=now - timedelta(hours=i + 1), location=f"Place {i}")
        for i in range(8)
    ] + [make_transaction(timestamp=now - timedelta(hours=20), location=None)]

    assert calculate_risk_factors(patient, week, now=now).location == 60


def test_dementia_multiplier_values():
    assert dementia_multiplier(None) == 1.0
    assert dementia_multiplier("mild") == 1.1
    assert dementia_multiplier(DementiaStage.MODERATE) == 1.3
    assert dementia_multiplier("SEVERE") == 1.5
    assert dementia_multiplier("early-onset") == 1.0


def test_mild_dementia_scales_each_factor():
    """All base factors at 50 with mild dementia: 55 each, total 55, medium"""
    adjusted = adjust_factor(50, dementia_multiplier("mild"))
    factors = RiskFactors(frequency=adjusted, amount=adjusted, timing=adjusted, location=adjusted)

    assert adjusted == 55
    assert calculate_total_score(factors) == 55
    assert determine_risk_level(55) == "medium"


def test_dementia_multiplier_is_monotonic_and_clamped():
    for base in (10, 35, 60):
        mild = adjust_factor(base, dementia_multiplier("mild"))
        moderate = adjust_factor(base, dementia_multiplier("moderate"))
        severe = adjust_factor(base, dementia_multiplier("severe"))
        assert base < mild < moderate < severe <= 100

    assert adjust_factor(85, 1.5) == 100
    assert adjust_factor(100, 1.1) == 100


def test_multiplier_applied_through_profile(patient, make_transaction, now):
    patient.dementia_stage = "severe"
    week = [make_transaction(amount="10000", timestamp=now - timedelta(hours=1 + i * 7)) for i in range(21)]

    factors = calculate_risk_factors(patient, week, now=now)

    # 35 * 1.5 = 52.5 rounds half up
    assert factors.frequency == 53
    assert factors.amount == 30


def test_risk_level_boundaries():
    assert determine_risk_level(0) == "low"
    assert determine_risk_level(39) == "low"
    assert determine_risk_level(40) == "medium"
    assert determine_risk_level(69) == "medium"
    assert determine_risk_level(70) == "high"
    assert determine_risk_level(100) == "high"


def test_total_score_weights():
    factors = RiskFactors(frequency=100, amount=0, timing=0, location=0)
    assert calculate_total_score(factors) == 30

    factors = RiskFactors(frequency=0, amount=100, timing=100, location=100)
    assert calculate_total_score(factors) == 70


def test_high_tier_recommendations():
    factors = RiskFactors(frequency=85, amount=85, timing=10, location=20)

    recs = generate_recommendations("high", factors, [])

    assert recs == [
        "Contact the patient now to review recent transactions",
        "If needed, ask the bank to restrict transactions",
        "Large transactions detected. Check for possible fraud",
        "Transactions are unusually frequent",
    ]


def test_medium_tier_night_warning():
    factors = RiskFactors(frequency=35, amount=60, timing=60, location=20)

    recs = generate_recommendations("medium", factors, [])

    assert recs[-1] == "Late-night transactions have increased. Attention needed"
    assert len(recs) == 3


def test_atm_and_anomaly_recommendations(make_transaction, now):
    transactions = [make_transaction(type="ATM", timestamp=now - timedelta(days=i)) for i in range(4)]
    transactions.append(make_transaction(is_anomaly=True, risk_score=60))
    transactions.append(make_transaction(is_anomaly=True, risk_score=45))

    recs = generate_recommendations("low", RiskFactors(15, 20, 0, 20), transactions)

    assert recs == [
        "Spending pattern is currently stable",
        "Keep up weekly monitoring",
        "Frequent ATM withdrawals. Review cash usage",
        "2 anomalous transaction(s) detected",
    ]


def test_assess_risk_is_deterministic(patient, make_transaction, now):
    week = [
        make_transaction(amount="150000", timestamp=now - timedelta(hours=3 * i), location=f"Shop {i % 4}")
        for i in range(12)
    ]

    assert assess_risk(patient, week, now=now) == assess_risk(patient, week, now=now)


def test_assess_risk_scores_stay_in_range(patient, make_transaction, now):
    patient.dementia_stage = "severe"
    week = [
        make_transaction(
            amount="900000",
            type="ATM",
            timestamp=(now - timedelta(hours=i)).replace(hour=2),
            location=f"Town {i}",
        )
        for i in range(60)
    ]

    profile = assess_risk(patient, week, now=now)

    assert profile.risk_level == "high"
    assert profile.total_score == 100
    for value in profile.factors.as_dict().values():
        assert 0 <= value <= 100


def test_severity_of():
    assert severity_of("high") == "high"
    assert severity_of("medium") == "medium"
    assert severity_of("low") == "low"


def test_should_send_immediate_alert():
    enabled = AlertSettings(threshold=Decimal("100000"), immediate_alerts=True)
    disabled = AlertSettings(threshold=Decimal("100000"), immediate_alerts=False)

    assert should_send_immediate_alert(70, "1000", enabled) is True
    assert should_send_immediate_alert(10, "100000", enabled) is True
    assert should_send_immediate_alert(69, "99999.99", enabled) is False
    assert should_send_immediate_alert(100, "5000000", disabled) is False
    assert should_send_immediate_alert(100, "5000000", None) is False
