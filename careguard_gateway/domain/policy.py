"""
Scoring policy: every threshold, bucket edge and vocabulary used by the scorers.

Both scorers read their numbers from a ScoringPolicy instead of literals, so the
anomaly threshold and the profile tiers cannot drift apart. DEFAULT_POLICY holds
the production values; a tuned policy is loaded from JSON through the pydantic
model ScoringPolicyOverrides (ScoringPolicy.from_file) and passed to any scoring
function. Overrides are validated when loaded, never at scoring time.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Anomaly scorer
ANOMALY_THRESHOLD = 30  # riskScore >= this marks the transaction anomalous
MAX_SCORE = 100

# Profile tiers (inclusive lower bounds)
HIGH_RISK_THRESHOLD = 70
MEDIUM_RISK_THRESHOLD = 40

# Alert type tiers on the anomaly score
URGENT_ALERT_SCORE = 70
HIGH_RISK_ALERT_SCORE = 50

# Immediate alert gate
IMMEDIATE_ALERT_SCORE = 70
DEFAULT_ALERT_THRESHOLD = 100_000  # Amount that triggers an immediate alert when settings give none


@dataclass(frozen=True)
class BucketRule:
    """Award `score` when the measured value passes `threshold`"""

    threshold: float
    score: int


@dataclass(frozen=True)
class BucketTable:
    """
    Ordered (threshold, score) rules evaluated top-down; first passing rule wins.

    Rules must be sorted by descending threshold. `inclusive` selects >= instead of >.
    """

    rules: Tuple[BucketRule, ...]
    default: int = 0
    inclusive: bool = False

    def passes(self, value: float, threshold: float) -> bool:
        return value >= threshold if self.inclusive else value > threshold

    def match(self, value: float) -> Optional[BucketRule]:
        for rule in self.rules:
            if self.passes(value, rule.threshold):
                return rule
        return None

    def score(self, value: float) -> int:
        rule = self.match(value)
        return rule.score if rule else self.default

    @classmethod
    def of(cls, pairs: Sequence[Sequence[float]], default: int = 0, inclusive: bool = False) -> "BucketTable":
        return cls(
            rules=tuple(BucketRule(float(t), int(s)) for t, s in pairs),
            default=default,
            inclusive=inclusive,
        )


def round_half_up(value: float | Decimal) -> int:
    """Round .5 away from zero; built-in round() would bank to even"""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp_score(value: int) -> int:
    return max(0, min(value, MAX_SCORE))


@dataclass(frozen=True)
class ScoringPolicy:
    """Tunable capability set shared by the anomaly scorer and the risk profiler"""

    # --- anomaly scorer ---
    anomaly_threshold: int = ANOMALY_THRESHOLD

    # Amount: ratio to historical average, ratio to the recent window mean, absolute value
    average_ratio_buckets: BucketTable = BucketTable.of([(3, 40), (2, 25)])
    recent_ratio_buckets: BucketTable = BucketTable.of([(5, 30), (3, 20)])
    absolute_amount_buckets: BucketTable = BucketTable.of(
        [(1_000_000, 35), (500_000, 20)], inclusive=True
    )

    # Frequency: transactions in the trailing window before the candidate
    frequency_window_hours: int = 24
    daily_count_buckets: BucketTable = BucketTable.of([(5, 30), (3, 15)], inclusive=True)
    atm_count_buckets: BucketTable = BucketTable.of([(3, 25)], inclusive=True)

    # Timing: late night / early morning
    night_start_hour: int = 23
    night_end_hour: int = 6
    night_score: int = 20

    # Merchant / description vocabulary
    high_risk_keywords: Tuple[str, ...] = (
        "gift",
        "transfer",
        "investment",
        "loan",
        "insurance",
        "fund",
        "stock",
        "shares",
    )
    keyword_score: int = 25
    online_channel_terms: Tuple[str, ...] = ("online", "internet", "phone")
    online_channel_score: int = 15
    unknown_merchant_markers: Tuple[str, ...] = ("unknown", "unverified")
    unknown_merchant_score: int = 20

    # Location novelty
    location_history_size: int = 10
    unusual_location_score: int = 15

    # --- risk profiler ---
    profile_window_days: int = 7
    daily_rate_buckets: BucketTable = BucketTable.of([(5, 85), (3, 60), (2, 35)], default=15)
    spending_ratio_buckets: BucketTable = BucketTable.of([(3, 85), (2, 60), (1.5, 40)], default=20)
    weekly_total_buckets: BucketTable = BucketTable.of([(1_000_000, 80), (500_000, 50)], default=20)
    location_count_buckets: BucketTable = BucketTable.of([(10, 80), (7, 60), (5, 40)], default=20)
    weeks_per_month: int = 4
    profile_night_start_hour: int = 22
    profile_night_end_hour: int = 7

    dementia_multipliers: Mapping[str, float] = field(
        default_factory=lambda: {"mild": 1.1, "moderate": 1.3, "severe": 1.5}
    )
    factor_weights: Mapping[str, float] = field(
        default_factory=lambda: {"frequency": 0.30, "amount": 0.40, "timing": 0.15, "location": 0.15}
    )

    high_risk_threshold: int = HIGH_RISK_THRESHOLD
    medium_risk_threshold: int = MEDIUM_RISK_THRESHOLD

    # Recommendation triggers
    high_tier_factor_warning: int = 70
    medium_tier_timing_warning: int = 50
    atm_count_warning: int = 3

    # --- alert policy ---
    urgent_alert_score: int = URGENT_ALERT_SCORE
    high_risk_alert_score: int = HIGH_RISK_ALERT_SCORE
    immediate_alert_score: int = IMMEDIATE_ALERT_SCORE

    # --- time of day ---
    # Night windows are read on this zone's wall clock, whatever offset a timestamp carries
    scoring_timezone: str = "UTC"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base: Optional["ScoringPolicy"] = None) -> "ScoringPolicy":
        """
        Validate a plain mapping (e.g. parsed JSON) and overlay it onto `base`.

        Bucket tables are given as {"rules": [[threshold, score], ...], "default": n, "inclusive": bool};
        the default and inclusive flags fall back to the base table. Keyword lists are lowercased.

        Raises:
            pydantic.ValidationError: Unknown keys, wrongly typed values or unsorted rules
        """
        return ScoringPolicyOverrides.model_validate(data).apply(base or DEFAULT_POLICY)

    @classmethod
    def from_file(cls, path: str | Path, base: Optional["ScoringPolicy"] = None) -> "ScoringPolicy":
        overrides = ScoringPolicyOverrides.model_validate_json(Path(path).read_text(encoding="utf-8"))
        return overrides.apply(base or DEFAULT_POLICY)


DEFAULT_POLICY = ScoringPolicy()


Score = Annotated[int, Field(strict=True, ge=0, le=MAX_SCORE)]
Hour = Annotated[int, Field(strict=True, ge=0, le=23)]
Count = Annotated[int, Field(strict=True, ge=1)]
Vocabulary = List[Annotated[str, Field(min_length=1)]]


class BucketTableOverride(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rules: List[Tuple[float, Score]] = Field(..., min_length=1)
    default: Optional[Score] = None
    inclusive: Optional[bool] = None

    @field_validator("rules")
    @classmethod
    def rules_descending(cls, rules: List[Tuple[float, int]]) -> List[Tuple[float, int]]:
        thresholds = [threshold for threshold, _ in rules]
        if thresholds != sorted(thresholds, reverse=True):
            raise ValueError("rules must be sorted by descending threshold")
        return rules

    def to_table(self, current: BucketTable) -> BucketTable:
        return BucketTable.of(
            self.rules,
            default=current.default if self.default is None else self.default,
            inclusive=current.inclusive if self.inclusive is None else self.inclusive,
        )


class ScoringPolicyOverrides(BaseModel):
    """Typed shape of a scoring policy file; every key is optional, unknown keys are rejected"""

    model_config = ConfigDict(extra="forbid")

    anomaly_threshold: Optional[Score] = None

    average_ratio_buckets: Optional[BucketTableOverride] = None
    recent_ratio_buckets: Optional[BucketTableOverride] = None
    absolute_amount_buckets: Optional[BucketTableOverride] = None

    frequency_window_hours: Optional[Count] = None
    daily_count_buckets: Optional[BucketTableOverride] = None
    atm_count_buckets: Optional[BucketTableOverride] = None

    night_start_hour: Optional[Hour] = None
    night_end_hour: Optional[Hour] = None
    night_score: Optional[Score] = None

    high_risk_keywords: Optional[Vocabulary] = None
    keyword_score: Optional[Score] = None
    online_channel_terms: Optional[Vocabulary] = None
    online_channel_score: Optional[Score] = None
    unknown_merchant_markers: Optional[Vocabulary] = None
    unknown_merchant_score: Optional[Score] = None

    location_history_size: Optional[Count] = None
    unusual_location_score: Optional[Score] = None

    profile_window_days: Optional[Count] = None
    daily_rate_buckets: Optional[BucketTableOverride] = None
    spending_ratio_buckets: Optional[BucketTableOverride] = None
    weekly_total_buckets: Optional[BucketTableOverride] = None
    location_count_buckets: Optional[BucketTableOverride] = None
    weeks_per_month: Optional[Count] = None
    profile_night_start_hour: Optional[Hour] = None
    profile_night_end_hour: Optional[Hour] = None

    dementia_multipliers: Optional[Dict[Literal["mild", "moderate", "severe"], Annotated[float, Field(gt=0)]]] = None
    factor_weights: Optional[
        Dict[Literal["frequency", "amount", "timing", "location"], Annotated[float, Field(ge=0)]]
    ] = None

    high_risk_threshold: Optional[Score] = None
    medium_risk_threshold: Optional[Score] = None

    high_tier_factor_warning: Optional[Score] = None
    medium_tier_timing_warning: Optional[Score] = None
    atm_count_warning: Optional[int] = Field(None, strict=True, ge=0)

    urgent_alert_score: Optional[Score] = None
    high_risk_alert_score: Optional[Score] = None
    immediate_alert_score: Optional[Score] = None

    scoring_timezone: Optional[str] = None

    @field_validator("scoring_timezone")
    @classmethod
    def known_timezone(cls, name: Optional[str]) -> Optional[str]:
        if name is not None:
            try:
                ZoneInfo(name)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"unknown time zone {name!r}") from e
        return name

    def apply(self, base: ScoringPolicy) -> ScoringPolicy:
        changes: Dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, BucketTableOverride):
                changes[name] = value.to_table(getattr(base, name))
            elif name in VOCABULARY_FIELDS:
                changes[name] = tuple(term.lower() for term in value)
            else:
                changes[name] = value
        return replace(base, **changes)


VOCABULARY_FIELDS = ("high_risk_keywords", "online_channel_terms", "unknown_merchant_markers")
