"""Prometheus metrics for monitoring anomaly rates, alerts and notification delivery"""

from prometheus_client import Counter, Histogram

# Scoring metrics
transactions_scored_counter = Counter(
    "careguard_transactions_scored_total",
    "Transactions scored by the anomaly scorer",
    ["outcome"],  # anomaly | normal
)

risk_score_histogram = Histogram(
    "careguard_risk_score",
    "Per-transaction anomaly scores",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)

alerts_created_counter = Counter(
    "careguard_alerts_created_total",
    "Caregiver alerts created",
    ["type"],  # urgent | high-risk | medium-risk
)

risk_level_counter = Counter(
    "careguard_risk_level_total",
    "Risk reassessments by resulting tier",
    ["level"],  # low | medium | high
)

# Notification webhook metrics
webhook_latency_histogram = Histogram(
    "notification_webhook_latency_seconds",
    "Caregiver notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "notification_webhook_failures_total",
    "Failed notification webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_scoring(is_anomaly: bool, risk_score: int) -> None:
    """Record scoring metrics for monitoring anomaly rate and score distribution"""
    outcome = "anomaly" if is_anomaly else "normal"
    transactions_scored_counter.labels(outcome=outcome).inc()
    risk_score_histogram.observe(risk_score)


def record_alert(alert_type: str) -> None:
    alerts_created_counter.labels(type=alert_type).inc()


def record_risk_level(risk_level: str) -> None:
    risk_level_counter.labels(level=risk_level).inc()
