"""Prometheus metrics for schedules, credits and webhook performance"""

from prometheus_client import Counter, Histogram

# Schedule metrics
schedule_counter = Counter(
    "travel_schedule_total",
    "Payment schedules generated",
    ["outcome"],  # scheduled | to_be_defined | upfront
)

discount_warning_counter = Counter(
    "travel_discount_config_warnings_total",
    "Custom discounts selected without a value",
)

# Credit metrics
credit_issued_counter = Counter(
    "travel_credit_issued_total",
    "Credits issued on cancellation",
    ["penalty"],  # applied | waived
)

credit_redemption_counter = Counter(
    "travel_credit_redemption_total",
    "Credit redemption attempts",
    ["outcome"],  # redeemed | not_found | expired | already_redeemed | insufficient
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "cash_book_webhook_latency_seconds",
    "Cash book webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "cash_book_webhook_failures_total",
    "Failed cash book deliveries, retries included",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_schedule(to_be_defined: bool, upfront: bool = False) -> None:
    """Record how a schedule was produced"""
    if upfront:
        outcome = "upfront"
    elif to_be_defined:
        outcome = "to_be_defined"
    else:
        outcome = "scheduled"
    schedule_counter.labels(outcome=outcome).inc()


def record_credit_issued(penalty_applied: bool) -> None:
    credit_issued_counter.labels(penalty="applied" if penalty_applied else "waived").inc()


def record_redemption(outcome: str) -> None:
    credit_redemption_counter.labels(outcome=outcome).inc()
