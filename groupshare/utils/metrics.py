"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
purchases_initiated_total = Counter(
    "purchases_initiated_total",
    "Total number of purchase records created",
)

purchase_rejected_total = Counter(
    "purchase_rejected_total",
    "Purchase initiations rejected",
    ["reason"],  # not_found, unavailable, rate_limited
)

payments_total = Counter(
    "payments_total",
    "Payment attempts by outcome",
    ["status"],  # accepted, failed
)

webhooks_total = Counter(
    "payment_webhooks_total",
    "Payment webhook deliveries by outcome",
    ["outcome"],  # completed, duplicate, failed, unknown_transaction, ignored
)

slot_decrements_total = Counter(
    "slot_decrements_total",
    "Slot decrements by result",
    ["result"],  # ok, exhausted
)

access_redemptions_total = Counter(
    "access_redemptions_total",
    "Access token redemptions by result",
    ["result"],  # ok, rejected
)

disputes_opened_total = Counter(
    "disputes_opened_total",
    "Total disputes opened after failed access confirmation",
)

notification_failures_total = Counter(
    "notification_failures_total",
    "Notifications that could not be stored",
    ["type"],
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
payment_gateway_duration_seconds = Histogram(
    "payment_gateway_duration_seconds",
    "Payment gateway request duration",
    buckets=[0.1, 0.5, 1, 2, 5, 10],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
