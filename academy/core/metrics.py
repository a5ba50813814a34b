"""Prometheus metrics for the enrollment service.

All metrics live here so there is one inventory of what the service
measures.  HTTP metrics are recorded by MetricsMiddleware; the domain
counters are incremented by the services at the point a transaction
commits its decision.

Labels stay low-cardinality: edges, outcomes and error codes, never ids.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Domain
# ---------------------------------------------------------------------------

ENROLLMENT_TRANSITIONS = Counter(
    "enrollment_transitions_total",
    "Enrollment state transitions by operation and edge",
    ["operation", "from_status", "to_status"],
)

PAYMENT_DECISIONS = Counter(
    "payment_decisions_total",
    "Manual payment reviews by outcome",
    ["outcome"],  # approve|reject
)

MATERIAL_COMPLETIONS = Counter(
    "material_completions_total",
    "Material completion registrations",
    ["result"],  # recorded|duplicate
)

QUIZ_SUBMISSIONS = Counter(
    "quiz_submissions_total",
    "Scored quiz attempts",
    ["result", "late"],  # passed|failed, true|false
)

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificates issued",
)

DOMAIN_ERRORS = Counter(
    "domain_errors_total",
    "Operations refused by the enrollment core, by error code",
    ["code"],
)
