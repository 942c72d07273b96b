"""Application metrics using the Prometheus client library.

All metrics are defined here so there is a single inventory of what the
service measures.  Other modules import specific metrics and increment or
observe them at the point of action.  Prometheus scrapes GET /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
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
    # Roadmap generation waits on the content service for many seconds,
    # so the upper buckets go well past typical API latencies.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0, 30.0, 60.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Learning-domain metrics
# ---------------------------------------------------------------------------

QUIZ_SUBMISSIONS = Counter(
    "quiz_submissions_total",
    "Graded quiz submissions by outcome",
    ["outcome"],  # "passed", "failed", "resubmitted"
)

ROADMAPS_GENERATED = Counter(
    "roadmaps_generated_total",
    "Roadmap generation attempts by outcome",
    ["outcome"],  # "created", "parse_error", "upstream_error", "persistence_error"
)

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificate issuance calls by result",
    ["result"],  # "created" or "existing"
)

CONTENT_REQUESTS = Counter(
    "content_requests_total",
    "Calls to the content-generation service",
    ["operation", "outcome"],  # operation: roadmap|suggestions
)

CONTENT_LATENCY = Histogram(
    "content_request_duration_seconds",
    "Content-generation round-trip time",
    ["operation"],
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 40.0, 80.0],
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],  # "certificate_issuance"
)

TASKS_PROCESSED = Counter(
    "tasks_processed_total",
    "Background tasks handled by the worker",
    ["queue_name", "result"],  # result: "ok", "retried", "dead_lettered"
)
