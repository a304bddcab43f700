"""Application metrics using the Prometheus client library.

One inventory of everything the service measures.  Modules import the
metric they own and increment it at the point of action; nothing here
knows about the domain beyond label names.

Counters only go up, so tests assert on deltas (see tests/middleware).
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
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Domain metrics
# ---------------------------------------------------------------------------

ENROLLMENT_OPERATIONS = Counter(
    "enrollment_operations_total",
    "Enrollment ledger operations by outcome",
    ["operation", "result"],  # enroll|unenroll|set_progress ; ok|<error kind>
)

ACCESS_DECISIONS = Counter(
    "access_decisions_total",
    "Lesson access decisions",
    ["decision", "reason"],  # allow|deny ; owner|admin|enrolled|<deny reason>
)

LESSON_COMPLETIONS = Counter(
    "lesson_completions_total",
    "Lesson completion events by result",
    ["result"],  # recorded|duplicate|course_completed
)

GRADING_OPERATIONS = Counter(
    "grading_operations_total",
    "Grading engine operations by outcome",
    ["operation", "result"],  # score|submit|grade ; ok|<error kind>
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # hit|miss
)
