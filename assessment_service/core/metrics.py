"""Application metrics using the Prometheus client library.

All metrics are declared here so the inventory lives in one place; the
modules that own the behavior import and increment them.

Autosave health is read from ``autosave_writes_total``: a rising
``result="error"`` rate means learners are typing into a form whose
answers only exist in memory.  ``result="rejected"`` counts writes the
backend refused because the submission had already been completed, and
``result="discarded"`` counts writes dropped client-side for the same
reason.
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
# Submission lifecycle metrics
# ---------------------------------------------------------------------------

AUTOSAVE_WRITES = Counter(
    "autosave_writes_total",
    "Autosave persistence attempts by result",
    ["result"],  # ok|error|rejected|discarded
)

AUTOSAVE_COALESCED = Counter(
    "autosave_coalesced_total",
    "Persist requests folded into a single follow-up behind an in-flight write",
)

SUBMISSION_ENTRIES = Counter(
    "submission_entries_total",
    "Assessment entries by whether the submission was created or resumed",
    ["result"],  # created|resumed
)

SUBMISSION_COMPLETIONS = Counter(
    "submission_completions_total",
    "Completion signals by result",
    ["result"],  # completed|duplicate|failed
)

ACTIVE_SESSIONS = Gauge(
    "active_assessment_sessions",
    "Assessment sessions currently held open by this process",
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # "hit" or "miss"
)
