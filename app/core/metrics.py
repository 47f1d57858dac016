"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own a
behaviour import the metric and increment it at the point of action.
Counters only go up, so tests assert on deltas rather than absolute values.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, route and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # a progress write touches the store 2-3 times; a completion cascade
    # can fan out to one rollup per containing path
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Progress engine
# ---------------------------------------------------------------------------

PROGRESS_UPDATES = Counter(
    "lms_progress_updates_total",
    "Lesson progress events applied",
    ["result"],  # "applied" or "auto_enrolled"
)

COMPLETIONS = Counter(
    "lms_completions_total",
    "Completion transitions observed by the engine",
    ["kind"],  # "lesson", "course", "path"
)

PATH_ROLLUPS = Counter(
    "lms_path_rollups_total",
    "Path progress recomputations",
    ["result"],  # "ok" or "failed"
)

CERTIFICATES = Counter(
    "lms_certificates_total",
    "Certificate issuance attempts",
    ["completion_type", "result"],  # result: "issued", "existing", "race"
)

LMS_EVENTS = Counter(
    "lms_events_total",
    "Outbound LMS notifications",
    ["event_type", "result"],  # result: "emitted", "failed", "processed"
)

COURSE_PATH_INDEX_OPS = Counter(
    "lms_course_path_index_ops_total",
    "Reverse index writes and lookups",
    ["op"],  # "upsert", "delete", "lookup"
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
