"""Prometheus metrics for the scratchpad session.

All metric objects are defined here so they can be imported from any module.
"""

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# Persistence metrics
# ---------------------------------------------------------------------------

NOTE_SAVES = Counter(
    "scratchpad_note_saves_total",
    "Total number of note save attempts",
    ["trigger", "status"],  # trigger: explicit, navigation, autosave, interval, create
)

SAVE_DURATION = Histogram(
    "scratchpad_save_duration_seconds",
    "Duration of note save calls in seconds",
    ["trigger"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
)

# ---------------------------------------------------------------------------
# Search metrics
# ---------------------------------------------------------------------------

SEARCHES = Counter(
    "scratchpad_searches_total",
    "Total backend searches",
    ["status"],
)

# ---------------------------------------------------------------------------
# Session metrics
# ---------------------------------------------------------------------------

OPEN_TABS = Gauge(
    "scratchpad_open_tabs",
    "Number of currently open editor tabs",
)

COMMANDS = Counter(
    "scratchpad_commands_total",
    "Total dispatched session commands",
    ["command"],
)

# ---------------------------------------------------------------------------
# HTTP request metrics
# ---------------------------------------------------------------------------

HTTP_REQUESTS = Counter(
    "scratchpad_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_DURATION = Histogram(
    "scratchpad_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
)
