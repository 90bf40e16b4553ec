"""Prometheus metrics for the URL shortener workflows.

HTTP-level metrics are exported separately by prometheus_fastapi_instrumentator
in ``shortener.main``; these cover what happens behind the routes.
"""

from prometheus_client import Counter, Histogram

__all__ = [
    "SHORTEN_REQUESTS_TOTAL",
    "SHORTEN_DURATION",
    "RESOLVE_REQUESTS_TOTAL",
    "RESOLVE_DURATION",
    "CACHE_ERRORS_TOTAL",
    "CLICK_INCREMENTS_TOTAL",
    "CLICK_INCREMENT_FAILURES_TOTAL",
    "CLICK_INCREMENTS_DROPPED_TOTAL",
    "SWEEPER_RUNS_TOTAL",
    "SWEEPER_DELETED_TOTAL",
]

# Request metrics
SHORTEN_REQUESTS_TOTAL = Counter(
    "url_shortener_shorten_requests_total",
    "Total shorten requests",
    ["status"],
)
RESOLVE_REQUESTS_TOTAL = Counter(
    "url_shortener_resolve_requests_total",
    "Total resolve requests by answer source",
    ["source"],
)

# Performance metrics
SHORTEN_DURATION = Histogram(
    "url_shortener_shorten_duration_seconds",
    "Time taken to shorten URLs",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)
RESOLVE_DURATION = Histogram(
    "url_shortener_resolve_duration_seconds",
    "Time taken to resolve tokens",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)

# Cache metrics
CACHE_ERRORS_TOTAL = Counter(
    "url_shortener_cache_errors_total",
    "Cache operations that failed and were ignored",
    ["operation"],
)

# Click tracking metrics
CLICK_INCREMENTS_TOTAL = Counter(
    "url_shortener_click_increments_total",
    "Background click increments applied to the store",
)
CLICK_INCREMENT_FAILURES_TOTAL = Counter(
    "url_shortener_click_increment_failures_total",
    "Background click increments that failed",
)
CLICK_INCREMENTS_DROPPED_TOTAL = Counter(
    "url_shortener_click_increments_dropped_total",
    "Background click increments dropped because too many were pending",
)

# Sweeper metrics
SWEEPER_RUNS_TOTAL = Counter(
    "url_shortener_sweeper_runs_total",
    "Expiry sweeper runs",
    ["status"],
)
SWEEPER_DELETED_TOTAL = Counter(
    "url_shortener_sweeper_deleted_total",
    "URL records deleted by the expiry sweeper",
)
