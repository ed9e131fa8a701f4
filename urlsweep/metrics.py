"""Prometheus metrics for urlsweep.

Exposed at the /metrics endpoint of the HTTP API.
"""

import time

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST

# ============ Metrics Definitions ============

SCANS_TOTAL = Counter(
    'urlsweep_scans_total',
    'Total number of batch scans',
    ['status']  # ok / precondition / error
)

ROWS_TOTAL = Counter(
    'urlsweep_rows_total',
    'Rows produced by scans',
    ['status']  # success / failed
)

FETCH_ERRORS_TOTAL = Counter(
    'urlsweep_fetch_errors_total',
    'Per-URL fetch failures',
    ['kind']  # invalid_url / network / timeout
)

FETCH_DURATION = Histogram(
    'urlsweep_fetch_duration_seconds',
    'Time spent fetching and analyzing one URL',
    buckets=[0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60, 120]
)

ACTIVE_FETCHES = Gauge(
    'urlsweep_active_fetches',
    'Number of URL pipelines currently in flight'
)

SCAN_DURATION = Histogram(
    'urlsweep_scan_duration_seconds',
    'Wall time of a whole batch scan',
    buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1800]
)


# ============ Helper Functions ============

def record_row(ok: bool):
    ROWS_TOTAL.labels(status='success' if ok else 'failed').inc()


def record_fetch_error(kind: str):
    """Record a per-URL failure by kind (invalid_url, network, timeout, http, analysis)."""
    FETCH_ERRORS_TOTAL.labels(kind=kind).inc()


def record_scan(status: str, duration: float):
    SCANS_TOTAL.labels(status=status).inc()
    SCAN_DURATION.observe(duration)


def track_active_fetch():
    """Context manager counting in-flight pipelines and timing them."""
    class FetchTracker:
        def __enter__(self):
            ACTIVE_FETCHES.inc()
            self.start_time = time.time()
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            ACTIVE_FETCHES.dec()
            FETCH_DURATION.observe(self.duration)
            return False

        @property
        def duration(self):
            return time.time() - self.start_time

    return FetchTracker()


def get_metrics():
    """Get current metrics in Prometheus format.

    Returns:
        bytes: Prometheus-formatted metrics
    """
    return generate_latest()


def get_content_type():
    """Get Prometheus content type header value."""
    return CONTENT_TYPE_LATEST
