"""Prometheus metrics for zapit.

Exposed at the ``/metrics/prometheus`` endpoint.
"""

import time

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# ============ Metrics Definitions ============

EVALUATIONS_TOTAL = Counter(
    'zapit_evaluations_total',
    'Total number of URL evaluations',
    ['outcome']  # safe, malicious, malformed, storage_error
)

EVALUATION_DURATION = Histogram(
    'zapit_evaluation_duration_seconds',
    'Time spent evaluating a URL',
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1, 2, 5]
)

CACHE_HITS = Counter(
    'zapit_cache_hits_total',
    'Verdicts served from storage'
)
CACHE_MISSES = Counter(
    'zapit_cache_misses_total',
    'Evaluations of never-seen URLs'
)

STORAGE_ERRORS = Counter(
    'zapit_storage_errors_total',
    'Storage operation failures',
    ['operation']  # get, put, close
)


# ============ Helper Functions ============

def record_evaluation(outcome: str, duration: float):
    EVALUATIONS_TOTAL.labels(outcome=outcome).inc()
    EVALUATION_DURATION.observe(duration)


def record_storage_error(operation: str):
    STORAGE_ERRORS.labels(operation=operation).inc()


def track_evaluation():
    """Context manager measuring one evaluation's wall time."""
    class EvaluationTimer:
        def __enter__(self):
            self.start_time = time.time()
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            return False

        @property
        def duration(self):
            return time.time() - self.start_time

    return EvaluationTimer()


def get_metrics():
    """Return current metrics in Prometheus exposition format (bytes)."""
    return generate_latest()


def get_content_type():
    return CONTENT_TYPE_LATEST
