"""Monitoring configuration for the progression engine."""
from typing import Optional

from prometheus_client import Counter, Histogram, start_http_server

from wordpath.config import settings

# Submission metrics
submissions = Counter(
    "wordpath_submissions_total",
    "Total number of card answers submitted",
    ["task_kind", "result"],
)

submission_duration = Histogram(
    "wordpath_submission_duration_seconds",
    "Duration of a card submission including the unlock cascade",
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)

# Progression metrics
levels_completed = Counter(
    "wordpath_levels_completed_total",
    "Total number of submissions that left their level completed",
)

levels_unlocked = Counter(
    "wordpath_levels_unlocked_total",
    "Total number of levels unlocked by the cascade",
)

modules_unlocked = Counter(
    "wordpath_modules_unlocked_total",
    "Total number of modules unlocked by the cascade",
)

# Error metrics
error_count = Counter(
    "wordpath_errors_total",
    "Total number of rejected submissions",
    ["error_type"],
)


def start_monitoring(port: Optional[int] = None) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port or settings.monitoring.port)
