"""Prometheus metrics definitions for s3console.

Console-level metrics use the ``s3console_`` prefix. HTTP request count,
duration and sizes come from ``prometheus-fastapi-instrumentator``.

Counters reset to zero on restart; Prometheus handles gaps via ``rate()``.
"""

from __future__ import annotations

from prometheus_client import Counter

# Flag indicating whether metrics have been initialised via init_metrics().
_initialized: bool = False

# Console operations by name and outcome (labels: operation, status)
operations_total: Counter | None = None

# Auth service lookups by outcome (labels: status)
auth_lookups_total: Counter | None = None

bytes_uploaded_total: Counter | None = None
bytes_downloaded_total: Counter | None = None


def init_metrics() -> None:
    """Create and register all Prometheus metrics.

    Called once when metrics are enabled. When metrics are disabled in
    config the module-level references stay ``None`` and the record
    helpers below do nothing.
    """
    global _initialized
    global operations_total, auth_lookups_total
    global bytes_uploaded_total, bytes_downloaded_total

    if _initialized:
        return

    operations_total = Counter(
        "s3console_operations_total",
        "Total console operations by type and outcome",
        ["operation", "status"],
    )

    auth_lookups_total = Counter(
        "s3console_auth_lookups_total",
        "Total credential lookups against the auth service by outcome",
        ["status"],
    )

    bytes_uploaded_total = Counter(
        "s3console_bytes_uploaded_total",
        "Total object bytes uploaded to the store",
    )

    bytes_downloaded_total = Counter(
        "s3console_bytes_downloaded_total",
        "Total object bytes streamed back to console users",
    )

    _initialized = True


def record_operation(operation: str, status: str) -> None:
    """Count one console operation outcome ("ok" or an error code)."""
    if operations_total is not None:
        operations_total.labels(operation=operation, status=status).inc()


def record_auth_lookup(status: str) -> None:
    if auth_lookups_total is not None:
        auth_lookups_total.labels(status=status).inc()


def record_upload(size: int) -> None:
    if bytes_uploaded_total is not None and size > 0:
        bytes_uploaded_total.inc(size)


def record_download(size: int) -> None:
    if bytes_downloaded_total is not None and size > 0:
        bytes_downloaded_total.inc(size)
