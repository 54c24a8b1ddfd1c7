"""
Prometheus metrics collection.
"""

from prometheus_client import Counter, Gauge, Histogram

# ============================================================
# HTTP Metrics
# ============================================================

http_requests_total = Counter(
    "passerelle_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "passerelle_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ============================================================
# Transfer Metrics
# ============================================================

transfers_created_total = Counter(
    "passerelle_transfers_created_total",
    "Total transfer records created",
    ["origin"],
)

transfer_status_transitions_total = Counter(
    "passerelle_transfer_status_transitions_total",
    "Transfer status updates applied",
    ["status"],
)

transfer_updates_skipped_total = Counter(
    "passerelle_transfer_updates_skipped_total",
    "Status updates that were no-ops",
    ["reason"],
)

stale_transfers_failed_total = Counter(
    "passerelle_stale_transfers_failed_total",
    "Transfers force-failed by the stale sweep",
)

lifecycle_errors_total = Counter(
    "passerelle_lifecycle_errors_total",
    "Lifecycle errors by kind",
    ["error"],
)

notification_failures_total = Counter(
    "passerelle_notification_failures_total",
    "Best-effort persistence notifications that failed",
    ["operation"],
)

# ============================================================
# Reconciliation Metrics
# ============================================================

reconciler_events_total = Counter(
    "passerelle_reconciler_events_total",
    "Deposit events handled by the reconciler",
    ["outcome"],
)

chain_watcher_restarts_total = Counter(
    "passerelle_chain_watcher_restarts_total",
    "Chain subscription restarts after transport failure",
)

chain_watcher_cursor = Gauge(
    "passerelle_chain_watcher_cursor",
    "Last block fully processed by the chain watcher",
)

# ============================================================
# Rate Limiting Metrics
# ============================================================

rate_limit_rejections_total = Counter(
    "passerelle_rate_limit_rejections_total",
    "Requests rejected by the rate limiter",
    ["scope"],
)

rate_limit_fail_open_total = Counter(
    "passerelle_rate_limit_fail_open_total",
    "Requests admitted because the shared counter store failed",
)

# ============================================================
# Blockchain Metrics
# ============================================================

blockchain_requests_total = Counter(
    "passerelle_blockchain_requests_total",
    "Total chain RPC requests",
    ["operation"],
)

blockchain_errors_total = Counter(
    "passerelle_blockchain_errors_total",
    "Total chain RPC errors",
    ["operation", "error_type"],
)

blockchain_request_duration_seconds = Histogram(
    "passerelle_blockchain_request_duration_seconds",
    "Chain RPC duration in seconds",
    ["operation"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

circuit_breaker_state = Gauge(
    "passerelle_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open, 2=half_open)",
    ["service"],
)
