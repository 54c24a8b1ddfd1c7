"""
Monitoring and observability infrastructure.
"""

from passerelle.infrastructure.monitoring import metrics
from passerelle.infrastructure.monitoring.logger import (
    get_logger,
    get_request_id,
    log_performance,
    set_request_id,
    setup_logging,
)

__all__ = [
    "metrics",
    "get_logger",
    "get_request_id",
    "set_request_id",
    "setup_logging",
    "log_performance",
]
