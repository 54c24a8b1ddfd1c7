"""
Prometheus metrics middleware for FastAPI.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from passerelle.infrastructure.monitoring import metrics


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP metrics.

    Records:
    - Request count by method/endpoint/status
    - Request duration by method/endpoint

    Endpoints are labelled by route template (e.g. /api/transfers/{transfer_id})
    so path parameters do not explode label cardinality.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception:
            duration = time.time() - start_time
            endpoint = self._endpoint(request)
            metrics.http_request_duration_seconds.labels(
                method=method, endpoint=endpoint
            ).observe(duration)
            metrics.http_requests_total.labels(
                method=method, endpoint=endpoint, status=500
            ).inc()
            raise

        duration = time.time() - start_time
        endpoint = self._endpoint(request)
        metrics.http_request_duration_seconds.labels(
            method=method, endpoint=endpoint
        ).observe(duration)
        metrics.http_requests_total.labels(
            method=method, endpoint=endpoint, status=response.status_code
        ).inc()

        return response

    @staticmethod
    def _endpoint(request: Request) -> str:
        route = request.scope.get("route")
        path = getattr(route, "path", None)
        return path or "unmatched"
