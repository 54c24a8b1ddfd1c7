"""
Health check API routes.

Kubernetes-compatible liveness and readiness probes.
"""

from fastapi import APIRouter, Depends, Response, status

from passerelle.di.container import DIContainer
from passerelle.di.dependencies import get_container

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_probe():
    """
    Liveness probe endpoint.

    Answers as long as the process serves requests.
    """
    return {"status": "healthy"}


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_probe(
    response: Response,
    container: DIContainer = Depends(get_container),
):
    """
    Readiness probe endpoint.

    Checks:
    - Chain RPC connectivity
    - Transfer store connectivity

    Returns 503 when any check fails.
    """
    checks = {
        "chain_rpc": await container.chain_client.health_check(),
        "store": await container.transfer_repository.health_check(),
    }

    healthy = all(checks.values())
    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "healthy" if healthy else "unhealthy",
        "checks": checks,
        "backend": "sql" if container.uses_sql_store else "memory",
    }
