# src/libs/lookup-common/lookup_common/health.py
import logging
import asyncio
from typing import Callable, Awaitable

import httpx
from fastapi import APIRouter, status, HTTPException

logger = logging.getLogger(__name__)

DependencyCheck = Callable[[], Awaitable[bool]]

async def check_upstream_health(client: httpx.AsyncClient, path: str = "/health") -> bool:
    """Checks if the upstream lookup API answers its health endpoint."""
    try:
        response = await client.get(path, timeout=5)
        return response.status_code < 500
    except httpx.HTTPError as e:
        logger.error(f"Health Check: Upstream lookup API unreachable: {e}", exc_info=False)
        return False

def create_health_router(**dependencies: DependencyCheck) -> APIRouter:
    """
    Creates a standardized health check router.

    Args:
        **dependencies: Named async checks (e.g. upstream=...) that must all
                        pass for the readiness probe to succeed.

    Returns:
        A FastAPI APIRouter with /health/live and /health/ready endpoints.
    """
    router = APIRouter(tags=["Health"])

    @router.get("/health/live", status_code=status.HTTP_200_OK)
    async def liveness_probe():
        return {"status": "alive"}

    @router.get("/health/ready", status_code=status.HTTP_200_OK)
    async def readiness_probe():
        names = list(dependencies)
        results = await asyncio.gather(*[dependencies[name]() for name in names])

        dep_status = {
            name: "ok" if results[i] else "unavailable"
            for i, name in enumerate(names)
        }

        if all(results):
            return {"status": "ready", "dependencies": dep_status}

        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "not_ready", "dependencies": dep_status},
        )

    return router
