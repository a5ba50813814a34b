"""Health and readiness endpoints.

  /health  liveness: the process can answer.  Always 200; ``checks`` says
           which store backs the service.
  /ready   readiness: 503 while the database is unreachable, so the load
           balancer stops routing here without restarting the container.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from academy.db import engine as db

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {
        "status": "ok",
        "checks": {"database": "configured" if db.engine is not None else "in_memory"},
    }


@router.get("/ready")
async def ready() -> Response:
    if await db.ping():
        return Response(status_code=status.HTTP_200_OK)
    return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
