"""Prometheus scrape endpoint.

Plain-text exposition format, e.g.:

  enrollment_transitions_total{operation="approve",from_status="pending_review",to_status="active"} 17.0
  payment_decisions_total{outcome="reject"} 3.0

Restrict /metrics at the ingress in production; it is not authenticated.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
