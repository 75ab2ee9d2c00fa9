"""Prometheus scrape endpoint."""
from fastapi import APIRouter
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def get_metrics():
    """
    Get Prometheus-compatible metrics.

    Returns:
        Answer, cache, retrieval and room counters in text exposition format
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
