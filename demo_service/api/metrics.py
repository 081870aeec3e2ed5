from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from demo_service.adapters.metrics import RequestMetrics


router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])


class RequestMetricsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_requests: int = Field(..., alias="totalRequests")
    endpoint_counts: Dict[str, int] = Field(default_factory=dict, alias="endpointCounts")


def get_request_metrics(request: Request) -> RequestMetrics:
    """FastAPI dependency returning the counters owned by the running app."""
    return request.app.state.request_metrics


@router.get("/requests", response_model=RequestMetricsResponse, response_model_by_alias=True)
def request_metrics(metrics: RequestMetrics = Depends(get_request_metrics)) -> RequestMetricsResponse:
    return RequestMetricsResponse(
        total_requests=metrics.get_request_count(),
        endpoint_counts=metrics.get_all_endpoint_counts(),
    )
