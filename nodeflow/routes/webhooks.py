"""Webhook routes for triggering graphs."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request

from ..core.dependencies import get_execution_service
from ..schemas.workflow import WebhookRunRequest
from ..services.execution_service import ExecutionService

router = APIRouter()

ExecutionServiceDep = Annotated[ExecutionService, Depends(get_execution_service)]


@router.post("/webhook/run")
async def handle_webhook(
    request: WebhookRunRequest,
    raw_request: Request,
    service: ExecutionServiceDep,
) -> dict[str, Any]:
    """Run a graph in webhook mode with the request as the trigger's input."""
    webhook_data = {
        "method": raw_request.method,
        "headers": dict(raw_request.headers),
        "query": dict(raw_request.query_params),
        "body": request.payload if request.payload is not None else {},
    }
    result = await service.execute(
        request.graph.to_graph(),
        webhook_data,
        mode="webhook",
        trigger_id=request.trigger_id,
    )
    return result.to_dict()
