"""REST API routes for validating and running graphs."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..core.dependencies import get_execution_service, get_node_registry
from ..core.exceptions import ExecutionNotFoundError
from ..engine.node_registry import NodeRegistryClass
from ..engine.types import RunStatus
from ..schemas.common import SuccessResponse
from ..schemas.execution import ExecutionAccepted, ExecutionListItem
from ..schemas.node import NodeTypeSchema
from ..schemas.workflow import ExecuteRequest, WorkflowGraphSchema
from ..services.execution_service import ExecutionService

router = APIRouter(prefix="/api")

ExecutionServiceDep = Annotated[ExecutionService, Depends(get_execution_service)]
NodeRegistryDep = Annotated[NodeRegistryClass, Depends(get_node_registry)]


@router.post("/validate")
async def validate_graph(graph: WorkflowGraphSchema, service: ExecutionServiceDep) -> dict[str, Any]:
    """Validate a graph and return issues plus the repaired graph."""
    return service.validate(graph.to_graph())


@router.post("/executions", response_model=None)
async def execute_graph(
    request: ExecuteRequest,
    service: ExecutionServiceDep,
) -> dict[str, Any] | ExecutionAccepted:
    """Run an ad-hoc graph; with `background` the run id is returned immediately."""
    graph = request.graph.to_graph()
    if request.background:
        run_id = service.start_background(
            graph,
            request.input,
            mode=request.mode,
            trigger_id=request.trigger_id,
            variables=request.variables,
        )
        return ExecutionAccepted(run_id=run_id, status=RunStatus.RUNNING.value)

    result = await service.execute(
        graph,
        request.input,
        mode=request.mode,
        trigger_id=request.trigger_id,
        variables=request.variables,
    )
    return result.to_dict()


@router.get("/executions", response_model=list[ExecutionListItem])
async def list_executions(
    service: ExecutionServiceDep,
    run_status: RunStatus | None = Query(None, alias="status", description="Filter by run status"),
) -> list[ExecutionListItem]:
    """List execution history, newest first."""
    return service.list_executions(run_status)


@router.get("/executions/{run_id}")
async def get_execution(run_id: str, service: ExecutionServiceDep) -> dict[str, Any]:
    """Get the full execution record."""
    try:
        return service.get_execution(run_id)
    except ExecutionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.post("/executions/{run_id}/cancel", response_model=SuccessResponse)
async def cancel_execution(run_id: str, service: ExecutionServiceDep) -> SuccessResponse:
    """Request cancellation of an in-flight run."""
    try:
        cancelled = service.cancel(run_id)
    except ExecutionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if not cancelled:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Run is not in progress")
    return SuccessResponse(message="Cancellation requested")


@router.delete("/executions/{run_id}", response_model=SuccessResponse)
async def delete_execution(run_id: str, service: ExecutionServiceDep) -> SuccessResponse:
    """Delete an execution record."""
    try:
        service.delete_execution(run_id)
    except ExecutionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    return SuccessResponse(message="Execution deleted")


@router.get("/nodes", response_model=list[NodeTypeSchema])
async def list_node_types(registry: NodeRegistryDep) -> list[NodeTypeSchema]:
    """Catalog of registered node kinds."""
    return [NodeTypeSchema(**vars(info)) for info in registry.get_node_info_full()]


@router.get("/nodes/{kind}", response_model=NodeTypeSchema)
async def get_node_type(kind: str, registry: NodeRegistryDep) -> NodeTypeSchema:
    info = registry.get_node_type_info(kind)
    if info is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Node kind not found: {kind}")
    return NodeTypeSchema(**vars(info))
