"""FastAPI dependency injection for the engine service."""

from functools import lru_cache

from fastapi import Depends

from ..engine.node_registry import NodeRegistryClass, register_all_nodes
from ..engine.workflow_runner import WorkflowRunner
from ..services.execution_service import ExecutionService
from ..storage.execution_store import ExecutionStore, execution_store
from .config import get_settings


@lru_cache
def get_node_registry() -> NodeRegistryClass:
    """Get the shared registry with all built-in nodes registered."""
    return register_all_nodes()


@lru_cache
def get_runner() -> WorkflowRunner:
    """One runner per process so cancellation can reach in-flight runs."""
    return WorkflowRunner(registry=get_node_registry(), settings=get_settings())


def get_execution_store() -> ExecutionStore:
    return execution_store


@lru_cache
def _service(runner: WorkflowRunner, store: ExecutionStore) -> ExecutionService:
    return ExecutionService(runner, store)


def get_execution_service(
    runner: WorkflowRunner = Depends(get_runner),
    store: ExecutionStore = Depends(get_execution_store),
) -> ExecutionService:
    """Get the execution service bound to the shared runner and store."""
    return _service(runner, store)
