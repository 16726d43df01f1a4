"""Execution service - runs graphs and answers history queries."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, TYPE_CHECKING

from ..core.exceptions import ExecutionNotFoundError
from ..engine.types import RunStatus, TriggerMode
from ..schemas.execution import ExecutionListItem
from ..storage.execution_store import ExecutionEntry

if TYPE_CHECKING:
    from ..engine.types import ExecutionResult, WorkflowGraph
    from ..engine.workflow_runner import WorkflowRunner
    from ..storage.execution_store import ExecutionStore

logger = logging.getLogger(__name__)


class ExecutionService:
    """Glue between the API, the runner and the execution store."""

    def __init__(self, runner: WorkflowRunner, store: ExecutionStore) -> None:
        self._runner = runner
        self._store = store
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    def validate(self, graph: WorkflowGraph) -> dict[str, Any]:
        return self._runner.validator.validate(graph).to_dict()

    async def execute(
        self,
        graph: WorkflowGraph,
        input_data: Any = None,
        *,
        mode: TriggerMode = "manual",
        trigger_id: str | None = None,
        variables: dict[str, Any] | None = None,
    ) -> ExecutionResult:
        """Run a graph to completion and record it."""
        run_id = self._runner.new_run_id()
        self._store.start(run_id, mode)
        try:
            result = await self._runner.run(
                graph,
                input_data,
                mode=mode,
                trigger_id=trigger_id,
                variables=variables,
                run_id=run_id,
            )
        except Exception:
            self._store.delete(run_id)
            raise
        self._store.complete(result)
        return result

    def start_background(
        self,
        graph: WorkflowGraph,
        input_data: Any = None,
        *,
        mode: TriggerMode = "manual",
        trigger_id: str | None = None,
        variables: dict[str, Any] | None = None,
    ) -> str:
        """
        Validate a graph and run it in a background task.

        Structural errors are raised here, before the run is accepted.
        """
        self._runner.validator.validate(graph).raise_for_errors()
        run_id = self._runner.new_run_id()
        self._store.start(run_id, mode)
        task = asyncio.create_task(
            self._run_in_background(graph, input_data, run_id, mode, trigger_id, variables)
        )
        self._tasks[run_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(run_id, None))
        return run_id

    async def _run_in_background(
        self,
        graph: WorkflowGraph,
        input_data: Any,
        run_id: str,
        mode: TriggerMode,
        trigger_id: str | None,
        variables: dict[str, Any] | None,
    ) -> None:
        try:
            result = await self._runner.run(
                graph,
                input_data,
                mode=mode,
                trigger_id=trigger_id,
                variables=variables,
                run_id=run_id,
            )
        except asyncio.CancelledError:
            self._store.mark(run_id, RunStatus.CANCELLED)
            raise
        except Exception:
            logger.exception("Background run %s crashed", run_id)
            self._store.mark(run_id, RunStatus.FAILED)
            return
        self._store.complete(result)

    def list_executions(self, status: RunStatus | None = None) -> list[ExecutionListItem]:
        return [self._list_item(entry) for entry in self._store.list(status)]

    def get_execution(self, run_id: str) -> dict[str, Any]:
        return self._get(run_id).to_dict()

    def cancel(self, run_id: str) -> bool:
        """
        Request cancellation of an in-flight run.

        Returns False when the run already finished.
        """
        entry = self._get(run_id)
        if entry.result is not None:
            return False
        if self._runner.cancel(run_id):
            return True
        task = self._tasks.get(run_id)
        if task is not None and not task.done():
            # Not started yet; it never will
            task.cancel()
            self._store.mark(run_id, RunStatus.CANCELLED)
            return True
        return False

    def delete_execution(self, run_id: str) -> None:
        if not self._store.delete(run_id):
            raise ExecutionNotFoundError(run_id)

    def _get(self, run_id: str) -> ExecutionEntry:
        entry = self._store.get(run_id)
        if entry is None:
            raise ExecutionNotFoundError(run_id)
        return entry

    @staticmethod
    def _list_item(entry: ExecutionEntry) -> ExecutionListItem:
        result = entry.result
        return ExecutionListItem(
            id=entry.id,
            status=entry.status.value,
            mode=entry.mode,
            started_at=entry.started_at.isoformat(),
            finished_at=entry.finished_at.isoformat() if entry.finished_at else None,
            duration_ms=result.duration_ms if result else None,
            error=result.error.get("message") if result and result.error else None,
        )
