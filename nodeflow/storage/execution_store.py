"""In-memory execution history."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TYPE_CHECKING

from ..core.config import get_settings
from ..engine.types import RunStatus, TriggerMode, utcnow

if TYPE_CHECKING:
    from ..engine.types import ExecutionResult

logger = logging.getLogger(__name__)


@dataclass
class ExecutionEntry:
    """One run in the history; `result` is set once the run finishes."""

    id: str
    mode: TriggerMode
    status: RunStatus
    started_at: datetime
    result: ExecutionResult | None = None

    @property
    def finished_at(self) -> datetime | None:
        return self.result.finished_at if self.result else None

    def to_dict(self) -> dict[str, Any]:
        if self.result is not None:
            return self.result.to_dict()
        return {
            "runId": self.id,
            "status": self.status.value,
            "mode": self.mode,
            "startedAt": self.started_at.isoformat(),
            "finishedAt": None,
            "durationMs": None,
            "logs": [],
            "output": None,
            "error": None,
            "variables": {},
            "warnings": [],
        }


class ExecutionStore:
    """Keeps the most recent runs in memory, oldest evicted first."""

    def __init__(self, max_records: int | None = None) -> None:
        self._executions: dict[str, ExecutionEntry] = {}
        self._max_records = max_records or get_settings().max_execution_records

    def start(self, run_id: str, mode: TriggerMode) -> ExecutionEntry:
        """Create a record for a run that has been accepted."""
        entry = ExecutionEntry(id=run_id, mode=mode, status=RunStatus.RUNNING, started_at=utcnow())
        self._executions[run_id] = entry
        self._cleanup()
        return entry

    def complete(self, result: ExecutionResult) -> ExecutionEntry:
        """Store a finished run's result."""
        entry = self._executions.get(result.run_id)
        if entry is None:
            entry = ExecutionEntry(
                id=result.run_id,
                mode=result.mode,
                status=result.status,
                started_at=result.started_at,
            )
            self._executions[result.run_id] = entry
            self._cleanup()
        entry.status = result.status
        entry.result = result
        return entry

    def mark(self, run_id: str, status: RunStatus) -> None:
        entry = self._executions.get(run_id)
        if entry is not None and entry.result is None:
            entry.status = status

    def get(self, run_id: str) -> ExecutionEntry | None:
        return self._executions.get(run_id)

    def list(self, status: RunStatus | None = None) -> list[ExecutionEntry]:
        """List runs, newest first."""
        entries = list(self._executions.values())
        if status is not None:
            entries = [e for e in entries if e.status == status]
        entries.sort(key=lambda e: e.started_at, reverse=True)
        return entries

    def delete(self, run_id: str) -> bool:
        return self._executions.pop(run_id, None) is not None

    def clear(self) -> int:
        count = len(self._executions)
        self._executions.clear()
        return count

    def _cleanup(self) -> None:
        """Remove the oldest records when over the limit."""
        overflow = len(self._executions) - self._max_records
        if overflow <= 0:
            return
        oldest = sorted(self._executions.values(), key=lambda e: e.started_at)[:overflow]
        for entry in oldest:
            del self._executions[entry.id]
        logger.debug("Evicted %d execution record(s)", overflow)


# Singleton instance
execution_store = ExecutionStore()
