"""Custom exceptions for the workflow engine."""

from __future__ import annotations

from typing import Any


class WorkflowEngineError(Exception):
    """Base exception for all workflow engine errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StructuralError(WorkflowEngineError):
    """Raised when a graph has fatal structural defects and cannot run."""

    def __init__(self, message: str, issues: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message=message, details={"issues": issues or []})
        self.issues = issues or []


class ExecutionNotFoundError(WorkflowEngineError):
    """Raised when an execution record is not found."""

    def __init__(self, execution_id: str) -> None:
        super().__init__(
            message=f"Execution not found: {execution_id}",
            details={"execution_id": execution_id},
        )
        self.execution_id = execution_id


class NodeNotFoundError(WorkflowEngineError):
    """Raised when a node kind is not registered."""

    def __init__(self, kind: str) -> None:
        super().__init__(
            message=f"Node kind not found: {kind}",
            details={"kind": kind},
        )
        self.kind = kind


class NodeError(WorkflowEngineError):
    """
    Failure of a single node dispatch.

    Every error crossing the dispatch boundary is one of these, so it can be
    rendered uniformly as {kind, message, nodeId, context}.
    """

    kind = "error"
    retryable = False

    def __init__(
        self,
        message: str,
        node_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, details=context)
        self.node_id = node_id
        self.context = context or {}
        self.attempts = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "nodeId": self.node_id,
            "context": self.context,
        }


class ValidationError(NodeError):
    """Raised when a node's configuration or input is invalid."""

    kind = "validation"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        node_id: str | None = None,
    ) -> None:
        super().__init__(message, node_id=node_id, context={"field": field} if field else {})
        self.field = field


class TransientError(NodeError):
    """A failure that may succeed on retry (timeouts, 5xx, connection resets)."""

    kind = "transient"
    retryable = True


class PermanentError(NodeError):
    """A failure that will not go away by retrying (4xx, bad data)."""

    kind = "permanent"


class UserStop(NodeError):
    """Raised by a stop-and-error node to terminate the run on purpose."""

    kind = "user_stop"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        node_id: str | None = None,
    ) -> None:
        super().__init__(message, node_id=node_id, context={"code": code} if code else {})
        self.code = code


class Cancelled(NodeError):
    """Raised when a run is cancelled between dispatches."""

    kind = "cancelled"
