"""Pydantic schemas for the API."""

from .common import ErrorResponse, HealthResponse, RootResponse, SuccessResponse
from .execution import ExecutionAccepted, ExecutionListItem
from .node import NodeTypeSchema
from .workflow import (
    EdgeSchema,
    ExecuteRequest,
    NodeSchema,
    WebhookRunRequest,
    WorkflowGraphSchema,
)

__all__ = [
    "SuccessResponse",
    "ErrorResponse",
    "HealthResponse",
    "RootResponse",
    "ExecutionListItem",
    "ExecutionAccepted",
    "NodeTypeSchema",
    "NodeSchema",
    "EdgeSchema",
    "WorkflowGraphSchema",
    "ExecuteRequest",
    "WebhookRunRequest",
]
