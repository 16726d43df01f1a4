"""Core workflow engine components."""

from .types import (
    Edge,
    ExecutionContext,
    ExecutionEvent,
    ExecutionEventType,
    ExecutionResult,
    Node,
    NodeExecutionRecord,
    NodeExecutionResult,
    NodeStatus,
    RunStatus,
    WorkflowGraph,
)
from .expression_engine import ExpressionEngine, ExpressionContext, expression_engine
from .node_registry import NodeRegistryClass, node_registry
from .validator import GraphValidator, ValidationResult
from .fault_handler import FaultHandler, RetryPolicy
from .workflow_runner import WorkflowRunner

__all__ = [
    "Edge",
    "ExecutionContext",
    "ExecutionEvent",
    "ExecutionEventType",
    "ExecutionResult",
    "Node",
    "NodeExecutionRecord",
    "NodeExecutionResult",
    "NodeStatus",
    "RunStatus",
    "WorkflowGraph",
    "ExpressionEngine",
    "ExpressionContext",
    "expression_engine",
    "NodeRegistryClass",
    "node_registry",
    "GraphValidator",
    "ValidationResult",
    "FaultHandler",
    "RetryPolicy",
    "WorkflowRunner",
]
