"""Core configuration, exceptions and logging."""

from .config import Settings, get_settings
from .exceptions import (
    Cancelled,
    NodeError,
    NodeNotFoundError,
    PermanentError,
    StructuralError,
    TransientError,
    UserStop,
    ValidationError,
    WorkflowEngineError,
)

__all__ = [
    "Settings",
    "get_settings",
    "WorkflowEngineError",
    "StructuralError",
    "NodeNotFoundError",
    "NodeError",
    "ValidationError",
    "TransientError",
    "PermanentError",
    "UserStop",
    "Cancelled",
]
