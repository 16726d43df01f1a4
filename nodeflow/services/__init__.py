"""Service layer between routes and the engine."""

from .execution_service import ExecutionService

__all__ = ["ExecutionService"]
