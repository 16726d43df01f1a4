"""Execution history storage."""

from .execution_store import ExecutionEntry, ExecutionStore, execution_store

__all__ = ["ExecutionEntry", "ExecutionStore", "execution_store"]
