"""nodeflow - a workflow execution engine for node graphs."""

__version__ = "0.1.0"
