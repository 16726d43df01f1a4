"""Output nodes."""

from .log_output import LogNode

__all__ = ["LogNode"]
