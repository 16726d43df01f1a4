"""Integration nodes - external services."""

from .http_request import HttpRequestNode

__all__ = ["HttpRequestNode"]
