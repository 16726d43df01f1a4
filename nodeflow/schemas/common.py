"""Response bodies shared by every router."""

from typing import Any

from pydantic import BaseModel


class SuccessResponse(BaseModel):
    success: bool = True
    message: str | None = None


class ErrorResponse(BaseModel):
    """Body returned for engine errors; `code` is the exception class name."""

    success: bool = False
    error: str
    details: dict[str, Any] | None = None
    code: str | None = None


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    node_kinds: int
    active_runs: int


class RootResponse(BaseModel):
    name: str
    version: str
    status: str
    docs: str = "/docs"
