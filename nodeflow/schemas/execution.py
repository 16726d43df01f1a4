"""Execution-related Pydantic schemas."""

from pydantic import BaseModel, Field


class ExecutionListItem(BaseModel):
    """Schema for execution in list response."""

    id: str
    status: str
    mode: str
    started_at: str
    finished_at: str | None = None
    duration_ms: int | None = None
    error: str | None = None


class ExecutionAccepted(BaseModel):
    """Returned when a run is started in the background."""

    run_id: str = Field(..., alias="runId")
    status: str

    model_config = {"populate_by_name": True}
