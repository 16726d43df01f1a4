"""Graph and run-request schemas."""

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..engine.types import WorkflowGraph


class NodeSchema(BaseModel):
    """A node in a submitted graph."""

    id: str = Field(..., min_length=1, description="Unique node id")
    kind: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("kind", "type"),
        description="Node kind identifier",
    )
    config: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("config", "parameters"),
        description="Node configuration; values may contain {{ }} templates",
    )
    label: str | None = Field(None, description="Display label used in messages")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "check",
                "kind": "if_else",
                "config": {"condition": "{{input.x}} > 3"},
            }
        }
    )


class EdgeSchema(BaseModel):
    """A directed edge; `label` selects a branch (true/false, case, loop/done)."""

    id: str | None = None
    source: str
    target: str
    label: str | None = Field(None, validation_alias=AliasChoices("label", "sourceHandle"))


class WorkflowGraphSchema(BaseModel):
    """A workflow graph as submitted over the API."""

    nodes: list[NodeSchema] = Field(default_factory=list)
    edges: list[EdgeSchema] = Field(default_factory=list)

    def to_graph(self) -> WorkflowGraph:
        return WorkflowGraph.from_dict(self.model_dump())


class ExecuteRequest(BaseModel):
    """Request to run an ad-hoc graph."""

    graph: WorkflowGraphSchema
    input: Any = None
    trigger_id: str | None = Field(None, description="Trigger to start from")
    variables: dict[str, Any] = Field(default_factory=dict)
    mode: Literal["manual", "webhook", "schedule"] = "manual"
    background: bool = Field(False, description="Return immediately and run in the background")


class WebhookRunRequest(BaseModel):
    """A graph to run in webhook mode with the request payload as trigger input."""

    graph: WorkflowGraphSchema
    payload: Any = None
    trigger_id: str | None = None
