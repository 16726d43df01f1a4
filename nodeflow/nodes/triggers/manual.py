"""Manual trigger - entry point for runs started by hand or through the API."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from ..base import BaseNode, NodeTypeDescription

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext


class ManualTriggerNode(BaseNode):
    """Starts a run with the caller's input payload."""

    node_description = NodeTypeDescription(
        name="manual_trigger",
        display_name="Manual Trigger",
        description="Start the workflow manually",
        icon="fa:play",
        category="trigger",
    )

    aliases = ("start",)

    @property
    def kind(self) -> str:
        return "manual_trigger"

    @property
    def description(self) -> str:
        return "Start the workflow manually"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        return {
            "trigger": "manual",
            "run_id": context.run_id,
            "executed_at": context.started_at.isoformat(),
        }
