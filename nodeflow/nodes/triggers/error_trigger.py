"""ErrorTrigger node - entry point of the error path."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from ..base import BaseNode, NodeTypeDescription

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext


class ErrorTriggerNode(BaseNode):
    """
    ErrorTrigger node - runs when another node fails fatally.

    Never started by a normal run. The runner feeds it the failure payload:
    failed_node, error_message, error_kind, error_code and the last output.
    """

    node_description = NodeTypeDescription(
        name="error_trigger",
        display_name="Error Trigger",
        description="Run a path when a node fails",
        icon="fa:exclamation-triangle",
        category="trigger",
    )

    @property
    def kind(self) -> str:
        return "error_trigger"

    @property
    def description(self) -> str:
        return "Run a path when a node fails"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        payload = input_data if isinstance(input_data, dict) else {}
        return {
            "trigger": "error",
            "failed_node": payload.get("failed_node") or "unknown",
            "error_message": payload.get("error_message") or "Unknown error",
        }
