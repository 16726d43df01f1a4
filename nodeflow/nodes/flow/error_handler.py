"""ErrorHandler node - retry and fallback policy for the nodes after it."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from ..base import BaseNode, NodeTypeDescription, NodeProperty

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext


class ErrorHandlerNode(BaseNode):
    """
    ErrorHandler node - passes its input through unchanged.

    Nodes directly downstream of it run under its policy: transient failures
    are retried `maxRetries` times `retryDelay` ms apart, and if the node
    still fails its output becomes `fallbackValue`.
    """

    node_description = NodeTypeDescription(
        name="error_handler",
        display_name="Error Handler",
        description="Retry the next node and fall back to a value on failure",
        icon="fa:shield-alt",
        category="logic",
        properties=[
            NodeProperty(
                display_name="Max Retries",
                name="maxRetries",
                type="number",
                default=3,
            ),
            NodeProperty(
                display_name="Retry Delay (ms)",
                name="retryDelay",
                type="number",
                default=1000,
            ),
            NodeProperty(
                display_name="Fallback Value",
                name="fallbackValue",
                type="json",
                default="",
                description="JSON value, or plain text, used when the node keeps failing",
            ),
        ],
    )

    wraps_successors = True

    @property
    def kind(self) -> str:
        return "error_handler"

    @property
    def description(self) -> str:
        return "Retry the next node and fall back to a value on failure"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        return input_data
