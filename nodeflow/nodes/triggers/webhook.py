"""Webhook trigger - entry point for runs started by an HTTP request."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from ..base import BaseNode, NodeTypeDescription, NodeProperty, NodePropertyOption

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext


class WebhookTriggerNode(BaseNode):
    """
    Exposes the incoming request as {method, headers, query, body}.

    The HTTP layer hands over the request in that shape; a bare payload is
    treated as the body.
    """

    node_description = NodeTypeDescription(
        name="webhook",
        display_name="Webhook",
        description="Start the workflow from an HTTP request",
        icon="fa:bolt",
        category="trigger",
        properties=[
            NodeProperty(
                display_name="HTTP Method",
                name="method",
                type="options",
                default="POST",
                options=[
                    NodePropertyOption(name="GET", value="GET"),
                    NodePropertyOption(name="POST", value="POST"),
                    NodePropertyOption(name="PUT", value="PUT"),
                    NodePropertyOption(name="DELETE", value="DELETE"),
                ],
            ),
        ],
    )

    aliases = ("webhook_trigger",)

    @property
    def kind(self) -> str:
        return "webhook"

    @property
    def description(self) -> str:
        return "Start the workflow from an HTTP request"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        request = input_data if isinstance(input_data, dict) else {"body": input_data}
        is_envelope = "body" in request
        return {
            "trigger": "webhook",
            "method": str(request.get("method") or config.get("method") or "POST").upper(),
            "headers": request.get("headers") or {},
            "query": request.get("query") or {},
            "body": request.get("body") if is_envelope else request,
        }
