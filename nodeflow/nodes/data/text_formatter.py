"""TextFormatter node - render a text template."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from ..base import BaseNode, NodeTypeDescription, NodeProperty

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext


class TextFormatterNode(BaseNode):
    """The template is resolved before dispatch; the node publishes it."""

    node_description = NodeTypeDescription(
        name="text_formatter",
        display_name="Text Formatter",
        description="Format text with {{ }} placeholders",
        icon="fa:font",
        category="transform",
        properties=[
            NodeProperty(
                display_name="Template",
                name="template",
                type="string",
                required=True,
                placeholder="Hello {{input.name}}",
            ),
        ],
    )

    @property
    def kind(self) -> str:
        return "text_formatter"

    @property
    def description(self) -> str:
        return "Format text with {{ }} placeholders"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        return {"formatted": str(config["template"])}
