"""JsonParser node - parse JSON text and extract a value."""

from __future__ import annotations

import json
from typing import Any, TYPE_CHECKING

from ...core.exceptions import ValidationError
from ...engine.expression_engine import ExpressionEngine, expression_engine
from ..base import BaseNode, NodeTypeDescription, NodeProperty

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext


class JsonParserNode(BaseNode):
    """
    Parses `source` (JSON text, default the whole input) and then reads
    `expression` from it, e.g. `data.items[0].name`.
    """

    node_description = NodeTypeDescription(
        name="json_parser",
        display_name="JSON Parser",
        description="Parse JSON and extract a value",
        icon="fa:code",
        category="transform",
        properties=[
            NodeProperty(
                display_name="Source",
                name="source",
                type="string",
                default="",
                placeholder="{{input.body}}",
                description="JSON text to parse; defaults to the input",
            ),
            NodeProperty(
                display_name="Expression",
                name="expression",
                type="expression",
                default="",
                placeholder="data.items[0]",
                description="Path to extract from the parsed value",
            ),
        ],
    )

    @property
    def kind(self) -> str:
        return "json_parser"

    @property
    def description(self) -> str:
        return "Parse JSON and extract a value"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> Any:
        source = config.get("source", "")
        document = input_data
        if isinstance(source, str) and source.strip():
            try:
                document = json.loads(source)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Source is not valid JSON: {e}", field="source") from e

        expression = str(config.get("expression", "")).strip()
        if expression.startswith("{{") and expression.endswith("}}"):
            expression = expression[2:-2].strip()
        if not expression:
            return {"result": document}

        expr_context = ExpressionEngine.create_context(context, document)
        return {"result": expression_engine.evaluate(expression, expr_context)}
