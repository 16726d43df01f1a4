"""If/Else node - route on a condition (true/false outputs)."""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from ...core.exceptions import ValidationError
from ...engine.expression_engine import ExpressionEngine, expression_engine
from ..base import BaseNode, NodeTypeDescription, NodeProperty
from ..utils import get_nested_value, parse_json_text
from .conditions import OPERATION_OPTIONS, compare

if TYPE_CHECKING:
    from ...engine.types import ExecutionContext, NodeExecutionResult

logger = logging.getLogger(__name__)


class IfElseNode(BaseNode):
    """Selects exactly one of the `true`/`false` outgoing edges."""

    node_description = NodeTypeDescription(
        name="if_else",
        display_name="If / Else",
        description="Route on a condition (true/false outputs)",
        icon="fa:code-branch",
        category="logic",
        outputs=["true", "false"],
        properties=[
            NodeProperty(
                display_name="Condition",
                name="condition",
                type="expression",
                default="",
                placeholder="{{input.score}} >= 70",
                description="Expression that evaluates to true/false. If provided, field/operation/value are ignored.",
            ),
            NodeProperty(
                display_name="Field",
                name="field",
                type="string",
                default="",
                placeholder="status",
                description="Field path to evaluate (supports dot notation).",
            ),
            NodeProperty(
                display_name="Operation",
                name="operation",
                type="options",
                default="isTrue",
                options=OPERATION_OPTIONS,
            ),
            NodeProperty(
                display_name="Value",
                name="value",
                type="string",
                default="",
                description="Value to compare against. Supports expressions.",
            ),
        ],
    )

    aliases = ("if",)

    @property
    def kind(self) -> str:
        return "if_else"

    @property
    def description(self) -> str:
        return "Route on a condition (true/false outputs)"

    async def execute(
        self,
        config: dict[str, Any],
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeExecutionResult:
        condition = self.get_parameter(config, "condition", "")
        field = self.get_parameter(config, "field", "")

        if condition != "":
            expr_context = ExpressionEngine.create_context(context, input_data)
            result = expression_engine.evaluate_condition(condition, expr_context)
        elif field:
            operation = self.get_parameter(config, "operation", "isTrue")
            value = parse_json_text(config.get("value"))
            result = compare(get_nested_value(input_data, str(field)), operation, value)
        else:
            raise ValidationError("If/Else needs a condition or a field to test", field="condition")

        logger.debug("Condition %r evaluated to %s", condition or field, result)
        branch = "true" if result else "false"
        return self.output({"condition": result}, branches=[branch])
